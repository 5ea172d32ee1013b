# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Single-flight access token refresh.

The coordinator owns a two-state machine (IDLE, REFRESHING) and a FIFO
queue of waiters. The task that moves it out of IDLE performs the one
refresh call; every other task that needs a token while a refresh is in
flight parks on an asyncio.Future and is settled when that cycle ends.

The IDLE -> REFRESHING check and transition happen without an await in
between, so two tasks on the same event loop can never both start a
refresh.
"""

import asyncio
import inspect
import logging
from collections import deque
from typing import Any, Awaitable, Callable, Deque, List, Optional, Union

import httpx

from .config import StorageKeys
from .dispatcher import DEFAULT_HEADERS
from .error_formatter import auth_expired_error, format_error
from .errors import AuthExpiredError
from .storage import CredentialStore
from .types import CredentialPair, RefreshState, UniformError
from .utils import format_token_for_display

lib_logger = logging.getLogger("solbridge_client")


SessionExpiredListener = Callable[[UniformError], Union[None, Awaitable[None]]]


class RefreshCoordinator:
    """
    Executes at most one concurrent refresh call and fans the result out.

    One instance per ApiClient; nothing is shared between instances.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        store: CredentialStore,
        refresh_url: str,
        timeout: Optional[float] = None,
    ) -> None:
        self._http = http_client
        self._store = store
        self._refresh_url = refresh_url
        self._timeout = timeout

        self._state = RefreshState.IDLE
        self._waiters: Deque[asyncio.Future] = deque()
        self._listeners: List[SessionExpiredListener] = []

        # Number of refresh calls actually sent to the backend
        self.refresh_count = 0

    @property
    def state(self) -> RefreshState:
        return self._state

    @property
    def pending_waiters(self) -> int:
        return len(self._waiters)

    def add_session_expired_listener(self, listener: SessionExpiredListener) -> None:
        """Registers a callable invoked once per failed refresh cycle."""
        self._listeners.append(listener)

    def remove_session_expired_listener(self, listener: SessionExpiredListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def acquire_token(self) -> str:
        """
        Returns a freshly refreshed access token.

        Joins the in-flight cycle if there is one, otherwise starts a new
        one. Raises AuthExpiredError if the cycle fails; by then the stored
        credentials have been cleared (except on cancellation, see
        AuthExpiredError).
        """
        if self._state is RefreshState.REFRESHING:
            return await self._park()

        self._state = RefreshState.REFRESHING
        return await self._run_cycle()

    async def force_refresh(self) -> str:
        """Refreshes without a 401 having been seen (explicit refresh)."""
        lib_logger.debug("Explicit token refresh requested")
        return await self.acquire_token()

    async def _park(self) -> str:
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        lib_logger.debug(
            f"Refresh in flight, parked request as waiter #{len(self._waiters)}"
        )
        return await waiter

    async def _run_cycle(self) -> str:
        try:
            refresh_token = await self._store.get(StorageKeys.REFRESH_TOKEN)
            if not refresh_token:
                lib_logger.warning("Access token expired and no refresh token is stored")
                raise auth_expired_error(details="No refresh token available")

            pair = await self._request_new_pair(refresh_token)
            await self._store.set_many(
                {
                    StorageKeys.ACCESS_TOKEN: pair.access_token,
                    StorageKeys.REFRESH_TOKEN: pair.refresh_token,
                }
            )
        except asyncio.CancelledError:
            lib_logger.warning("Token refresh was cancelled; rejecting parked requests")
            self._settle(error=auth_expired_error(details="Token refresh was cancelled").error)
            raise
        except Exception as e:
            error = await self._fail_cycle(e)
            raise AuthExpiredError(error) from e

        lib_logger.info(
            f"Access token refreshed ({format_token_for_display(pair.access_token)}), "
            f"resuming {len(self._waiters)} parked request(s)"
        )
        self._settle(token=pair.access_token)
        return pair.access_token

    async def _request_new_pair(self, refresh_token: str) -> CredentialPair:
        self.refresh_count += 1
        lib_logger.debug(
            f"POST {self._refresh_url} with refresh token "
            f"{format_token_for_display(refresh_token)}"
        )

        kwargs: dict = {"json": {"refreshToken": refresh_token}, "headers": DEFAULT_HEADERS}
        if self._timeout is not None:
            kwargs["timeout"] = self._timeout
        response = await self._http.post(self._refresh_url, **kwargs)
        response.raise_for_status()
        data = response.json()

        # The backend wraps payloads as {"success": ..., "data": {...}}
        payload = data.get("data") if isinstance(data, dict) else None
        if not isinstance(payload, dict):
            payload = data if isinstance(data, dict) else {}

        access_token = payload.get("accessToken")
        new_refresh_token = payload.get("refreshToken")
        if not isinstance(access_token, str) or not access_token:
            raise ValueError("Refresh response missing accessToken")
        if not isinstance(new_refresh_token, str) or not new_refresh_token:
            raise ValueError("Refresh response missing refreshToken")

        return CredentialPair(access_token=access_token, refresh_token=new_refresh_token)

    async def expire_session(self, error: UniformError) -> None:
        """
        Ends the session after a replayed request was rejected again.

        The refresh itself succeeded, so there are no waiters to reject;
        the stored credentials are cleared and listeners are notified.
        """
        await self._clear_session()
        await self._notify_session_expired(error)

    async def _clear_session(self) -> None:
        try:
            await self._store.delete_many(StorageKeys.SESSION)
        except Exception as e:
            lib_logger.error(f"Failed to clear stored credentials: {e}")

    async def _fail_cycle(self, cause: Exception) -> UniformError:
        """Clears the session, rejects every waiter, notifies listeners."""
        if isinstance(cause, AuthExpiredError):
            error = cause.error
        else:
            underlying = format_error(cause)
            lib_logger.error(
                f"Token refresh failed ({underlying.kind.value}"
                f"{f' {underlying.http_status}' if underlying.http_status else ''}): {cause}"
            )
            error = auth_expired_error(
                details={
                    "cause": underlying.kind.value,
                    "httpStatus": underlying.http_status,
                    "message": underlying.message,
                }
            ).error

        try:
            await self._clear_session()
        finally:
            # Waiters are released even if the trigger is cancelled mid-clear
            self._settle(error=error)
        await self._notify_session_expired(error)
        return error

    def _settle(self, token: Optional[str] = None, error: Optional[UniformError] = None) -> None:
        """Returns to IDLE and drains the waiter queue in arrival order."""
        self._state = RefreshState.IDLE
        waiters = list(self._waiters)
        self._waiters.clear()

        for waiter in waiters:
            if waiter.done():
                # The parked task was cancelled on its own
                continue
            if error is not None:
                waiter.set_exception(AuthExpiredError(error))
            else:
                waiter.set_result(token)

    async def _notify_session_expired(self, error: UniformError) -> None:
        for listener in list(self._listeners):
            try:
                result: Any = listener(error)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                lib_logger.warning(f"Session-expired listener {listener!r} raised: {e}")
