# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

import logging
from typing import Iterable

import httpx

from .config import REFRESH_TRIGGER_STATUS
from .dispatcher import RequestDispatcher
from .error_formatter import auth_expired_error, format_error, format_response_error, to_exception
from .errors import ApiClientError
from .refresh import RefreshCoordinator
from .retry import RetryEngine
from .types import GuardDecision, RequestEnvelope

lib_logger = logging.getLogger("solbridge_client")


class AuthGuard:
    """
    Wraps the dispatcher and decides what happens to each failed response.

    A 401 on a non-exempt endpoint whose envelope has not been replayed yet
    goes through one refresh-and-replay cycle. Every other failure is
    formatted and raised as-is.
    """

    def __init__(
        self,
        dispatcher: RequestDispatcher,
        coordinator: RefreshCoordinator,
        retry_engine: RetryEngine,
        exempt_paths: Iterable[str],
    ) -> None:
        self._dispatcher = dispatcher
        self._coordinator = coordinator
        self._retry_engine = retry_engine
        self._exempt_paths = tuple(path.rstrip("/") for path in exempt_paths if path)

    def is_exempt(self, url: str) -> bool:
        """True for login, registration and refresh-token endpoints."""
        path = httpx.URL(url).path.rstrip("/")
        return any(path.endswith(exempt) or exempt + "/" in path for exempt in self._exempt_paths)

    def classify(self, envelope: RequestEnvelope, response: httpx.Response) -> GuardDecision:
        if response.status_code != REFRESH_TRIGGER_STATUS:
            return GuardDecision.PASS_THROUGH
        if envelope.retried or self.is_exempt(envelope.url):
            return GuardDecision.PASS_THROUGH
        return GuardDecision.NEEDS_REFRESH

    async def _send(self, envelope: RequestEnvelope) -> httpx.Response:
        try:
            return await self._dispatcher.send(envelope)
        except httpx.TransportError as e:
            error = format_error(e)
            lib_logger.warning(
                f"{envelope.method} {envelope.url} failed without a response: "
                f"{error.kind.value} ({type(e).__name__})"
            )
            raise to_exception(error) from e

    async def _terminal(self, envelope: RequestEnvelope, response: httpx.Response) -> ApiClientError:
        if response.status_code == REFRESH_TRIGGER_STATUS and envelope.retried:
            lib_logger.warning(
                f"{envelope.method} {envelope.url} rejected again after token refresh, ending session"
            )
            exc = auth_expired_error(details="Request rejected after token refresh")
            await self._coordinator.expire_session(exc.error)
            return exc

        error = format_response_error(response)
        lib_logger.debug(
            f"{envelope.method} {envelope.url} failed with HTTP {response.status_code}"
        )
        return to_exception(error)

    async def handle(self, envelope: RequestEnvelope) -> httpx.Response:
        response = await self._send(envelope)
        if response.is_success:
            return response

        # No await between classification and the coordinator's own
        # check-and-transition.
        if self.classify(envelope, response) is GuardDecision.PASS_THROUGH:
            raise await self._terminal(envelope, response)

        lib_logger.info(f"{envelope.method} {envelope.url} returned 401, refreshing token")
        token = await self._coordinator.acquire_token()

        try:
            replay, response = await self._retry_engine.retry(envelope, token)
        except httpx.TransportError as e:
            raise to_exception(format_error(e)) from e

        if response.is_success:
            return response
        raise await self._terminal(replay, response)
