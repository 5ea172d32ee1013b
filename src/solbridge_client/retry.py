import logging
from typing import Tuple

import httpx

from .dispatcher import RequestDispatcher
from .types import RequestEnvelope

lib_logger = logging.getLogger("solbridge_client")


class RetryEngine:
    """Replays a request once with a refreshed access token."""

    def __init__(self, dispatcher: RequestDispatcher) -> None:
        self._dispatcher = dispatcher

    def prepare(self, envelope: RequestEnvelope, token: str) -> RequestEnvelope:
        if envelope.retried:
            raise ValueError(f"{envelope.method} {envelope.url} was already replayed once")
        return envelope.as_retry(token)

    async def retry(
        self, envelope: RequestEnvelope, token: str
    ) -> Tuple[RequestEnvelope, httpx.Response]:
        """Sends the replay and returns it alongside the backend's response."""
        replay = self.prepare(envelope, token)
        lib_logger.debug(f"Replaying {replay.method} {replay.url} with refreshed token")
        return replay, await self._dispatcher.send(replay)
