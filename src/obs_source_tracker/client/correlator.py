"""Request/response correlation.

Each outbound request gets a fresh id and an asyncio.Future. The router
hands every RequestResponse frame to `resolve`, which completes the future
with the same id. Requests are independent: many can be in flight and
responses may arrive in any order.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from ..errors import (
    NotReadyError,
    RequestFailedError,
    RequestTimeoutError,
    TransportLostError,
)
from ..protocol import Frame

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 3.0

SendFrame = Callable[[Frame], Awaitable[None]]


@dataclass
class PendingRequest:
    """An in-flight request waiting for its response."""

    request_id: str
    request_type: str
    future: asyncio.Future[dict[str, Any]]
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class RequestCorrelator:
    """Matches RequestResponse frames to the requests that caused them."""

    def __init__(
        self,
        send_frame: SendFrame,
        is_ready: Callable[[], bool],
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        self._send_frame = send_frame
        self._is_ready = is_ready
        self.timeout = timeout
        self._pending: dict[str, PendingRequest] = {}
        self._counter = itertools.count(1)
        # Keeps ids distinct across correlator instances on the same server
        self._prefix = uuid.uuid4().hex[:8]

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def has_pending(self, request_id: str) -> bool:
        return request_id in self._pending

    def _next_id(self) -> str:
        return f"req_{self._prefix}_{next(self._counter)}"

    async def send_request(
        self, request_type: str, request_data: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Send a request and wait for its response data.

        Args:
            request_type: obs-websocket request type (e.g. "GetSceneList")
            request_data: Request parameters

        Returns:
            The response's `responseData` (empty dict if none)

        Raises:
            NotReadyError: If the handshake has not completed
            RequestTimeoutError: If no response arrives within the timeout
            RequestFailedError: If OBS reports a failure status
            TransportLostError: If the connection drops while waiting
        """
        if not self._is_ready():
            raise NotReadyError(request_type)

        request_id = self._next_id()
        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = PendingRequest(
            request_id=request_id,
            request_type=request_type,
            future=future,
        )

        try:
            await self._send_frame(Frame.request(request_type, request_id, request_data))
            return await asyncio.wait_for(future, timeout=self.timeout)
        except TimeoutError:
            logger.warning(f"{request_type} ({request_id}) timed out after {self.timeout}s")
            raise RequestTimeoutError(request_type, self.timeout) from None
        finally:
            self._pending.pop(request_id, None)

    def resolve(self, frame: Frame) -> bool:
        """Complete the pending request matching a RequestResponse frame.

        Returns:
            False if no request with that id is pending (late or unknown)
        """
        request_id = frame.request_id
        pending = self._pending.pop(request_id, None) if request_id else None
        if pending is None:
            logger.debug(f"Ignoring response for unknown request {request_id}")
            return False
        if pending.future.done():
            return False

        status = frame.request_status
        if status.result:
            pending.future.set_result(frame.response_data)
        else:
            pending.future.set_exception(
                RequestFailedError(pending.request_type, status.code, status.comment)
            )
        return True

    def fail_all(self, reason: str = "transport lost") -> int:
        """Fail every pending request with TransportLostError.

        Returns:
            Number of requests failed
        """
        pending = list(self._pending.values())
        self._pending.clear()
        for request in pending:
            if not request.future.done():
                request.future.set_exception(TransportLostError(reason))
        if pending:
            logger.info(f"Failed {len(pending)} pending request(s): {reason}")
        return len(pending)
