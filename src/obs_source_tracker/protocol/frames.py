"""obs-websocket v5 frame definitions.

Every message on the wire is a JSON object with an integer opcode `op`
and a data object `d`:

    {"op": 0, "d": {"obsWebSocketVersion": "5.1.0", "rpcVersion": 1}}      Hello
    {"op": 1, "d": {"rpcVersion": 1, "eventSubscriptions": 133}}           Identify
    {"op": 2, "d": {"negotiatedRpcVersion": 1}}                            Identified
    {"op": 5, "d": {"eventType": "...", "eventIntent": 128, "eventData": {}}}  Event
    {"op": 6, "d": {"requestType": "...", "requestId": "...", "requestData": {}}}  Request
    {"op": 7, "d": {"requestType": "...", "requestId": "...",
                    "requestStatus": {"result": true, "code": 100},
                    "responseData": {}}}                                     RequestResponse
"""

from __future__ import annotations

import json
from enum import IntEnum, IntFlag
from typing import Any

from pydantic import BaseModel, Field

from ..errors import FrameError

RPC_VERSION = 1


class OpCode(IntEnum):
    """Frame opcodes used by the tracker."""

    HELLO = 0
    IDENTIFY = 1
    IDENTIFIED = 2
    EVENT = 5
    REQUEST = 6
    REQUEST_RESPONSE = 7


class EventSubscription(IntFlag):
    """Event category bitmask sent in Identify."""

    NONE = 0
    GENERAL = 1 << 0
    CONFIG = 1 << 1
    SCENES = 1 << 2
    INPUTS = 1 << 3
    TRANSITIONS = 1 << 4
    FILTERS = 1 << 5
    OUTPUTS = 1 << 6
    SCENE_ITEMS = 1 << 7


# Categories the visibility tracker needs
TRACKER_SUBSCRIPTIONS = (
    EventSubscription.GENERAL | EventSubscription.SCENES | EventSubscription.SCENE_ITEMS
)


class RequestStatus(BaseModel):
    """Status block of a RequestResponse frame."""

    result: bool = False
    code: int | None = None
    comment: str | None = None


class Frame(BaseModel):
    """A single obs-websocket message."""

    op: int
    d: dict[str, Any] = Field(default_factory=dict)

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def opcode(self) -> OpCode | None:
        """Known opcode, or None for opcodes the tracker does not handle."""
        try:
            return OpCode(self.op)
        except ValueError:
            return None

    @property
    def event_type(self) -> str | None:
        value = self.d.get("eventType")
        return value if isinstance(value, str) and value else None

    @property
    def event_data(self) -> dict[str, Any]:
        value = self.d.get("eventData")
        return value if isinstance(value, dict) else {}

    @property
    def request_id(self) -> str | None:
        value = self.d.get("requestId")
        return value if isinstance(value, str) and value else None

    @property
    def request_type(self) -> str | None:
        value = self.d.get("requestType")
        return value if isinstance(value, str) else None

    @property
    def request_status(self) -> RequestStatus:
        value = self.d.get("requestStatus")
        if not isinstance(value, dict):
            return RequestStatus()
        try:
            return RequestStatus.model_validate(value)
        except ValueError:
            return RequestStatus()

    @property
    def response_data(self) -> dict[str, Any]:
        value = self.d.get("responseData")
        return value if isinstance(value, dict) else {}

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_json(self) -> str:
        """Serialize to the wire format."""
        return json.dumps({"op": self.op, "d": self.d})

    @classmethod
    def from_json(cls, data: str | bytes) -> Frame:
        """Decode a frame from the wire.

        Raises:
            FrameError: If the payload is not JSON, is not an object, or has
                no integer `op` / object `d`
        """
        try:
            parsed = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise FrameError(f"Invalid JSON: {e}") from e

        if not isinstance(parsed, dict):
            raise FrameError("Frame is not a JSON object")

        op = parsed.get("op")
        # bool is an int subclass; reject it explicitly
        if not isinstance(op, int) or isinstance(op, bool):
            raise FrameError(f"Frame has no integer opcode: {op!r}")

        d = parsed.get("d", {})
        if not isinstance(d, dict):
            raise FrameError(f"Frame data is not an object (op={op})")

        return cls(op=op, d=d)

    # -------------------------------------------------------------------------
    # Factories for outbound frames
    # -------------------------------------------------------------------------

    @classmethod
    def identify(
        cls,
        rpc_version: int = RPC_VERSION,
        event_subscriptions: int = TRACKER_SUBSCRIPTIONS,
    ) -> Frame:
        return cls(
            op=int(OpCode.IDENTIFY),
            d={"rpcVersion": rpc_version, "eventSubscriptions": int(event_subscriptions)},
        )

    @classmethod
    def request(
        cls,
        request_type: str,
        request_id: str,
        request_data: dict[str, Any] | None = None,
    ) -> Frame:
        return cls(
            op=int(OpCode.REQUEST),
            d={
                "requestType": request_type,
                "requestId": request_id,
                "requestData": request_data or {},
            },
        )
