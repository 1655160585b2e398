"""obs-websocket wire protocol.

Frames are JSON objects with an integer opcode (`op`) and a data object
(`d`). Only the opcodes needed for the handshake, request/response
correlation and event delivery are modelled.
"""

from .frames import (
    RPC_VERSION,
    TRACKER_SUBSCRIPTIONS,
    EventSubscription,
    Frame,
    OpCode,
    RequestStatus,
)

__all__ = [
    "RPC_VERSION",
    "TRACKER_SUBSCRIPTIONS",
    "EventSubscription",
    "Frame",
    "OpCode",
    "RequestStatus",
]
