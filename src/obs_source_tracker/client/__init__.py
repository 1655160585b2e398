"""OBS WebSocket client.

- ObsConnection: socket ownership and reconnect loop
- HandshakeSequencer: Hello -> Identify -> Identified
- RequestCorrelator: request ids, futures and timeouts
- FrameRouter: inbound frame demultiplexing
"""

from .connection import ObsConnection
from .correlator import PendingRequest, RequestCorrelator
from .handshake import ConnectionState, HandshakeSequencer
from .router import FrameRouter

__all__ = [
    "ConnectionState",
    "FrameRouter",
    "HandshakeSequencer",
    "ObsConnection",
    "PendingRequest",
    "RequestCorrelator",
]
