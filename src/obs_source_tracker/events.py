"""Event type definitions.

Notifications published on the Bus by the tracker and the OBS connection.
"""

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from .bus import Bus
from .store import DailyAggregate


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


# =============================================================================
# Visibility Events
# =============================================================================


class SourceUpdatedProps(BaseModel):
    """The set of visible sources or today's counters changed."""

    active_sources: list[str]
    data: list[DailyAggregate] = Field(default_factory=list)
    timestamp: str = Field(default_factory=_now_iso)


SourceUpdated = Bus.define("source.updated", SourceUpdatedProps)


# =============================================================================
# Connection Events
# =============================================================================


class TrackerConnectedProps(BaseModel):
    """Handshake with OBS completed."""

    obs_url: str
    rpc_version: int | None = None


class TrackerDisconnectedProps(BaseModel):
    """Connection to OBS was lost."""

    obs_url: str
    dropped_sessions: list[str] = Field(default_factory=list)


TrackerConnected = Bus.define("tracker.connected", TrackerConnectedProps)
TrackerDisconnected = Bus.define("tracker.disconnected", TrackerDisconnectedProps)
