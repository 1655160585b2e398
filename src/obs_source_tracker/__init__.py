"""OBS Source Tracker.

Counts how often and how long each OBS source is shown, per day, by
following scene item visibility over the obs-websocket v5 protocol.
"""

from .config import TrackerConfig
from .service import TrackerService
from .store import AggregationStore, DailyAggregate, SourceMetadata
from .tracker import VisibilityTracker

__version__ = "0.1.0"

__all__ = [
    "AggregationStore",
    "DailyAggregate",
    "SourceMetadata",
    "TrackerConfig",
    "TrackerService",
    "VisibilityTracker",
    "__version__",
]
