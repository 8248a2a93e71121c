"""
Analytics events.

The engine reports semantic events (ranking submitted, filter changed,
tool compared, ...) to a sink supplied by the host application. Payloads
are flat mappings of primitive values so any delivery mechanism can
serialize them.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from ppm_finder.exceptions import ValidationError

logger = logging.getLogger(__name__)

PRIMITIVE_TYPES = (str, int, float, bool, type(None))

# Event names
WEIGHTS_CHANGED = "weights_changed"
RANKING_SUBMITTED = "ranking_submitted"
GUIDED_STEP = "guided_step"
GUIDED_ABANDONED = "guided_abandoned"
FILTER_CHANGED = "filter_changed"
TOOL_SELECTED = "tool_selected"
TOOL_REMOVED = "tool_removed"
TOOLS_RESTORED = "tools_restored"
TOOL_COMPARED = "tool_compared"
SELECTION_REORDERED = "selection_reordered"


@dataclass(frozen=True)
class AnalyticsEvent:
    """A named event with a primitive key/value payload."""

    name: str
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "payload": dict(self.payload),
            "timestamp": self.timestamp.isoformat(),
        }


def make_event(name: str, payload: Optional[Mapping[str, Any]] = None) -> AnalyticsEvent:
    """
    Build an event, checking that every payload value is a primitive.

    Raises:
        ValidationError: If a payload value is not str, int, float, bool or None
    """
    payload = dict(payload or {})
    for key, value in payload.items():
        if not isinstance(value, PRIMITIVE_TYPES):
            raise ValidationError(
                f"Analytics payload value for '{key}' must be a primitive",
                {"event": name, "key": key, "type": type(value).__name__},
            )
    return AnalyticsEvent(name=name, payload=payload)


class AnalyticsSink:
    """Interface for event destinations."""

    def emit(self, event: AnalyticsEvent) -> None:
        raise NotImplementedError


class NullSink(AnalyticsSink):
    """Discards every event."""

    def emit(self, event: AnalyticsEvent) -> None:
        pass


class MemorySink(AnalyticsSink):
    """Keeps events in memory."""

    def __init__(self):
        self.events: List[AnalyticsEvent] = []

    def emit(self, event: AnalyticsEvent) -> None:
        self.events.append(event)

    def names(self) -> List[str]:
        return [event.name for event in self.events]

    def last(self, name: Optional[str] = None) -> Optional[AnalyticsEvent]:
        for event in reversed(self.events):
            if name is None or event.name == name:
                return event
        return None

    def clear(self) -> None:
        self.events.clear()


class LoggingSink(AnalyticsSink):
    """Writes events to a logger."""

    def __init__(self, log: Optional[logging.Logger] = None, level: int = logging.INFO):
        self.log = log or logger
        self.level = level

    def emit(self, event: AnalyticsEvent) -> None:
        self.log.log(self.level, f"analytics {event.name} {event.payload}")


class FanOutSink(AnalyticsSink):
    """Forwards each event to several sinks in order."""

    def __init__(self, *sinks: AnalyticsSink):
        self.sinks = list(sinks)

    def emit(self, event: AnalyticsEvent) -> None:
        for sink in self.sinks:
            sink.emit(event)
