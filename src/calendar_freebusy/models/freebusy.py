"""Free/busy result data model."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from .event import Event


class FbType(str, Enum):
    """Free/busy type of a time slot."""

    FREE = "free"
    BUSY_TENTATIVE = "busy-tentative"
    BUSY = "busy"
    BUSY_UNAVAILABLE = "busy-unavailable"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {
    FbType.FREE: 0,
    FbType.BUSY_TENTATIVE: 1,
    FbType.BUSY: 2,
    FbType.BUSY_UNAVAILABLE: 3,
}


@dataclass
class FreeBusyTime:
    """A busy (or free) time slot, optionally referencing its event."""

    fb_type: FbType
    start: datetime
    end: datetime
    event: Optional[Event] = None


@dataclass
class EventsResult:
    """Events found for a single participant, or the reason there are none."""

    events: list[Event] = field(default_factory=list)
    error: Optional[Exception] = None
    tenant_id: Optional[int] = None  # tenant the events belong to


@dataclass
class FreeBusyResult:
    """Free/busy outcome for a requested participant."""

    free_busy_times: Optional[list[FreeBusyTime]] = None
    warnings: list[Exception] = field(default_factory=list)
