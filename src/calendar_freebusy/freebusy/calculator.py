"""Conversion of events into (merged) free/busy time slots."""

from dataclasses import replace
from datetime import datetime
from typing import Iterable, Optional

from ..models.event import Event, EventStatus
from ..models.freebusy import FbType, FreeBusyTime
from ..models.participant import Transparency
from ..utils.date_utils import ensure_utc, in_timezone


def get_fb_type(event: Event) -> FbType:
    """Get the free/busy type an event implies."""
    if event.transp is None:
        return FbType.BUSY
    if event.transp == Transparency.TRANSPARENT:
        return FbType.FREE
    if event.status == EventStatus.TENTATIVE:
        return FbType.BUSY_TENTATIVE
    if event.status == EventStatus.CANCELLED:
        return FbType.FREE
    return FbType.BUSY


def get_free_busy_time(event: Event, timezone: str) -> FreeBusyTime:
    """
    Get the free/busy time of an event.

    Args:
        event: The event
        timezone: Timezone to resolve floating dates in

    Returns:
        Free/busy time with UTC boundaries
    """
    return FreeBusyTime(
        fb_type=get_fb_type(event),
        start=in_timezone(event.start, timezone),
        end=in_timezone(event.end, timezone),
        event=event,
    )


def adjust_to_boundaries(
    free_busy_time: FreeBusyTime, start: datetime, until: datetime
) -> Optional[FreeBusyTime]:
    """
    Clip a free/busy time to a period.

    Args:
        free_busy_time: The free/busy time
        start: Inclusive start of the period
        until: Exclusive end of the period

    Returns:
        The clipped free/busy time, or None if it lies outside the period
    """
    start, until = ensure_utc(start), ensure_utc(until)
    if free_busy_time.end <= start or free_busy_time.start >= until:
        return None
    return replace(
        free_busy_time,
        start=max(free_busy_time.start, start),
        end=min(free_busy_time.end, until),
    )


def merge_free_busy(free_busy_times: Iterable[FreeBusyTime]) -> list[FreeBusyTime]:
    """
    Merge overlapping free/busy times.

    The result is sorted chronologically. Where times overlap only the most
    conflicting type remains, and adjacent slots of the same type are joined.
    Joined slots spanning several events lose their event reference.

    Args:
        free_busy_times: Free/busy times to merge

    Returns:
        Non-overlapping free/busy times
    """
    times = sorted(free_busy_times, key=lambda t: (t.start, t.end))
    if len(times) < 2:
        return times

    boundaries = sorted({t.start for t in times} | {t.end for t in times})
    merged: list[FreeBusyTime] = []
    for lower, upper in zip(boundaries, boundaries[1:]):
        covering = [t for t in times if t.start <= lower and t.end >= upper]
        if not covering:
            continue
        winner = max(covering, key=lambda t: t.fb_type.severity)
        previous = merged[-1] if merged else None
        if previous is not None and previous.end == lower and previous.fb_type == winner.fb_type:
            event = previous.event if previous.event is winner.event else None
            merged[-1] = replace(previous, end=upper, event=event)
        else:
            merged.append(FreeBusyTime(winner.fb_type, lower, upper, winner.event))
    return merged
