"""Recurrence rule expansion for series masters."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from datetime import datetime, timedelta
from typing import Optional

from dateutil.rrule import rrule, rrulestr

from ..models.event import DateValue, Event, RecurrenceId
from ..utils.date_utils import as_datetime, ensure_utc, in_timezone, localize

logger = logging.getLogger(__name__)

_WALL_TIME_MARGIN = timedelta(days=1)


def build_occurrence(master: Event, recurrence_id: RecurrenceId, start: DateValue) -> Event:
    """
    Derive a virtual occurrence from a series master.

    The occurrence keeps the master's identifiers and gets the given start,
    the master's duration and the recurrence id set.
    """
    if isinstance(start, datetime):
        end: DateValue = start + master.duration
    else:
        end = (as_datetime(start) + master.duration).date()
    return master.model_copy(
        deep=True,
        update={
            "recurrence_id": recurrence_id,
            "start": start,
            "end": end,
            "recurrence_rule": None,
            "change_exception_dates": set(),
            "delete_exception_dates": set(),
        },
    )


class RecurrenceExpander(ABC):
    """Turns a series master and a recurrence id into occurrence timing."""

    @abstractmethod
    def occurrence_at(self, master: Event, recurrence_id: RecurrenceId) -> Optional[Event]:
        """
        Get the rule-generated occurrence of a series at a recurrence id.

        Stored change exceptions are ignored, deleted occurrences yield None.

        Args:
            master: Series master event
            recurrence_id: Recurrence id of the occurrence

        Returns:
            The virtual occurrence, or None if the rule does not produce one
        """

    @abstractmethod
    def iterate_recurrence_ids(
        self, master: Event, start: datetime, until: datetime
    ) -> Iterator[RecurrenceId]:
        """
        Iterate the recurrence ids of a series starting within a period.

        Change and delete exceptions are skipped.

        Args:
            master: Series master event
            start: Inclusive start of the period
            until: Exclusive end of the period
        """

    def occurrences(self, master: Event, start: datetime, until: datetime) -> Iterator[Event]:
        """Iterate the virtual occurrences of a series starting within a period."""
        for recurrence_id in self.iterate_recurrence_ids(master, start, until):
            yield build_occurrence(master, recurrence_id, recurrence_id.value)


class RRuleExpander(RecurrenceExpander):
    """Recurrence expander based on ``dateutil.rrule``.

    Rules are expanded in the wall-clock time of the master's start and every
    occurrence is localized again, so a series keeps its local time across
    daylight saving transitions.
    """

    def _rule(self, master: Event) -> rrule:
        start = as_datetime(master.start)
        return rrulestr(master.recurrence_rule, dtstart=start.replace(tzinfo=None))

    @staticmethod
    def _wall_time(master: Event, value: datetime) -> datetime:
        """Express a point in time as naive wall-clock time of the master's timezone."""
        tz = as_datetime(master.start).tzinfo
        if tz is None:
            return ensure_utc(value).replace(tzinfo=None) if value.tzinfo else value
        return ensure_utc(value).astimezone(tz).replace(tzinfo=None)

    def _candidate_start(self, master: Event, recurrence_id: RecurrenceId) -> datetime:
        value = recurrence_id.value
        if isinstance(value, datetime):
            return self._wall_time(master, value)
        return datetime.combine(value, as_datetime(master.start).time())

    @staticmethod
    def _to_value(master: Event, wall_time: datetime) -> DateValue:
        if isinstance(master.start, datetime):
            return localize(wall_time, master.start.tzinfo)
        return wall_time.date()

    def occurrence_at(self, master: Event, recurrence_id: RecurrenceId) -> Optional[Event]:
        if not master.recurrence_rule:
            return None
        if recurrence_id in master.delete_exception_dates:
            return None
        candidate = self._candidate_start(master, recurrence_id)
        if self._rule(master).after(candidate, inc=True) != candidate:
            logger.debug(f"Rule of series {master.series_id} yields no occurrence at {recurrence_id}")
            return None
        value = self._to_value(master, candidate)
        return build_occurrence(master, RecurrenceId(value=value), value)

    def iterate_recurrence_ids(
        self, master: Event, start: datetime, until: datetime
    ) -> Iterator[RecurrenceId]:
        if not master.recurrence_rule:
            return
        # wall-clock bounds shift around transitions, occurrences are filtered on absolute time
        lower = self._wall_time(master, start) - _WALL_TIME_MARGIN
        upper = self._wall_time(master, until) + _WALL_TIME_MARGIN
        start, until = ensure_utc(start), ensure_utc(until)
        for wall_time in self._rule(master).between(lower, upper, inc=True):
            value = self._to_value(master, wall_time)
            if not start <= in_timezone(value, "UTC") < until:
                continue
            recurrence_id = RecurrenceId(value=value)
            if recurrence_id in master.change_exception_dates or recurrence_id in master.delete_exception_dates:
                continue
            yield recurrence_id
