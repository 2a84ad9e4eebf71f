"""In-memory calendar storage, used for datasets loaded from YAML and in tests."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, Optional

from ..models.event import Event, EventField, RecurrenceId
from ..models.participant import Participant, Transparency
from ..utils.date_utils import ensure_utc, in_timezone
from ..utils.exceptions import StorageError
from .base import CalendarStorage, TenantStorageProvider

logger = logging.getLogger(__name__)


class InMemoryCalendarStorage(CalendarStorage):
    """Calendar storage of one tenant, backed by a list of events.

    Floating dates are compared as UTC wall-clock time. Series masters with a
    recurrence rule are considered overlapping once they start before the end
    of the period, the actual occurrences are left to the recurrence expander.
    Personal folder references of attendees are only disclosed for the
    entities requested when loading attendees.
    """

    def __init__(self, events: Optional[Iterable[Event]] = None):
        self._events: list[Event] = list(events or [])
        self.search_calls = 0
        self.attendee_calls = 0

    def add_event(self, event: Event) -> None:
        self._events.append(event)

    def search_overlapping_events(
        self,
        participants: Iterable[Participant],
        include_transparent: bool,
        start: datetime,
        until: datetime,
        fields: Iterable[EventField],
    ) -> list[Event]:
        self.search_calls += 1
        entities = {p.entity for p in participants if p.is_internal}
        fields = list(fields)
        result = []
        for event in self._events:
            if not include_transparent and event.transp == Transparency.TRANSPARENT:
                continue
            if not self._involves(event, entities):
                continue
            if not self._overlaps(event, start, until):
                continue
            result.append(event.project(fields))
        return result

    def load_attendees(
        self, event_ids: Iterable[str], entities: Iterable[int]
    ) -> dict[str, list[Participant]]:
        self.attendee_calls += 1
        wanted_ids = set(event_ids)
        wanted_entities = set(entities)
        attendees_by_id: dict[str, list[Participant]] = {}
        for event in self._events:
            if event.id in wanted_ids:
                attendees_by_id[event.id] = [
                    a if a.is_internal and a.entity in wanted_entities else a.model_copy(update={"folder_id": None})
                    for a in event.attendees
                ]
        return attendees_by_id

    def load_event(
        self, event_id: str, fields: Optional[Iterable[EventField]] = None
    ) -> Optional[Event]:
        for event in self._events:
            if event.id == event_id:
                return event.project(fields) if fields is not None else event.model_copy(deep=True)
        return None

    def load_exception(
        self,
        series_id: str,
        recurrence_id: RecurrenceId,
        fields: Optional[Iterable[EventField]] = None,
    ) -> Optional[Event]:
        for event in self._events:
            if (
                event.series_id == series_id
                and event.id != series_id
                and recurrence_id.matches(event.recurrence_id)
            ):
                return event.project(fields) if fields is not None else event.model_copy(deep=True)
        return None

    @staticmethod
    def _involves(event: Event, entities: set[Optional[int]]) -> bool:
        if event.is_group_scheduled:
            return any(a.is_internal and a.entity in entities for a in event.attendees)
        return event.calendar_user is not None and event.calendar_user.entity in entities

    @staticmethod
    def _overlaps(event: Event, start: datetime, until: datetime) -> bool:
        event_start = in_timezone(event.start, "UTC")
        if event_start >= ensure_utc(until):
            return False
        if event.looks_like_series_master:
            return True
        return in_timezone(event.end, "UTC") > ensure_utc(start)


class InMemoryStorageProvider(TenantStorageProvider):
    """Storage provider over in-memory tenant storages."""

    def __init__(self, tenants: Optional[dict[int, InMemoryCalendarStorage]] = None):
        self.tenants: dict[int, InMemoryCalendarStorage] = dict(tenants or {})
        self.open_handles = 0

    @contextmanager
    def storage(self, tenant_id: int) -> Iterator[CalendarStorage]:
        storage = self.tenants.get(tenant_id)
        if storage is None:
            raise StorageError(f"No storage for tenant {tenant_id}")
        self.open_handles += 1
        logger.debug(f"Acquired storage for tenant {tenant_id}")
        try:
            yield storage
        finally:
            self.open_handles -= 1
            logger.debug(f"Released storage for tenant {tenant_id}")
