"""Loading of events overlapping a period for a set of participants."""

import logging
from datetime import datetime
from typing import Callable, Iterable, Optional

from ..models.event import Event, EventField
from ..models.participant import Participant
from ..storage.base import CalendarStorage, TenantStorageProvider

logger = logging.getLogger(__name__)

IncludePredicate = Callable[[Event, Participant], bool]

# Participant-independent fields needed for free/busy decisions and results
SKELETON_FIELDS = (
    EventField.ID,
    EventField.SERIES_ID,
    EventField.RECURRENCE_ID,
    EventField.UID,
    EventField.FOLDER_ID,
    EventField.CALENDAR_USER,
    EventField.CREATED_BY,
    EventField.ORGANIZER,
    EventField.SUMMARY,
    EventField.LOCATION,
    EventField.CLASSIFICATION,
    EventField.TRANSP,
    EventField.STATUS,
    EventField.START_DATE,
    EventField.END_DATE,
    EventField.RECURRENCE_RULE,
    EventField.CHANGE_EXCEPTION_DATES,
    EventField.DELETE_EXCEPTION_DATES,
)


class OverlappingEventsLoader:
    """Loads overlapping events with at most two storage round trips per tenant."""

    def __init__(self, storage_provider: TenantStorageProvider):
        """
        Initialize events loader.

        Args:
            storage_provider: Provider for tenant-scoped storage
        """
        self.storage_provider = storage_provider

    def load_per_participant(
        self,
        tenant_id: int,
        participants: Iterable[Participant],
        start: datetime,
        until: datetime,
        include_predicate: Optional[IncludePredicate] = None,
        extra_entities: Iterable[int] = (),
    ) -> dict[Participant, list[Event]]:
        """
        Load overlapping events and sort them to the participants.

        Every requested participant gets an entry; only internal participants
        can have events.

        Args:
            tenant_id: Tenant to load from
            participants: Participants to load events for
            start: Inclusive start of the period
            until: Exclusive end of the period
            include_predicate: Decides whether an event counts for a participant (None to include all)
            extra_entities: Further entities to load attendee data for, e.g. the viewer

        Returns:
            Events in storage order, mapped to each requested participant
        """
        participants = list(participants)
        events_per_participant: dict[Participant, list[Event]] = {p: [] for p in participants}
        internal = [p for p in participants if p.is_internal_type]
        if not internal:
            return events_per_participant

        events = self.storage_provider.with_tenant_storage(
            tenant_id,
            lambda storage: self._load(storage, internal, start, until, True, extra_entities),
        )
        for event in events:
            for participant in internal:
                if include_predicate is None or include_predicate(event, participant):
                    events_per_participant[participant].append(event)
        return events_per_participant

    def load_flat(
        self,
        tenant_id: int,
        participants: Iterable[Participant],
        start: datetime,
        until: datetime,
        include_transparent: bool = False,
    ) -> list[Event]:
        """
        Load all events overlapping a period for any of the participants.

        Args:
            tenant_id: Tenant to load from
            participants: Participants to load events for
            start: Inclusive start of the period
            until: Exclusive end of the period
            include_transparent: Whether to include events marked transparent

        Returns:
            Events in storage order
        """
        internal = [p for p in participants if p.is_internal_type]
        if not internal:
            return []
        return self.storage_provider.with_tenant_storage(
            tenant_id,
            lambda storage: self._load(storage, internal, start, until, include_transparent),
        )

    @staticmethod
    def _load(
        storage: CalendarStorage,
        participants: list[Participant],
        start: datetime,
        until: datetime,
        include_transparent: bool,
        extra_entities: Iterable[int] = (),
    ) -> list[Event]:
        events = storage.search_overlapping_events(
            participants, include_transparent, start, until, SKELETON_FIELDS
        )
        logger.debug(f"Found {len(events)} overlapping event(s) for {len(participants)} participant(s)")
        if not events:
            return events

        entities = {p.entity for p in participants}
        entities.update(extra_entities)
        attendees_by_id = storage.load_attendees([e.id for e in events], entities)
        for event in events:
            event.attendees = list(attendees_by_id.get(event.id) or [])
        return events
