"""Resolution of the master/occurrence relationship of recurring events."""

import logging
from typing import Optional

from ..freebusy.visibility import PermissionFacts
from ..models.event import DateValue, Event, RecurrenceId, RecurrenceInfo
from ..storage.base import CalendarStorage
from ..utils.date_utils import in_timezone, is_floating
from ..utils.exceptions import (
    EventNotFoundError,
    EventRecurrenceNotFoundError,
    InvalidRecurrenceIdError,
)
from .expander import RecurrenceExpander

logger = logging.getLogger(__name__)


def _schedule_key(value: DateValue) -> tuple:
    return (type(value).__name__, is_floating(value), in_timezone(value, "UTC"))


def is_reschedule(original: Event, updated: Event) -> bool:
    """
    Whether two versions of an occurrence denote a different schedule.

    Args:
        original: The rule-generated occurrence
        updated: The stored occurrence

    Returns:
        True if start, end or recurrence rule differ
    """
    if _schedule_key(original.start) != _schedule_key(updated.start):
        return True
    if _schedule_key(original.end) != _schedule_key(updated.end):
        return True
    return (original.recurrence_rule or None) != (updated.recurrence_rule or None)


class RecurrenceInfoResolver:
    """Determines how an occurrence relates to its series."""

    def __init__(
        self,
        storage: CalendarStorage,
        expander: RecurrenceExpander,
        facts: Optional[PermissionFacts] = None,
    ):
        """
        Initialize recurrence info resolver.

        Args:
            storage: Storage of the viewer's tenant
            expander: Recurrence rule expander
            facts: Folder visibility facts of the viewer (None to skip folder permission checks)
        """
        self.storage = storage
        self.expander = expander
        self.facts = facts

    def resolve(
        self, folder_id: str, event_id: str, recurrence_id: Optional[RecurrenceId] = None
    ) -> RecurrenceInfo:
        """
        Resolve the recurrence info of an event occurrence.

        Args:
            folder_id: Folder the event is addressed in
            event_id: Identifier of a series master or change exception
            recurrence_id: Recurrence id of the occurrence (required for series masters)

        Returns:
            The recurrence info

        Raises:
            EventNotFoundError: If the event is absent or not visible in the folder
            InvalidRecurrenceIdError: If a series master is addressed without recurrence id
            EventRecurrenceNotFoundError: If there is no such occurrence, or the event is not recurring
        """
        event = self.storage.load_event(event_id)
        if event is None or not self._is_in_folder(event, folder_id):
            raise EventNotFoundError(event_id, folder_id)

        if event.is_series_master:
            if recurrence_id is None:
                raise InvalidRecurrenceIdError(event_id, recurrence_id)
            master: Optional[Event] = event
            occurrence = self._load_occurrence(event, recurrence_id)
        elif event.is_series_exception:
            if recurrence_id is not None and not recurrence_id.matches(event.recurrence_id):
                raise EventRecurrenceNotFoundError(event.series_id, recurrence_id)
            occurrence = event
            master = self._load_master(event.series_id)
        else:
            raise EventRecurrenceNotFoundError(event.series_id, recurrence_id)

        return self._classify(master, occurrence)

    def _load_occurrence(self, master: Event, recurrence_id: RecurrenceId) -> Event:
        if recurrence_id in master.change_exception_dates:
            occurrence = self.storage.load_exception(master.series_id, recurrence_id)
        else:
            occurrence = self.expander.occurrence_at(master, recurrence_id)
        if occurrence is None or not recurrence_id.matches(occurrence.recurrence_id):
            raise EventRecurrenceNotFoundError(master.series_id, recurrence_id)
        return occurrence

    def _load_master(self, series_id: str) -> Optional[Event]:
        master = self.storage.load_event(series_id)
        if master is None or not self._is_accessible(master):
            logger.debug(f"Series master {series_id} not accessible, treating exception as orphaned")
            return None
        return master

    def _classify(self, master: Optional[Event], occurrence: Event) -> RecurrenceInfo:
        # without the master's rule the schedule cannot be compared, assume it changed
        if master is None:
            return RecurrenceInfo(overridden=True, rescheduled=True, occurrence_event=occurrence)
        if occurrence.id == master.series_id:
            return RecurrenceInfo(
                overridden=False, rescheduled=False, master_event=master, occurrence_event=occurrence
            )
        idealized = self.expander.occurrence_at(master, occurrence.recurrence_id)
        rescheduled = idealized is None or is_reschedule(idealized, occurrence)
        return RecurrenceInfo(
            overridden=True, rescheduled=rescheduled, master_event=master, occurrence_event=occurrence
        )

    @staticmethod
    def _folder_ids(event: Event) -> set[str]:
        folder_ids = {a.folder_id for a in event.attendees if a.folder_id}
        if event.folder_id:
            folder_ids.add(event.folder_id)
        return folder_ids

    def _is_in_folder(self, event: Event, folder_id: str) -> bool:
        if folder_id not in self._folder_ids(event):
            return False
        return self.facts is None or self.facts.is_folder_visible(folder_id)

    def _is_accessible(self, event: Event) -> bool:
        if self.facts is None:
            return True
        return any(self.facts.is_folder_visible(f) for f in self._folder_ids(event))
