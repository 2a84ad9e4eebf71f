"""Visibility decisions for events in free/busy results."""

import logging
from enum import Enum
from typing import Callable, Optional, Protocol

from ..models.event import Classification, Event
from ..models.participant import (
    Participant,
    ParticipationStatus,
    Transparency,
    find_participant,
)
from ..session import ViewerContext

logger = logging.getLogger(__name__)


class FreeBusyVisibility(str, Enum):
    """Free/busy visibility a user configured for their own calendar."""

    ALL = "all"  # visible to users of all tenants
    INTERNAL_ONLY = "internal-only"  # visible within the own tenant
    NONE = "none"  # concealed, unless the event's folder is visible


class PermissionFacts(Protocol):
    """Externally computed permission facts of a tenant."""

    cross_tenant_free_busy: bool

    def get_free_busy_visibility(self, entity: int) -> FreeBusyVisibility:
        """Get the configured free/busy visibility of a user."""
        ...

    def choose_folder_id(self, event: Event) -> Optional[str]:
        """Get the folder representing the viewer's view on an event, if any."""
        ...

    def is_folder_visible(self, folder_id: str) -> bool:
        """Whether the viewer can see a folder."""
        ...

    def has_booking_delegate_privilege(self, user_id: int, resource_entity: int) -> bool:
        """Whether a user may book a resource on behalf of others."""
        ...

    def get_timezone(self, entity: int) -> str:
        """Get the configured timezone of a user."""
        ...


def include_for_free_busy(event: Event, participant: Participant) -> bool:
    """
    Whether an event occupies time of a participant.

    For group-scheduled events the participant has to attend without having
    declined, be visible and not transparent; otherwise the event's calendar
    user has to be the participant.

    Args:
        event: Event to check
        participant: Participant to check for

    Returns:
        True if the event counts for the participant's free/busy time
    """
    if event.is_group_scheduled:
        attendee = find_participant(event.attendees, participant)
        if attendee is None or attendee.hidden:
            return False
        if attendee.partstat == ParticipationStatus.DECLINED:
            return False
        transp = attendee.transp or event.transp
    else:
        if event.calendar_user is None or not event.calendar_user.matches(participant.entity):
            return False
        transp = event.transp
    return transp != Transparency.TRANSPARENT


class FreeBusyVisibilityEvaluator:
    """Decides whether events count towards a participant's free/busy exposure."""

    def __init__(
        self,
        viewer: ViewerContext,
        facts: PermissionFacts,
        attendance_predicate: Optional[Callable[[Event, Participant], bool]] = None,
    ):
        """
        Initialize visibility evaluator.

        Args:
            viewer: Acting viewer, receives warnings
            facts: Permission facts of the viewer's tenant
            attendance_predicate: Decides whether a participant attends an event
                (defaults to include_for_free_busy)
        """
        self.viewer = viewer
        self.facts = facts
        self.attendance_predicate = attendance_predicate or include_for_free_busy

    @staticmethod
    def _participates(event: Event, user_id: Optional[int]) -> bool:
        if user_id is None:
            return False
        if event.is_attendee(user_id):
            return True
        return not event.is_group_scheduled and event.calendar_user is not None and event.calendar_user.matches(user_id)

    def is_visible_to_viewer(self, event: Event, viewer_id: Optional[int], mask_uid: Optional[str]) -> bool:
        """Whether an event is visible in the viewer's free/busy view."""
        if mask_uid is not None and mask_uid == event.uid:
            return False
        if event.classification in (Classification.PUBLIC, Classification.CONFIDENTIAL):
            return True
        if event.classification == Classification.PRIVATE:
            if viewer_id is None:
                return False
            if event.calendar_user is not None and event.calendar_user.matches(viewer_id):
                return True
            return event.is_organizer(viewer_id) or event.is_attendee(viewer_id)
        raise ValueError(f"Unhandled classification: {event.classification}")

    def is_visible_for_participant(
        self,
        event: Event,
        participant: Participant,
        viewer_id: Optional[int],
        mask_uid: Optional[str],
    ) -> bool:
        """Whether an event counts for a participant's free/busy time as seen by the viewer."""
        if mask_uid is not None and mask_uid == event.uid:
            return False
        if not self.attendance_predicate(event, participant):
            return False
        if self._participates(event, viewer_id):
            return True
        if event.classification == Classification.PRIVATE:
            return False
        if participant.is_internal_type:
            try:
                return self._folder_visible_if_concealed(event, participant)
            except Exception as e:
                logger.warning(f"Unable to check free/busy visibility of event {event.id} for {participant.entity}: {e}")
                self.viewer.add_warning(e)
                return False
        return True

    def _folder_visible_if_concealed(self, event: Event, participant: Participant) -> bool:
        visibility = self.facts.get_free_busy_visibility(participant.entity)
        if visibility != FreeBusyVisibility.NONE:
            return True
        folder_id = self.facts.choose_folder_id(event)
        return folder_id is not None and self.facts.is_folder_visible(folder_id)

    def find_delegatable_resource(self, event: Event, viewer_id: int) -> Optional[Participant]:
        """
        Find a resource attendee the viewer acts as booking delegate for.

        Args:
            event: Event to scan
            viewer_id: The acting viewer

        Returns:
            The first such resource or room attendee, or None
        """
        for attendee in event.attendees:
            if not attendee.is_bookable or not attendee.is_internal:
                continue
            try:
                if self.facts.has_booking_delegate_privilege(viewer_id, attendee.entity):
                    return attendee
            except Exception as e:
                logger.warning(f"Unable to check booking delegate privilege for resource {attendee.entity}: {e}")
                self.viewer.add_warning(e)
        return None

    def timezone_for(self, participant: Participant) -> str:
        """Timezone used to resolve floating dates of a participant's events."""
        if participant.is_internal_individual:
            return self.facts.get_timezone(participant.entity)
        return self.viewer.timezone
