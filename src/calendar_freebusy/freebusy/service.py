"""Free/busy queries across participants of the own and of foreign tenants."""

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Callable, Optional

from ..models.event import Event, EventField
from ..models.freebusy import EventsResult, FreeBusyResult, FreeBusyTime
from ..models.participant import Participant, find_participant
from ..recurrence.expander import RecurrenceExpander
from ..resolvers.identity import IdentityResolver
from ..utils.exceptions import FreeBusyNotAvailableError
from .calculator import adjust_to_boundaries, get_free_busy_time, merge_free_busy
from .loader import OverlappingEventsLoader
from .visibility import (
    FreeBusyVisibility,
    FreeBusyVisibilityEvaluator,
    PermissionFacts,
    include_for_free_busy,
)

logger = logging.getLogger(__name__)

# Fields of free/busy events the viewer has access to
FREEBUSY_FIELDS = (
    EventField.CREATED_BY, EventField.ID, EventField.SERIES_ID, EventField.FOLDER_ID,
    EventField.CLASSIFICATION, EventField.SUMMARY, EventField.START_DATE, EventField.END_DATE,
    EventField.TRANSP, EventField.LOCATION, EventField.RECURRENCE_ID, EventField.STATUS,
    EventField.UID,
)

# Fields of free/busy events the viewer has no access to
RESTRICTED_FREEBUSY_FIELDS = (
    EventField.CREATED_BY, EventField.ID, EventField.SERIES_ID, EventField.CLASSIFICATION,
    EventField.START_DATE, EventField.END_DATE, EventField.TRANSP, EventField.RECURRENCE_ID,
    EventField.STATUS, EventField.UID,
)


def _address(participant: Participant) -> Optional[str]:
    return participant.email or participant.uri


class CrossTenantFreeBusyLookup:
    """Looks up overlapping events of participants living in other tenants."""

    def __init__(
        self,
        resolver: IdentityResolver,
        loader: OverlappingEventsLoader,
        facts_provider: Callable[[int], PermissionFacts],
        evaluator: FreeBusyVisibilityEvaluator,
    ):
        """
        Initialize cross-tenant lookup.

        Args:
            resolver: Resolves contact addresses to tenants and users
            loader: Loads overlapping events per tenant
            facts_provider: Permission facts per tenant id
            evaluator: Visibility evaluator of the acting viewer
        """
        self.resolver = resolver
        self.loader = loader
        self.facts_provider = facts_provider
        self.evaluator = evaluator

    def lookup(
        self,
        participants_by_address: dict[str, Participant],
        start: datetime,
        until: datetime,
        mask_uid: Optional[str] = None,
    ) -> dict[Participant, EventsResult]:
        """
        Get the overlapping events of external participants from their home tenants.

        Args:
            participants_by_address: External participants by e-mail address
            start: Inclusive start of the period
            until: Exclusive end of the period
            mask_uid: UID of an event to hide

        Returns:
            Events results mapped to the passed participants, tagged with their tenant
        """
        participants_per_tenant = self.resolver.resolve(participants_by_address)
        results: dict[Participant, EventsResult] = {}
        for tenant_id, resolved in participants_per_tenant.items():
            tenant_results = self._lookup_in_tenant(tenant_id, list(resolved.keys()), start, until, mask_uid)
            for resolved_participant, result in tenant_results.items():
                results[resolved[resolved_participant]] = result
        logger.debug(f"Cross-tenant lookup found results for {len(results)} participant(s)")
        return results

    def _lookup_in_tenant(
        self,
        tenant_id: int,
        participants: list[Participant],
        start: datetime,
        until: datetime,
        mask_uid: Optional[str],
    ) -> dict[Participant, EventsResult]:
        facts = self.facts_provider(tenant_id)
        if not facts.cross_tenant_free_busy or not participants:
            return {}

        results: dict[Participant, EventsResult] = {}
        considered = []
        for participant in participants:
            # only users sharing their free/busy data with all tenants
            if participant.is_internal_individual and facts.get_free_busy_visibility(participant.entity) == FreeBusyVisibility.ALL:
                considered.append(participant)
            else:
                error = FreeBusyNotAvailableError(_address(participant), restricted=True)
                results[participant] = EventsResult(error=error, tenant_id=tenant_id)

        overlapping = self.loader.load_per_participant(
            tenant_id,
            considered,
            start,
            until,
            lambda e, p: self.evaluator.is_visible_to_viewer(e, None, mask_uid) and include_for_free_busy(e, p),
        )
        for participant, events in overlapping.items():
            restricted = [e.project(RESTRICTED_FREEBUSY_FIELDS) for e in events]
            results[participant] = EventsResult(events=restricted, tenant_id=tenant_id)
        return results


class FreeBusyService:
    """Calculates free/busy times for participants as seen by a viewer."""

    def __init__(
        self,
        evaluator: FreeBusyVisibilityEvaluator,
        loader: OverlappingEventsLoader,
        expander: RecurrenceExpander,
        cross_tenant_lookup: Optional[CrossTenantFreeBusyLookup] = None,
    ):
        """
        Initialize free/busy service.

        Args:
            evaluator: Visibility evaluator of the acting viewer
            loader: Loader for overlapping events
            expander: Expands series masters into occurrences
            cross_tenant_lookup: Lookup for participants of other tenants (optional)
        """
        self.evaluator = evaluator
        self.loader = loader
        self.expander = expander
        self.cross_tenant_lookup = cross_tenant_lookup

    @property
    def viewer(self):
        return self.evaluator.viewer

    @property
    def facts(self) -> PermissionFacts:
        return self.evaluator.facts

    def free_busy(
        self,
        participants: Iterable[Participant],
        start: datetime,
        until: datetime,
        merge: bool = True,
    ) -> dict[Participant, FreeBusyResult]:
        """
        Get free/busy times of participants in a period.

        Args:
            participants: Participants as requested
            start: Inclusive start of the period
            until: Exclusive end of the period
            merge: Whether to merge overlapping free/busy times

        Returns:
            Free/busy results mapped to the requested participants, in request order
        """
        participants = list(participants)
        internal, external_by_address = self._separate(participants)

        events_per_participant: dict[Participant, EventsResult] = {}
        events_per_participant.update(self.get_overlapping_events(internal, start, until))
        if external_by_address and self.cross_tenant_lookup is not None and self.facts.cross_tenant_free_busy:
            events_per_participant.update(
                self.cross_tenant_lookup.lookup(external_by_address, start, until, self.viewer.mask_uid)
            )

        results: dict[Participant, FreeBusyResult] = {}
        for participant in participants:
            events_result = events_per_participant.get(participant)
            if events_result is None:
                results[participant] = FreeBusyResult(warnings=[FreeBusyNotAvailableError(_address(participant))])
                continue
            warnings = [events_result.error] if events_result.error is not None else []
            times = self._get_free_busy_times(participant, events_result, start, until)
            if merge and len(times) > 1:
                times = merge_free_busy(times)
            results[participant] = FreeBusyResult(free_busy_times=times, warnings=warnings)

        logger.debug(f"Calculated free/busy for {len(results)} participant(s)")
        return results

    def get_overlapping_events(
        self, participants: list[Participant], start: datetime, until: datetime
    ) -> dict[Participant, EventsResult]:
        """
        Get the overlapping events of internal participants of the viewer's tenant.

        Participants that conceal their free/busy data from the viewer get a
        warning attached.
        """
        if not participants:
            return {}
        viewer = self.viewer
        visibilities = {
            p: self.facts.get_free_busy_visibility(p.entity)
            for p in participants
            if p.is_internal_individual
        }
        overlapping = self.loader.load_per_participant(
            viewer.tenant_id,
            participants,
            start,
            until,
            lambda e, p: self.evaluator.is_visible_for_participant(e, p, viewer.user_id, viewer.mask_uid),
            extra_entities=[viewer.user_id],
        )
        results: dict[Participant, EventsResult] = {}
        for participant, events in overlapping.items():
            error = None
            if visibilities.get(participant) == FreeBusyVisibility.NONE and participant.entity != viewer.user_id:
                error = FreeBusyNotAvailableError(_address(participant), restricted=True)
            results[participant] = EventsResult(events=events, error=error, tenant_id=viewer.tenant_id)
        return results

    @staticmethod
    def _separate(participants: list[Participant]) -> tuple[list[Participant], dict[str, Participant]]:
        internal: list[Participant] = []
        external_by_address: dict[str, Participant] = {}
        for participant in participants:
            if participant.is_internal:
                internal.append(participant)
            elif participant.is_external_individual and participant.email:
                external_by_address[participant.email] = participant
        return internal, external_by_address

    def _get_free_busy_times(
        self, participant: Participant, events_result: EventsResult, start: datetime, until: datetime
    ) -> list[FreeBusyTime]:
        if not events_result.events:
            return []
        local = events_result.tenant_id == self.viewer.tenant_id
        timezone = self.evaluator.timezone_for(participant)
        free_busy_times = []
        for event in events_result.events:
            if event.looks_like_series_master:
                occurrences = self.expander.occurrences(event, start - event.duration, until)
            else:
                occurrences = [event]
            for occurrence in occurrences:
                resulting = self._get_resulting_event(occurrence, participant) if local else occurrence
                free_busy_time = adjust_to_boundaries(get_free_busy_time(resulting, timezone), start, until)
                if free_busy_time is not None:
                    free_busy_times.append(free_busy_time)
        return free_busy_times

    def _get_resulting_event(self, event: Event, participant: Participant) -> Event:
        """Copy an event with the fields the viewer may see in free/busy results."""
        try:
            folder_id = self.facts.choose_folder_id(event)
        except Exception as e:
            logger.warning(f"Unexpected error choosing folder id for event {event.id}: {e}")
            self.viewer.add_warning(e)
            folder_id = None
        resource = self.evaluator.find_delegatable_resource(event, self.viewer.user_id)
        if folder_id is None and resource is None:
            resulting = event.project(RESTRICTED_FREEBUSY_FIELDS)
        else:
            resulting = event.project(FREEBUSY_FIELDS)
            resulting.folder_id = folder_id
        attendee = find_participant(event.attendees, participant)
        if attendee is not None and attendee.transp is not None:
            resulting.transp = attendee.transp
        return resulting
