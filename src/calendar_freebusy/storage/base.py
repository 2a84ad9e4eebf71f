"""Abstract base classes for tenant-scoped calendar storage."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Callable, Iterable, Optional, TypeVar

from ..models.event import Event, EventField, RecurrenceId
from ..models.participant import Participant

T = TypeVar("T")


class CalendarStorage(ABC):
    """Read access to the events of a single tenant."""

    @abstractmethod
    def search_overlapping_events(
        self,
        participants: Iterable[Participant],
        include_transparent: bool,
        start: datetime,
        until: datetime,
        fields: Iterable[EventField],
    ) -> list[Event]:
        """
        Search events of the participants overlapping a period.

        Args:
            participants: Internal participants whose events are searched
            include_transparent: Whether to include events marked transparent
            start: Inclusive start of the period
            until: Exclusive end of the period
            fields: Event fields to return

        Returns:
            Event skeletons holding the requested fields, in storage order

        Raises:
            StorageError: If the search fails
        """

    @abstractmethod
    def load_attendees(
        self, event_ids: Iterable[str], entities: Iterable[int]
    ) -> dict[str, list[Participant]]:
        """
        Bulk-load the attendees of several events.

        Args:
            event_ids: Identifiers of the events to load attendees for
            entities: Internal entities whose personal attendee data (e.g. folder
                references) is needed, typically the queried participants and the viewer

        Returns:
            Full attendee lists mapped by event identifier

        Raises:
            StorageError: If loading fails
        """

    @abstractmethod
    def load_event(
        self, event_id: str, fields: Optional[Iterable[EventField]] = None
    ) -> Optional[Event]:
        """
        Load a single stored event.

        Args:
            event_id: Event identifier
            fields: Event fields to return (None for all)

        Returns:
            The event, or None if there is none
        """

    @abstractmethod
    def load_exception(
        self,
        series_id: str,
        recurrence_id: RecurrenceId,
        fields: Optional[Iterable[EventField]] = None,
    ) -> Optional[Event]:
        """
        Load the stored change exception of a series.

        Args:
            series_id: Series identifier
            recurrence_id: Recurrence id of the exception
            fields: Event fields to return (None for all)

        Returns:
            The exception event, or None if there is none
        """


class TenantStorageProvider(ABC):
    """Hands out storage handles scoped to a single tenant."""

    @abstractmethod
    def storage(self, tenant_id: int) -> AbstractContextManager[CalendarStorage]:
        """
        Acquire the storage of a tenant, releasing it when the context exits.

        Raises:
            StorageError: If the tenant's storage cannot be acquired
        """

    def with_tenant_storage(self, tenant_id: int, fn: Callable[[CalendarStorage], T]) -> T:
        """Run ``fn`` against the storage of a tenant."""
        with self.storage(tenant_id) as storage:
            return fn(storage)
