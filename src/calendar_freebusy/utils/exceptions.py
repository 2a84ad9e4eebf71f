"""Custom exceptions for the free/busy core."""

from typing import Any, Optional


class CalendarFreeBusyError(Exception):
    """Base exception for free/busy and recurrence lookup errors."""


class EventNotFoundError(CalendarFreeBusyError):
    """Raised when an event is absent or not visible in the requested folder."""

    def __init__(self, event_id: str, folder_id: Optional[str] = None):
        self.event_id = event_id
        self.folder_id = folder_id
        location = f" in folder {folder_id}" if folder_id else ""
        super().__init__(f"Event {event_id} not found{location}")


class InvalidRecurrenceIdError(CalendarFreeBusyError):
    """Raised when a series master is addressed without a recurrence id."""

    def __init__(self, event_id: str, recurrence_id: Any = None):
        self.event_id = event_id
        self.recurrence_id = recurrence_id
        super().__init__(f"Invalid recurrence id {recurrence_id!r} for event {event_id}")


class EventRecurrenceNotFoundError(CalendarFreeBusyError):
    """Raised when a recurrence does not exist within the addressed series."""

    def __init__(self, series_id: Optional[str], recurrence_id: Any = None):
        self.series_id = series_id
        self.recurrence_id = recurrence_id
        super().__init__(f"Recurrence {recurrence_id} not found in series {series_id}")


class ProtocolMismatchError(CalendarFreeBusyError):
    """Raised when a collaborator violates its result contract."""

    def __init__(self, message: str, expected: Optional[int] = None, actual: Optional[int] = None):
        self.expected = expected
        self.actual = actual
        super().__init__(message)


class FreeBusyNotAvailableError(CalendarFreeBusyError):
    """Free/busy data cannot be provided for a participant.

    Never raised by the core itself, only attached to results and
    diagnostics as a warning.
    """

    def __init__(self, address: Optional[str], restricted: bool = False):
        self.address = address
        self.restricted = restricted
        reason = "per configuration" if restricted else ""
        super().__init__(f"Free/busy not available for {address or 'unknown participant'} {reason}".strip())


class StorageError(CalendarFreeBusyError):
    """Raised when the storage layer cannot serve a request."""


class ConfigurationError(CalendarFreeBusyError):
    """Raised when configuration is invalid."""
