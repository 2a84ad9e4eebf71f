"""Event data model for free/busy and recurrence lookups."""

import re
from datetime import date, datetime, timedelta
from enum import Enum
from functools import total_ordering
from typing import Any, Iterable, Optional, Union

from dateutil.parser import isoparse
from pydantic import BaseModel, Field, model_validator

from ..utils.date_utils import as_datetime, ensure_utc
from .participant import CalendarUser, Participant, Transparency

DateValue = Union[datetime, date]

_BASIC_DATE = re.compile(r"^\d{8}$")


class Classification(str, Enum):
    """Event classification."""

    PUBLIC = "public"
    PRIVATE = "private"
    CONFIDENTIAL = "confidential"


class EventStatus(str, Enum):
    """Event status enumeration."""

    CONFIRMED = "confirmed"
    TENTATIVE = "tentative"
    CANCELLED = "cancelled"


class EventField(str, Enum):
    """Event fields that can be requested from storage, named after the attribute."""

    ID = "id"
    SERIES_ID = "series_id"
    RECURRENCE_ID = "recurrence_id"
    UID = "uid"
    FOLDER_ID = "folder_id"
    CALENDAR_USER = "calendar_user"
    CREATED_BY = "created_by"
    ORGANIZER = "organizer"
    SUMMARY = "summary"
    LOCATION = "location"
    CLASSIFICATION = "classification"
    TRANSP = "transp"
    STATUS = "status"
    START_DATE = "start"
    END_DATE = "end"
    RECURRENCE_RULE = "recurrence_rule"
    CHANGE_EXCEPTION_DATES = "change_exception_dates"
    DELETE_EXCEPTION_DATES = "delete_exception_dates"
    ATTENDEES = "attendees"


@total_ordering
class RecurrenceId(BaseModel):
    """Position of an occurrence within a recurring series.

    Two recurrence ids are equal when they denote the same original start,
    regardless of representation: timezone-bound values compare by their UTC
    instant, and an all-day date matches any date-time on the same day.
    """

    value: DateValue

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def _coerce(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"value": cls._parse_value(data)}
        if isinstance(data, (date, datetime)):
            return {"value": data}
        return data

    @staticmethod
    def _parse_value(text: str) -> DateValue:
        text = text.strip()
        if _BASIC_DATE.match(text):
            return date(int(text[:4]), int(text[4:6]), int(text[6:8]))
        return isoparse(text)

    @classmethod
    def parse(cls, text: str) -> "RecurrenceId":
        """Parse ``20260105``, ``20260105T090000Z`` or ISO 8601 text."""
        return cls(value=cls._parse_value(text))

    def _normalized(self) -> DateValue:
        if isinstance(self.value, datetime):
            if self.value.tzinfo is None:
                return self.value
            return ensure_utc(self.value).replace(tzinfo=None)
        return self.value

    def _day(self) -> date:
        normalized = self._normalized()
        return normalized.date() if isinstance(normalized, datetime) else normalized

    def matches(self, other: Optional["RecurrenceId"]) -> bool:
        if other is None:
            return False
        mine, theirs = self._normalized(), other._normalized()
        if isinstance(mine, datetime) and isinstance(theirs, datetime):
            return mine == theirs
        return self._day() == other._day()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RecurrenceId):
            return NotImplemented
        return self.matches(other)

    def __lt__(self, other: "RecurrenceId") -> bool:
        return as_datetime(self._normalized()) < as_datetime(other._normalized())

    def __hash__(self) -> int:
        return hash(self._day())

    def __str__(self) -> str:
        normalized = self._normalized()
        if isinstance(normalized, datetime):
            suffix = "Z" if isinstance(self.value, datetime) and self.value.tzinfo else ""
            return normalized.strftime("%Y%m%dT%H%M%S") + suffix
        return normalized.strftime("%Y%m%d")


class Event(BaseModel):
    """Calendar event as projected from storage.

    An event is either singular (no series id), a series master (id equals
    the series id, no recurrence id) or a series occurrence (series id and
    recurrence id set).
    """

    # Identifiers
    id: str
    series_id: Optional[str] = None
    recurrence_id: Optional[RecurrenceId] = None
    uid: Optional[str] = None
    folder_id: Optional[str] = None

    # People
    calendar_user: Optional[CalendarUser] = None
    created_by: Optional[CalendarUser] = None
    organizer: Optional[CalendarUser] = None
    attendees: list[Participant] = Field(default_factory=list)

    # Basic properties
    summary: Optional[str] = None
    location: Optional[str] = None

    # Free/busy relevant properties
    classification: Classification = Classification.PUBLIC
    transp: Optional[Transparency] = Transparency.OPAQUE
    status: Optional[EventStatus] = None

    # Time properties; naive datetimes and dates are floating
    start: DateValue
    end: DateValue

    # Recurrence
    recurrence_rule: Optional[str] = None
    change_exception_dates: set[RecurrenceId] = Field(default_factory=set)
    delete_exception_dates: set[RecurrenceId] = Field(default_factory=set)

    @property
    def is_series_master(self) -> bool:
        return self.series_id is not None and self.id == self.series_id and self.recurrence_id is None

    @property
    def is_series_exception(self) -> bool:
        return (
            self.series_id is not None
            and self.recurrence_id is not None
            and self.id != self.series_id
        )

    @property
    def looks_like_series_master(self) -> bool:
        return self.is_series_master and bool(self.recurrence_rule)

    @property
    def is_group_scheduled(self) -> bool:
        return len(self.attendees) > 0

    @property
    def duration(self) -> timedelta:
        return as_datetime(self.end) - as_datetime(self.start)

    def is_organizer(self, entity: Optional[int]) -> bool:
        return self.organizer is not None and self.organizer.matches(entity)

    def is_attendee(self, entity: Optional[int]) -> bool:
        return any(attendee.matches(entity) for attendee in self.attendees)

    def project(self, fields: Iterable[EventField]) -> "Event":
        """
        Copy the event, keeping only the requested fields.

        Identifier and start/end are always kept.

        Args:
            fields: Fields to keep

        Returns:
            New Event holding the requested subset
        """
        names = {EventField.ID.value, EventField.START_DATE.value, EventField.END_DATE.value}
        names.update(field.value for field in fields)
        data = {name: getattr(self, name) for name in names}
        for name in (EventField.ATTENDEES.value, EventField.CHANGE_EXCEPTION_DATES.value,
                     EventField.DELETE_EXCEPTION_DATES.value):
            if name in data:
                data[name] = type(getattr(self, name))(data[name])
        return Event(**data)


class RecurrenceInfo(BaseModel):
    """Relationship between an occurrence and its series master."""

    overridden: bool
    rescheduled: bool
    master_event: Optional[Event] = None
    occurrence_event: Event
