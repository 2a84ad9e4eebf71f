"""Calendar user and participant data model."""

from enum import Enum
from typing import Any, Iterable, Optional

from pydantic import BaseModel


class CalendarUserType(str, Enum):
    """Calendar user type enumeration."""

    INDIVIDUAL = "individual"
    GROUP = "group"
    RESOURCE = "resource"
    ROOM = "room"
    UNKNOWN = "unknown"


class ParticipationStatus(str, Enum):
    """Participation status of an attendee."""

    NEEDS_ACTION = "needs-action"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    TENTATIVE = "tentative"
    DELEGATED = "delegated"


class Transparency(str, Enum):
    """Time transparency of an event or attendee."""

    OPAQUE = "opaque"
    TRANSPARENT = "transparent"


class CalendarUser(BaseModel):
    """A calendar user, either bound to a tenant entity or an external address."""

    entity: Optional[int] = None  # internal user/resource/group id within the tenant
    uri: Optional[str] = None  # mailto: address
    cn: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def is_internal(self) -> bool:
        return self.entity is not None and self.entity > 0

    @property
    def email(self) -> Optional[str]:
        """The e-mail address from a mailto: uri, if any."""
        if not self.uri:
            return None
        uri = self.uri.strip()
        if uri.lower().startswith("mailto:"):
            uri = uri[len("mailto:"):]
        return uri.lower() if "@" in uri else None

    def matches(self, entity: Optional[int]) -> bool:
        """Whether this calendar user is the internal entity with the given id."""
        return entity is not None and self.is_internal and self.entity == entity


class Participant(CalendarUser):
    """Event attendee.

    Participants compare equal by identity and calendar user type: the entity id
    for internal participants, the e-mail address for external ones.
    """

    cu_type: CalendarUserType = CalendarUserType.INDIVIDUAL
    partstat: ParticipationStatus = ParticipationStatus.NEEDS_ACTION
    hidden: bool = False
    transp: Optional[Transparency] = None
    folder_id: Optional[str] = None

    def identity_key(self) -> tuple[Any, ...]:
        if self.is_internal:
            return ("entity", self.entity, self.cu_type)
        return ("uri", self.email or self.uri, self.cu_type)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Participant):
            return NotImplemented
        return self.identity_key() == other.identity_key()

    def __hash__(self) -> int:
        return hash(self.identity_key())

    @property
    def is_internal_type(self) -> bool:
        """Whether this is an internal individual, resource or group participant."""
        if not self.is_internal:
            return False
        if self.cu_type in (
            CalendarUserType.INDIVIDUAL,
            CalendarUserType.RESOURCE,
            CalendarUserType.GROUP,
        ):
            return True
        if self.cu_type in (CalendarUserType.ROOM, CalendarUserType.UNKNOWN):
            return False
        raise ValueError(f"Unhandled calendar user type: {self.cu_type}")

    @property
    def is_internal_individual(self) -> bool:
        return self.is_internal and self.cu_type == CalendarUserType.INDIVIDUAL

    @property
    def is_external_individual(self) -> bool:
        return not self.is_internal and self.cu_type == CalendarUserType.INDIVIDUAL

    @property
    def is_bookable(self) -> bool:
        """Whether this participant is a resource or a room."""
        return self.cu_type in (CalendarUserType.RESOURCE, CalendarUserType.ROOM)


def find_participant(
    participants: Optional[Iterable[Participant]], wanted: Participant
) -> Optional[Participant]:
    """Find the participant with the same identity as ``wanted``."""
    for participant in participants or ():
        if participant == wanted:
            return participant
    return None


def find_entity(
    participants: Optional[Iterable[Participant]], entity: Optional[int]
) -> Optional[Participant]:
    """Find the internal participant with the given entity id."""
    for participant in participants or ():
        if participant.matches(entity):
            return participant
    return None
