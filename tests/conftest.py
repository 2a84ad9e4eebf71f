"""Shared fixtures: a two-tenant calendar dataset and fake collaborators."""

from datetime import datetime
from typing import Optional

import pytest
import pytz

from calendar_freebusy.directory import (
    StaticIdentityService,
    StaticPermissionFacts,
    TenantSettings,
    UserSettings,
)
from calendar_freebusy.freebusy.visibility import FreeBusyVisibility
from calendar_freebusy.models.event import Classification, Event, RecurrenceId
from calendar_freebusy.models.participant import (
    CalendarUser,
    CalendarUserType,
    Participant,
    ParticipationStatus,
    Transparency,
)
from calendar_freebusy.recurrence.expander import RRuleExpander
from calendar_freebusy.session import ViewerContext
from calendar_freebusy.storage.memory import InMemoryCalendarStorage, InMemoryStorageProvider

ALICE, BOB, CAROL, ROOM_10 = 1, 2, 3, 10
DAVE, ERIN = 21, 22
TENANT_1, TENANT_2 = 1, 2


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=pytz.utc)


def attendee(entity: int, folder_id: Optional[str] = None, **kwargs) -> Participant:
    kwargs.setdefault("partstat", ParticipationStatus.ACCEPTED)
    return Participant(entity=entity, folder_id=folder_id, **kwargs)


def meeting(event_id: str, start: datetime, end: datetime, attendees, **kwargs) -> Event:
    kwargs.setdefault("uid", f"uid-{event_id}")
    return Event(id=event_id, start=start, end=end, attendees=list(attendees), **kwargs)


@pytest.fixture
def window() -> tuple[datetime, datetime]:
    return utc(2026, 1, 5), utc(2026, 1, 12)


@pytest.fixture
def tenant_1() -> TenantSettings:
    organizer = CalendarUser(entity=ALICE, uri="mailto:alice@one.example")
    events = [
        meeting("e-team", utc(2026, 1, 5, 9), utc(2026, 1, 5, 10),
                [attendee(ALICE, "f1"), attendee(BOB, "f2")], organizer=organizer, summary="Team"),
        meeting("e-private", utc(2026, 1, 6, 14), utc(2026, 1, 6, 15),
                [attendee(BOB, "f2")], classification=Classification.PRIVATE,
                organizer=CalendarUser(entity=BOB)),
        meeting("e-declined", utc(2026, 1, 7, 9), utc(2026, 1, 7, 10),
                [attendee(ALICE, "f1"), attendee(BOB, "f2", partstat=ParticipationStatus.DECLINED)]),
        meeting("e-transparent", utc(2026, 1, 8, 12), utc(2026, 1, 8, 13),
                [attendee(BOB, "f2")], transp=Transparency.TRANSPARENT),
        meeting("e-carol", utc(2026, 1, 5, 11), utc(2026, 1, 5, 12), [attendee(CAROL, "f3")]),
        meeting("e-room", utc(2026, 1, 9, 10), utc(2026, 1, 9, 11),
                [attendee(BOB, "f2"), attendee(ROOM_10, cu_type=CalendarUserType.RESOURCE)]),
        meeting("s1", utc(2026, 1, 5, 8), utc(2026, 1, 5, 8, 30),
                [attendee(ALICE, "f1"), attendee(BOB, "f2")], series_id="s1",
                recurrence_rule="FREQ=WEEKLY;COUNT=4", summary="Weekly",
                change_exception_dates={RecurrenceId(value=utc(2026, 1, 12, 8)),
                                        RecurrenceId(value=utc(2026, 1, 19, 8))}),
        meeting("s1-x1", utc(2026, 1, 12, 9), utc(2026, 1, 12, 9, 30),
                [attendee(ALICE, "f1"), attendee(BOB, "f2")], series_id="s1",
                recurrence_id=RecurrenceId(value=utc(2026, 1, 12, 8)), summary="Weekly (moved)"),
        meeting("s1-x2", utc(2026, 1, 19, 8), utc(2026, 1, 19, 8, 30),
                [attendee(ALICE, "f1"), attendee(BOB, "f2")], series_id="s1",
                recurrence_id=RecurrenceId(value=utc(2026, 1, 19, 8)), summary="Weekly (new agenda)"),
        meeting("s2", utc(2026, 1, 6, 8), utc(2026, 1, 6, 9),
                [attendee(9, "f-secret")], series_id="s2", recurrence_rule="FREQ=DAILY;COUNT=5",
                change_exception_dates={RecurrenceId(value=utc(2026, 1, 7, 8))}),
        meeting("s2-x1", utc(2026, 1, 7, 8), utc(2026, 1, 7, 9),
                [attendee(9, "f-secret"), attendee(ALICE, "f1")], series_id="s2",
                recurrence_id=RecurrenceId(value=utc(2026, 1, 7, 8))),
    ]
    users = {
        ALICE: UserSettings(email="alice@one.example", timezone="Europe/Berlin", visible_folders=["f1", "f2"],
                            delegate_for=[ROOM_10]),
        BOB: UserSettings(email="bob@one.example", timezone="America/New_York", visible_folders=["f2"]),
        CAROL: UserSettings(email="carol@one.example", free_busy_visibility=FreeBusyVisibility.NONE,
                            visible_folders=["f3"]),
    }
    return TenantSettings(users=users, events=events)


@pytest.fixture
def tenant_2() -> TenantSettings:
    events = [
        meeting("t2-e1", utc(2026, 1, 6, 10), utc(2026, 1, 6, 11), [attendee(DAVE, "g1")]),
        meeting("t2-private", utc(2026, 1, 6, 12), utc(2026, 1, 6, 13), [attendee(DAVE, "g1")],
                classification=Classification.PRIVATE),
        meeting("t2-erin", utc(2026, 1, 7, 10), utc(2026, 1, 7, 11), [attendee(ERIN, "g2")]),
    ]
    users = {
        DAVE: UserSettings(email="dave@two.example"),
        ERIN: UserSettings(email="erin@two.example", free_busy_visibility=FreeBusyVisibility.NONE),
    }
    return TenantSettings(users=users, events=events)


@pytest.fixture
def tenants(tenant_1, tenant_2) -> dict[int, TenantSettings]:
    return {TENANT_1: tenant_1, TENANT_2: tenant_2}


@pytest.fixture
def storage_provider(tenants) -> InMemoryStorageProvider:
    return InMemoryStorageProvider(
        {tenant_id: InMemoryCalendarStorage(t.events) for tenant_id, t in tenants.items()}
    )


@pytest.fixture
def viewer() -> ViewerContext:
    return ViewerContext(user_id=ALICE, tenant_id=TENANT_1, timezone="UTC")


@pytest.fixture
def facts(tenant_1) -> StaticPermissionFacts:
    return StaticPermissionFacts(tenant_1, viewer_id=ALICE)


@pytest.fixture
def facts_provider(tenants):
    return lambda tenant_id: StaticPermissionFacts(tenants[tenant_id])


@pytest.fixture
def identity_service(tenants) -> StaticIdentityService:
    return StaticIdentityService(tenants)


@pytest.fixture
def expander() -> RRuleExpander:
    return RRuleExpander()


class FakeFacts:
    """Permission facts with explicit answers and optional failures."""

    def __init__(
        self,
        visibility: FreeBusyVisibility = FreeBusyVisibility.ALL,
        folder_id: Optional[str] = None,
        visible_folders: tuple[str, ...] = (),
        delegates: dict[int, bool] = None,
        error: Optional[Exception] = None,
        timezone: str = "Europe/Berlin",
    ):
        self.cross_tenant_free_busy = True
        self.visibility = visibility
        self.folder_id = folder_id
        self.visible_folders = set(visible_folders)
        self.delegates = delegates or {}
        self.error = error
        self.timezone = timezone
        self.delegate_checks: list[int] = []

    def get_free_busy_visibility(self, entity):
        if self.error is not None:
            raise self.error
        return self.visibility

    def choose_folder_id(self, event):
        return self.folder_id

    def is_folder_visible(self, folder_id):
        return folder_id in self.visible_folders

    def has_booking_delegate_privilege(self, user_id, resource_entity):
        self.delegate_checks.append(resource_entity)
        outcome = self.delegates.get(resource_entity, False)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def get_timezone(self, entity):
        return self.timezone


@pytest.fixture
def fake_facts() -> FakeFacts:
    return FakeFacts()


@pytest.fixture
def make_facts():
    return FakeFacts
