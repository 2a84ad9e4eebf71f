"""Tests for resolving the recurrence info of occurrences."""

from datetime import date, datetime

import pytest
import pytz

from calendar_freebusy.models.event import RecurrenceId
from calendar_freebusy.recurrence.info import RecurrenceInfoResolver, is_reschedule
from calendar_freebusy.storage.memory import InMemoryCalendarStorage
from calendar_freebusy.utils.exceptions import (
    EventNotFoundError,
    EventRecurrenceNotFoundError,
    InvalidRecurrenceIdError,
)

from conftest import TENANT_1, attendee, meeting, utc


@pytest.fixture
def storage(storage_provider):
    return storage_provider.tenants[TENANT_1]


@pytest.fixture
def resolver(storage, expander, facts):
    return RecurrenceInfoResolver(storage, expander, facts)


def rid(*args) -> RecurrenceId:
    return RecurrenceId(value=utc(*args))


class TestSeriesMaster:
    def test_unchanged_occurrence(self, resolver):
        info = resolver.resolve("f1", "s1", rid(2026, 1, 26, 8))

        assert not info.overridden
        assert not info.rescheduled
        assert info.occurrence_event.id == "s1"
        assert info.occurrence_event.start == utc(2026, 1, 26, 8)
        assert info.occurrence_event.end == utc(2026, 1, 26, 8, 30)
        assert info.master_event.id == "s1"

    def test_rescheduled_exception(self, resolver):
        info = resolver.resolve("f1", "s1", rid(2026, 1, 12, 8))

        assert info.overridden
        assert info.rescheduled
        assert info.occurrence_event.id == "s1-x1"
        assert info.master_event.id == "s1"

    def test_overridden_without_reschedule(self, resolver):
        info = resolver.resolve("f1", "s1", rid(2026, 1, 19, 8))

        assert info.overridden
        assert not info.rescheduled
        assert info.occurrence_event.summary == "Weekly (new agenda)"

    def test_date_recurrence_id_matches_occurrence(self, resolver):
        info = resolver.resolve("f2", "s1", RecurrenceId(value=date(2026, 1, 26)))
        assert not info.overridden
        assert info.occurrence_event.start == utc(2026, 1, 26, 8)

    def test_first_occurrence(self, resolver):
        info = resolver.resolve("f1", "s1", rid(2026, 1, 5, 8))
        assert (info.overridden, info.rescheduled) == (False, False)

    @pytest.mark.parametrize("value", [utc(2026, 1, 27, 8), utc(2026, 1, 26, 9), utc(2026, 2, 2, 8)])
    def test_recurrence_outside_rule(self, resolver, value):
        with pytest.raises(EventRecurrenceNotFoundError):
            resolver.resolve("f1", "s1", RecurrenceId(value=value))

    def test_master_requires_recurrence_id(self, resolver):
        with pytest.raises(InvalidRecurrenceIdError):
            resolver.resolve("f1", "s1")

    def test_deleted_occurrence(self, expander, facts):
        master = meeting("s9", utc(2026, 1, 5, 8), utc(2026, 1, 5, 9), [attendee(1, "f1")],
                         series_id="s9", recurrence_rule="FREQ=DAILY;COUNT=3",
                         delete_exception_dates={rid(2026, 1, 6, 8)})
        resolver = RecurrenceInfoResolver(InMemoryCalendarStorage([master]), expander, facts)
        with pytest.raises(EventRecurrenceNotFoundError):
            resolver.resolve("f1", "s9", rid(2026, 1, 6, 8))


class TestChangeException:
    def test_addressed_directly(self, resolver):
        info = resolver.resolve("f1", "s1-x1", rid(2026, 1, 12, 8))
        assert info.overridden
        assert info.rescheduled
        assert info.occurrence_event.id == "s1-x1"

    def test_addressed_without_recurrence_id(self, resolver):
        info = resolver.resolve("f1", "s1-x2")
        assert info.overridden
        assert not info.rescheduled

    def test_master_and_exception_paths_agree(self, resolver):
        recurrence_id = rid(2026, 1, 12, 8)
        via_master = resolver.resolve("f1", "s1", recurrence_id)
        via_exception = resolver.resolve("f1", "s1-x1", recurrence_id)

        assert via_master.master_event.id == via_exception.master_event.id == "s1"
        assert via_master.occurrence_event.id == via_exception.occurrence_event.id == "s1-x1"
        assert (via_master.overridden, via_master.rescheduled) == (via_exception.overridden, via_exception.rescheduled)

    def test_mismatching_recurrence_id(self, resolver):
        with pytest.raises(EventRecurrenceNotFoundError):
            resolver.resolve("f1", "s1-x1", rid(2026, 1, 19, 8))

    def test_inaccessible_master_is_orphaned(self, resolver):
        info = resolver.resolve("f1", "s2-x1")

        assert info.overridden
        assert info.rescheduled
        assert info.master_event is None
        assert info.occurrence_event.id == "s2-x1"

    def test_accessible_master_without_permission_checks(self, storage, expander):
        info = RecurrenceInfoResolver(storage, expander).resolve("f1", "s2-x1")

        assert info.overridden
        assert not info.rescheduled
        assert info.master_event.id == "s2"


class TestLookupFailures:
    def test_unknown_event(self, resolver):
        with pytest.raises(EventNotFoundError):
            resolver.resolve("f1", "missing", rid(2026, 1, 5, 8))

    def test_event_in_other_folder(self, resolver):
        with pytest.raises(EventNotFoundError) as exc_info:
            resolver.resolve("f3", "s1", rid(2026, 1, 5, 8))
        assert exc_info.value.folder_id == "f3"

    def test_folder_not_visible(self, resolver):
        with pytest.raises(EventNotFoundError):
            resolver.resolve("f-secret", "s2", rid(2026, 1, 6, 8))

    def test_non_recurring_event(self, resolver):
        with pytest.raises(EventRecurrenceNotFoundError):
            resolver.resolve("f1", "e-team")


class TestIsReschedule:
    def test_same_schedule(self):
        a = meeting("a", utc(2026, 1, 5, 8), utc(2026, 1, 5, 9), [])
        b = meeting("b", utc(2026, 1, 5, 8), utc(2026, 1, 5, 9), [], summary="Other")
        assert not is_reschedule(a, b)

    def test_shifted_end(self):
        a = meeting("a", utc(2026, 1, 5, 8), utc(2026, 1, 5, 9), [])
        b = meeting("b", utc(2026, 1, 5, 8), utc(2026, 1, 5, 10), [])
        assert is_reschedule(a, b)

    def test_floating_versus_bound_start(self):
        a = meeting("a", utc(2026, 1, 5, 8), utc(2026, 1, 5, 9), [])
        b = meeting("b", utc(2026, 1, 5, 8).replace(tzinfo=None), utc(2026, 1, 5, 9), [])
        assert is_reschedule(a, b)

    def test_all_day_versus_timed(self):
        a = meeting("a", date(2026, 1, 5), date(2026, 1, 6), [])
        b = meeting("b", utc(2026, 1, 5).replace(tzinfo=None), date(2026, 1, 6), [])
        assert is_reschedule(a, b)

    def test_changed_rule(self):
        a = meeting("a", utc(2026, 1, 5, 8), utc(2026, 1, 5, 9), [])
        b = meeting("b", utc(2026, 1, 5, 8), utc(2026, 1, 5, 9), [], recurrence_rule="FREQ=DAILY")
        assert is_reschedule(a, b)


class TestDaylightSaving:
    def test_occurrence_after_transition_resolves(self, expander, facts):
        berlin = pytz.timezone("Europe/Berlin")
        master = meeting("m", berlin.localize(datetime(2026, 3, 16, 9)), berlin.localize(datetime(2026, 3, 16, 10)),
                         [attendee(1, "f1")], series_id="m", recurrence_rule="FREQ=WEEKLY;COUNT=4")
        resolver = RecurrenceInfoResolver(InMemoryCalendarStorage([master]), expander, facts)

        info = resolver.resolve("f1", "m", RecurrenceId(value=berlin.localize(datetime(2026, 3, 30, 9))))

        assert (info.overridden, info.rescheduled) == (False, False)
        assert info.occurrence_event.start == utc(2026, 3, 30, 7)
