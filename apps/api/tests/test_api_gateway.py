"""
Tests for the in-memory API gateway

Contract behavior: newest-first activities, inactive goals read as none,
per-date upserts that keep row identity, and GatewayError when unavailable.
"""
import pytest
from datetime import date, datetime, timezone
from uuid import uuid4
from core.exceptions import NotFoundError
from schemas import CalendarEntryUpsert, EntryStatus
from services.api_gateway import GatewayError, InMemoryGateway
from conftest import NOW, make_activity, make_entry, make_goal


def upsert_payload(day, title="Easy run", **fields):
    return CalendarEntryUpsert(date=day, title=title, **fields)


class TestReads:
    """Activities, goal and calendar weeks"""

    def test_activities_newest_first(self, gateway):
        starts = [a.start_time for a in gateway.list_activities()]
        assert starts == sorted(starts, reverse=True)

    def test_mixed_naive_and_aware_start_times(self):
        naive = make_activity(datetime(2024, 3, 11, 7, 0))
        aware = make_activity(datetime(2024, 3, 12, 7, 0, tzinfo=timezone.utc))
        assert InMemoryGateway(activities=[naive, aware]).list_activities() == [aware, naive]

    def test_inactive_goal_reads_as_none(self):
        goal = make_goal(date(2024, 6, 1), NOW).model_copy(update={"is_active": False})
        assert InMemoryGateway(goal=goal).get_active_goal() is None

    def test_calendar_week_is_seven_days(self):
        entries = [make_entry(date(2024, 1, d)) for d in (1, 7, 8)]
        gateway = InMemoryGateway(entries=entries)
        week = gateway.get_calendar_week("2024-01-01")
        assert [e.date for e in week] == [date(2024, 1, 1), date(2024, 1, 7)]


class TestUpsert:
    """Idempotent per date key"""

    def test_upsert_creates(self, empty_gateway):
        stored = empty_gateway.upsert_calendar_entry(upsert_payload(date(2024, 1, 1)))
        assert empty_gateway.get_calendar_week("2024-01-01") == [stored]

    def test_second_upsert_replaces_but_keeps_id(self, empty_gateway):
        first = empty_gateway.upsert_calendar_entry(
            upsert_payload(date(2024, 1, 1), planned_distance_meters=8000)
        )
        second = empty_gateway.upsert_calendar_entry(upsert_payload(date(2024, 1, 1), title="Tempo"))

        assert second.id == first.id
        assert second.title == "Tempo"
        assert second.planned_distance_meters is None
        assert len(empty_gateway.get_calendar_week("2024-01-01")) == 1

    def test_repeated_upsert_is_a_no_op(self, empty_gateway):
        payload = upsert_payload(date(2024, 1, 1))
        first = empty_gateway.upsert_calendar_entry(payload)
        assert empty_gateway.upsert_calendar_entry(payload) == first


class TestMutations:
    """Delete and status updates by id"""

    def test_delete(self, empty_gateway):
        stored = empty_gateway.upsert_calendar_entry(upsert_payload(date(2024, 1, 1)))
        empty_gateway.delete_calendar_entry(stored.id)
        assert empty_gateway.get_calendar_week("2024-01-01") == []

    def test_update_status(self, empty_gateway):
        stored = empty_gateway.upsert_calendar_entry(upsert_payload(date(2024, 1, 1)))
        empty_gateway.update_calendar_entry_status(stored.id, EntryStatus.COMPLETED)
        assert empty_gateway.get_calendar_week("2024-01-01")[0].status == EntryStatus.COMPLETED

    def test_unknown_id_is_not_found(self, empty_gateway):
        with pytest.raises(NotFoundError):
            empty_gateway.delete_calendar_entry(uuid4())
        with pytest.raises(NotFoundError):
            empty_gateway.update_calendar_entry_status(uuid4(), EntryStatus.COMPLETED)


class TestUnavailable:
    """Every call fails with GatewayError while unavailable"""

    def test_every_call_raises(self, gateway):
        gateway.set_available(False)
        calls = [
            gateway.list_activities,
            gateway.get_active_goal,
            lambda: gateway.get_calendar_week("2024-01-01"),
            lambda: gateway.upsert_calendar_entry(upsert_payload(date(2024, 1, 1))),
            lambda: gateway.delete_calendar_entry(uuid4()),
            lambda: gateway.update_calendar_entry_status(uuid4(), EntryStatus.PLANNED),
        ]
        for call in calls:
            with pytest.raises(GatewayError):
                call()

    def test_error_names_the_operation(self, gateway):
        gateway.set_available(False)
        with pytest.raises(GatewayError) as exc_info:
            gateway.list_activities()
        assert exc_info.value.operation == "list_activities"

    def test_recovers(self, gateway):
        gateway.set_available(False)
        gateway.set_available(True)
        assert len(gateway.list_activities()) == 3
