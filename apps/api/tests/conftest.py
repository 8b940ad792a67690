"""
Pytest configuration and fixtures

All times are naive local datetimes unless a test says otherwise, and every
test pins "now" explicitly. Nothing reads the wall clock.
"""
import pytest
import sys
import os
from uuid import uuid4
from datetime import datetime, date, timedelta

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from schemas import Activity, CalendarEntry, Goal
from services.api_gateway import InMemoryGateway
from services.units import miles_to_meters

# Wednesday. Its Sunday-anchored week starts 2024-03-10, Monday-anchored 2024-03-11.
NOW = datetime(2024, 3, 13, 12, 0, 0)


def make_activity(start_time, miles=5.0, pace_per_km=300.0, name="Run"):
    return Activity(
        id=uuid4(),
        start_time=start_time,
        distance_meters=miles_to_meters(miles),
        average_pace_seconds_per_km=pace_per_km,
        name=name,
    )


def make_goal(race_date, created_at, distance_meters=42195, target_time_seconds=14400, race_name="City Marathon"):
    return Goal(
        id=uuid4(),
        race_name=race_name,
        race_date=race_date,
        distance_meters=distance_meters,
        target_time_seconds=target_time_seconds,
        created_at=created_at,
    )


def make_entry(day, title="Easy run", **fields):
    return CalendarEntry(date=day, title=title, **fields)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def goal(now):
    """Marathon 12 weeks out, created 4 weeks ago, 4:00:00 target."""
    return make_goal(
        race_date=(now + timedelta(weeks=12)).date(),
        created_at=now - timedelta(weeks=4),
    )


@pytest.fixture
def week_of_runs(now):
    """Three runs in the current Sunday-anchored week: 5 + 6 + 4 miles."""
    return [
        make_activity(datetime(2024, 3, 10, 7, 0), miles=5),
        make_activity(datetime(2024, 3, 11, 7, 0), miles=6),
        make_activity(datetime(2024, 3, 12, 7, 0), miles=4),
    ]


@pytest.fixture
def gateway(week_of_runs, goal):
    return InMemoryGateway(activities=week_of_runs, goal=goal)


@pytest.fixture
def empty_gateway():
    return InMemoryGateway()


@pytest.fixture
def client(gateway):
    """TestClient with the app-wide gateway swapped for the fixture gateway."""
    from fastapi.testclient import TestClient
    from core.gateway import get_gateway
    from main import app

    app.dependency_overrides[get_gateway] = lambda: gateway
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def block_start_date():
    return date(2024, 3, 11)
