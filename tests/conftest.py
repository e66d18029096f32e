"""Pytest configuration and shared fixtures."""
import threading
import uuid
from datetime import date, datetime, timedelta

import pytest
from sqlalchemy import create_engine

from sitepulse.core.database import Base, make_session_factory, session_scope
from sitepulse.models.site import Organization, Site
from sitepulse.models.user import OPERATIONS_ROLE, OrganizationMember, User
from sitepulse.services.results import (
    FetchError,
    FetchErrorKind,
    FetchOk,
    RawTelemetrySample,
    WeatherReading,
)
import sitepulse.services.store  # noqa: F401  registers every table

NOW = datetime(2025, 7, 15, 12, 0, 0)


def clock():
    return NOW


def hourly_samples(values, end=NOW):
    """One sample per hour, oldest first, the last one at `end`."""
    n = len(values)
    return [
        RawTelemetrySample(timestamp=end - timedelta(hours=n - 1 - i), generation=v, consumption=0.5)
        for i, v in enumerate(values)
    ]


class FakeTelemetry:
    """In-memory telemetry adapter keyed by device serial number."""

    def __init__(self, latest=None, history=None, failing=(), history_error=None):
        self.latest = latest or {}
        self.history = history or {}
        self.failing = set(failing)
        self.history_error = history_error
        self.history_calls = []
        self.latest_calls = []

    def fetch_latest(self, device_sn, api_key=None):
        self.latest_calls.append((device_sn, api_key))
        if device_sn in self.failing:
            return FetchError(FetchErrorKind.NETWORK, f"device {device_sn} unreachable")
        return FetchOk(self.latest.get(device_sn))

    def fetch_history(self, api_key, device_sn, start, end, granularity="hour"):
        self.history_calls.append((api_key, device_sn, start, end, granularity))
        if self.history_error is not None:
            return self.history_error
        return FetchOk(list(self.history.get(device_sn, [])))


class BlockingTelemetry(FakeTelemetry):
    """Holds `fetch_latest` until released, to keep a sync pass in flight."""

    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def fetch_latest(self, device_sn, api_key=None):
        self.entered.set()
        self.release.wait(timeout=5)
        return FetchOk(None)


class FakeWeather:

    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def fetch_current(self, latitude, longitude):
        self.calls.append((latitude, longitude))
        if self.error is not None:
            return self.error
        return FetchOk(WeatherReading(
            timestamp=NOW, temperature=18.5, humidity=60, pressure=1015,
            wind_speed=3.2, wind_direction=200, cloud_cover=40, visibility=10000,
            uv_index=0, description="scattered clouds",
        ))


@pytest.fixture
def session_factory(tmp_path):
    """Session factory bound to a throwaway SQLite file."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'sitepulse-test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def organization(session_factory):
    with session_scope(session_factory) as session:
        org = Organization(id=uuid.uuid4(), name="Sunrise Energy")
        session.add(org)
    return org


@pytest.fixture
def make_site(session_factory, organization):
    """Factory creating sites in the default organization."""

    def _make_site(name="Site", **kwargs):
        values = {
            "id": uuid.uuid4(),
            "organization_id": organization.id,
            "name": name,
            "capacity_kw": 10.0,
            "is_active": True,
        }
        values.update(kwargs)
        with session_scope(session_factory) as session:
            site = Site(**values)
            session.add(site)
        return site

    return _make_site


@pytest.fixture
def add_member(session_factory, organization):
    """Factory adding a user with a role to the default organization."""

    def _add_member(email, role=OPERATIONS_ROLE, organization_id=None):
        with session_scope(session_factory) as session:
            user = User(id=uuid.uuid4(), email=email, name=email.split("@")[0])
            session.add(user)
            session.flush()
            session.add(OrganizationMember(
                user_id=user.id,
                organization_id=organization_id or organization.id,
                role=role,
            ))
        return user

    return _add_member


@pytest.fixture
def old_install():
    """An install date well past the maintenance interval."""
    return date(2024, 1, 1)
