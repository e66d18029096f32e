"""
Metrics store over the relational schema.

Wraps a SQLAlchemy session with the reads and writes the sync and analytics
services need: the active-site directory, telemetry and daily metric upserts,
weather appends, sync run records and the operations recipient directory.
The caller owns the session and its transaction.
"""
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from sitepulse.core.database import utc_naive
from sitepulse.models.metrics import DailySiteMetric
from sitepulse.models.site import Organization, Site
from sitepulse.models.syncrun import SyncRun
from sitepulse.models.telemetry import TelemetryReading
from sitepulse.models.user import OPERATIONS_ROLE, OrganizationMember, User
from sitepulse.models.weather import WeatherObservation
from sitepulse.models.schemas import SyncRunStats
from sitepulse.services.results import RawTelemetrySample, WeatherReading

DAILY_METRIC_FIELDS = (
    "total_generation",
    "total_consumption",
    "total_grid_import",
    "total_grid_export",
    "average_efficiency",
    "capacity_factor",
    "availability",
    "average_temperature",
)


class MetricsStore:

    def __init__(self, session: Session):
        self.session = session

    # Site directory

    def list_active_sites(self, organization_id=None) -> List[Site]:
        stmt = select(Site).where(Site.is_active.is_(True))
        if organization_id is not None:
            stmt = stmt.where(Site.organization_id == organization_id)
        return list(self.session.scalars(stmt.order_by(Site.name)))

    def get_site(self, site_id) -> Optional[Site]:
        return self.session.get(Site, site_id)

    # Telemetry

    def upsert_telemetry(self, site_id, sample: RawTelemetrySample) -> TelemetryReading:
        """Insert or overwrite the reading for (site, sample timestamp)."""
        timestamp = utc_naive(sample.timestamp)
        reading = self.session.scalars(
            select(TelemetryReading).where(
                TelemetryReading.site_id == site_id,
                TelemetryReading.timestamp == timestamp,
            )
        ).first()
        if reading is None:
            reading = TelemetryReading(site_id=site_id, timestamp=timestamp)
            self.session.add(reading)
        reading.generation_kwh = sample.generation or 0.0
        reading.consumption_kwh = sample.consumption or 0.0
        reading.grid_import_kwh = sample.grid_import
        reading.grid_export_kwh = sample.grid_export or 0.0
        reading.battery_charge_kwh = sample.battery_charge or 0.0
        reading.battery_discharge_kwh = sample.battery_discharge or 0.0
        reading.temperature_c = sample.temperature
        reading.irradiance = sample.irradiance
        self.session.flush()
        return reading

    def telemetry_between(self, site_id, start: datetime, end: datetime) -> List[TelemetryReading]:
        stmt = (
            select(TelemetryReading)
            .where(
                TelemetryReading.site_id == site_id,
                TelemetryReading.timestamp >= utc_naive(start),
                TelemetryReading.timestamp <= utc_naive(end),
            )
            .order_by(TelemetryReading.timestamp.desc())
        )
        return list(self.session.scalars(stmt))

    # Daily metrics

    def get_daily_metric(self, site_id, day: date) -> Optional[DailySiteMetric]:
        return self.session.scalars(
            select(DailySiteMetric).where(
                DailySiteMetric.site_id == site_id,
                DailySiteMetric.date == day,
            )
        ).first()

    def upsert_daily_metric(self, site_id, day: date, values: dict, updated_at: datetime) -> DailySiteMetric:
        """Insert or overwrite every field of the (site, day) metric row."""
        metric = self.get_daily_metric(site_id, day)
        if metric is None:
            metric = DailySiteMetric(site_id=site_id, date=day)
            self.session.add(metric)
        for field in DAILY_METRIC_FIELDS:
            setattr(metric, field, values.get(field))
        metric.last_updated = utc_naive(updated_at)
        self.session.flush()
        return metric

    # Weather

    def add_weather(self, site_id, reading: WeatherReading) -> WeatherObservation:
        observation = WeatherObservation(
            site_id=site_id,
            timestamp=utc_naive(reading.timestamp),
            temperature=reading.temperature,
            humidity=reading.humidity,
            wind_speed=reading.wind_speed,
            wind_direction=reading.wind_direction,
            pressure=reading.pressure,
            visibility=reading.visibility,
            uv_index=reading.uv_index,
            cloud_cover=reading.cloud_cover,
            description=reading.description or "Clear",
        )
        self.session.add(observation)
        self.session.flush()
        return observation

    # Sync runs

    def add_sync_run(self, stats: SyncRunStats) -> SyncRun:
        run = SyncRun(
            timestamp=utc_naive(stats.last_sync),
            sites_processed=stats.sites_processed,
            records_updated=stats.records_updated,
            errors=stats.errors,
            duration_ms=stats.duration_ms,
        )
        self.session.add(run)
        self.session.flush()
        return run

    def latest_sync_run(self) -> Optional[SyncRun]:
        return self.session.scalars(select(SyncRun).order_by(SyncRun.timestamp.desc())).first()

    # Recipient directory

    def operations_recipients(self, site_id) -> List[str]:
        """Emails of operations-role members of the site's organization."""
        stmt = (
            select(User.email)
            .join(OrganizationMember, OrganizationMember.user_id == User.id)
            .join(Organization, Organization.id == OrganizationMember.organization_id)
            .join(Site, Site.organization_id == Organization.id)
            .where(Site.id == site_id, OrganizationMember.role == OPERATIONS_ROLE)
            .order_by(User.email)
        )
        return list(self.session.scalars(stmt).unique())
