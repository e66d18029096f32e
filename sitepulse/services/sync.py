"""
Ingestion engine: one synchronization pass over every active site.

Per site, the latest inverter sample is upserted and today's daily metric is
recomputed from the last 24 hours of telemetry; a weather pass follows. Sites
are processed sequentially and each in its own transaction, so a failing site
only counts as an error and never aborts the batch. The only run-level
failure is not being able to list the active sites.
"""
import logging
import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional

from sitepulse.core.database import SessionLocal, session_scope, utcnow
from sitepulse.core.statistics import clamp
from sitepulse.models.schemas import SyncRunStats
from sitepulse.services.results import FetchError
from sitepulse.services.store import MetricsStore

logger = logging.getLogger(__name__)

METRIC_WINDOW = timedelta(hours=24)
EXPECTED_DAILY_SAMPLES = 24


class SyncError(RuntimeError):
    """A site's data could not be fetched."""


@dataclass
class _RunCounters:
    sites_processed: int = 0
    records_updated: int = 0
    errors: int = 0


def compute_daily_metric(rows, capacity_kw: float) -> Optional[dict]:
    """Aggregate telemetry rows into daily metric values, or None without rows."""
    if not rows:
        return None
    total_generation = sum(r.generation_kwh or 0.0 for r in rows)
    total_consumption = sum(r.consumption_kwh or 0.0 for r in rows)
    total_export = sum(r.grid_export_kwh or 0.0 for r in rows)
    # rows without a metered import fall back to consumption
    total_import = sum(
        r.grid_import_kwh if r.grid_import_kwh is not None else (r.consumption_kwh or 0.0)
        for r in rows
    )
    average_temperature = sum(r.temperature_c or 0.0 for r in rows) / len(rows)

    capacity_factor = (total_generation / (capacity_kw * 24)) * 100 if capacity_kw and capacity_kw > 0 else 0.0
    availability = (len(rows) / EXPECTED_DAILY_SAMPLES) * 100

    return {
        "total_generation": total_generation,
        "total_consumption": total_consumption,
        "total_grid_import": total_import,
        "total_grid_export": total_export,
        "average_efficiency": None,
        "capacity_factor": clamp(capacity_factor, 0.0, 100.0),
        "availability": clamp(availability, 0.0, 100.0),
        "average_temperature": average_temperature,
    }


class SyncService:
    """Fetch, normalize and upsert external data for every active site."""

    def __init__(self, telemetry, weather, session_factory=SessionLocal, clock=utcnow):
        self.telemetry = telemetry
        self.weather = weather
        self._session_factory = session_factory
        self._clock = clock
        self._busy = threading.Lock()
        self._last_stats = SyncRunStats()

    @property
    def is_running(self) -> bool:
        return self._busy.locked()

    def get_stats(self) -> SyncRunStats:
        """Statistics of the last completed run."""
        return self._last_stats.model_copy()

    def perform_sync(self) -> Optional[SyncRunStats]:
        """Run one complete pass; returns None if a pass is already running."""
        if not self._busy.acquire(blocking=False):
            logger.warning("Sync already in progress")
            return None

        counters = _RunCounters()
        started = time.monotonic()
        logger.info("Starting data synchronization...")
        try:
            try:
                sites = self._load_active_sites()
            except Exception:
                counters.errors += 1
                logger.exception("Error loading active sites, aborting sync")
                raise
            logger.info("Found %d active sites to sync", len(sites))

            for site in sites:
                try:
                    counters.records_updated += self.sync_site(site)
                    counters.sites_processed += 1
                except Exception as e:
                    counters.errors += 1
                    logger.error("Error syncing site %s: %s", site.id, e)

            self._sync_weather(sites, counters)
        finally:
            stats = SyncRunStats(
                sites_processed=counters.sites_processed,
                records_updated=counters.records_updated,
                errors=counters.errors,
                duration_ms=(time.monotonic() - started) * 1000,
                last_sync=self._clock(),
            )
            logger.info(
                "Data sync completed in %.0fms. Sites: %d, Records: %d, Errors: %d",
                stats.duration_ms, stats.sites_processed, stats.records_updated, stats.errors,
            )
            self._store_run_stats(stats)
            self._last_stats = stats
            self._busy.release()
        return stats

    def _load_active_sites(self) -> List:
        with session_scope(self._session_factory) as session:
            return MetricsStore(session).list_active_sites()

    def sync_site(self, site) -> int:
        """Ingest one site; returns the number of records written."""
        logger.debug("Syncing data for site: %s (%s)", site.name, site.id)
        updated = 0
        with session_scope(self._session_factory) as session:
            store = MetricsStore(session)
            if site.inverter_device_sn:
                result = self.telemetry.fetch_latest(site.inverter_device_sn, site.inverter_api_key)
                if isinstance(result, FetchError):
                    raise SyncError(f"telemetry fetch failed ({result})")
                if result.value is not None:
                    store.upsert_telemetry(site.id, result.value)
                    updated += 1
            if self.update_site_metrics(store, site) is not None:
                updated += 1
        return updated

    def update_site_metrics(self, store: MetricsStore, site):
        """Recompute today's metric from the last 24 hours; None when there is no data."""
        now = self._clock()
        rows = store.telemetry_between(site.id, now - METRIC_WINDOW, now)
        values = compute_daily_metric(rows, site.capacity_kw)
        if values is None:
            logger.debug("No recent data found for site %s", site.id)
            return None
        return store.upsert_daily_metric(site.id, now.date(), values, now)

    def _sync_weather(self, sites, counters: _RunCounters):
        logger.debug("Syncing weather data...")
        for site in sites:
            if site.latitude is None or site.longitude is None:
                continue
            try:
                result = self.weather.fetch_current(site.latitude, site.longitude)
                if isinstance(result, FetchError):
                    raise SyncError(f"weather fetch failed ({result})")
                with session_scope(self._session_factory) as session:
                    MetricsStore(session).add_weather(site.id, result.value)
                counters.records_updated += 1
            except Exception as e:
                counters.errors += 1
                logger.error("Error syncing weather data for site %s: %s", site.id, e)
        logger.debug("Weather data sync completed")

    def _store_run_stats(self, stats: SyncRunStats):
        # best-effort: a lost stats row must not fail the run
        try:
            with session_scope(self._session_factory) as session:
                MetricsStore(session).add_sync_run(stats)
        except Exception:
            logger.exception("Error storing sync stats")
