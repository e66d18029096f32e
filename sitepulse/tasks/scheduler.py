import logging
from datetime import datetime, timedelta, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from sitepulse.models.schemas import IntervalUpdateResult, SyncResult, SyncRunStats

logger = logging.getLogger(__name__)

MIN_INTERVAL_MINUTES = 30
MAX_INTERVAL_MINUTES = 120
WARMUP_SECONDS = 60

SYNC_JOB_ID = "data_sync"
WARMUP_JOB_ID = "data_sync_warmup"
SWEEP_JOB_ID = "analytics_sweep"


def clamp_interval(minutes: int) -> int:
    return max(MIN_INTERVAL_MINUTES, min(MAX_INTERVAL_MINUTES, int(minutes)))


def describe_cadence(minutes: int) -> str:
    if minutes >= 60 and minutes % 60 == 0:
        hours = minutes // 60
        return f"every {hours} hour" + ("s" if hours > 1 else "")
    return f"every {minutes} minutes"


def build_trigger(minutes: int):
    if minutes >= 60 and minutes % 60 == 0:
        return CronTrigger(hour=f"*/{minutes // 60}", minute=0)
    return IntervalTrigger(minutes=minutes)


class SyncScheduler:
    """Drive recurring ingestion runs without overlap.

    States: idle -> running -> idle, and stopped from either via `stop()`.
    The busy flag itself belongs to the sync service; the scheduler only reads
    it to skip ticks and refuse manual refreshes.
    """

    def __init__(self, sync_service, interval_minutes: int = 60, analytics=None,
                 analytics_sweep_hour: int | None = None, warmup_seconds: int = WARMUP_SECONDS,
                 scheduler=None):
        self.sync_service = sync_service
        self.analytics = analytics
        self.analytics_sweep_hour = analytics_sweep_hour
        self.warmup_seconds = warmup_seconds
        self._owns_scheduler = scheduler is None
        self.scheduler = scheduler or BackgroundScheduler(timezone="UTC")
        self.interval_minutes = clamp_interval(interval_minutes)
        self.cadence = describe_cadence(self.interval_minutes)
        self._stopped = True
        logger.info("Data sync scheduler initialized with interval: %s", self.cadence)

    @property
    def state(self) -> str:
        if self._stopped:
            return "stopped"
        return "running" if self.sync_service.is_running else "idle"

    def start(self):
        logger.info("Starting data synchronization scheduler (%s)...", self.cadence)
        self.scheduler.add_job(self._tick, build_trigger(self.interval_minutes), id=SYNC_JOB_ID,
                               max_instances=1, coalesce=True, replace_existing=True)
        # first run shortly after start instead of a full interval later
        run_date = datetime.now(timezone.utc) + timedelta(seconds=self.warmup_seconds)
        self.scheduler.add_job(self._tick, DateTrigger(run_date=run_date), id=WARMUP_JOB_ID,
                               replace_existing=True)
        if self.analytics is not None and self.analytics_sweep_hour is not None:
            self.scheduler.add_job(self.analytics.run_alert_sweep,
                                   CronTrigger(hour=self.analytics_sweep_hour, minute=30),
                                   id=SWEEP_JOB_ID, max_instances=1, coalesce=True,
                                   replace_existing=True)
        if not self.scheduler.running:
            self.scheduler.start()
        self._stopped = False

    def stop(self):
        logger.info("Stopping data synchronization scheduler...")
        self._stopped = True
        self.scheduler.remove_all_jobs()
        if self.scheduler.running:
            # an in-flight run finishes on its worker thread
            self.scheduler.shutdown(wait=False)
        if self._owns_scheduler:
            # a shut down BackgroundScheduler cannot be started again
            self.scheduler = BackgroundScheduler(timezone="UTC")

    def _tick(self):
        if self.sync_service.is_running:
            logger.warning("Sync already running, skipping this interval")
            return
        try:
            self.sync_service.perform_sync()
        except Exception:
            logger.exception("Scheduled data sync failed")

    def get_stats(self) -> SyncRunStats:
        return self.sync_service.get_stats()

    def manual_refresh(self) -> SyncResult:
        """Run a sync now; refuses instead of queueing when one is in progress."""
        busy = SyncResult(
            success=False,
            message="Data sync already in progress. Please wait for current sync to complete.",
        )
        if self.sync_service.is_running:
            return busy
        try:
            logger.info("Manual data refresh triggered")
            stats = self.sync_service.perform_sync()
        except Exception as e:
            logger.error("Manual refresh failed: %s", e)
            return SyncResult(success=False, message=f"Manual refresh failed: {e}")
        if stats is None:
            return busy
        return SyncResult(success=True, message="Data refresh completed successfully", stats=stats)

    def update_interval(self, minutes) -> IntervalUpdateResult:
        """Reclamp the interval; the live trigger keeps its cadence until restart."""
        try:
            interval = clamp_interval(minutes)
        except (TypeError, ValueError) as e:
            return IntervalUpdateResult(success=False, message=f"Invalid interval: {e}")
        self.interval_minutes = interval
        self.cadence = describe_cadence(interval)
        logger.info("Sync interval updated to every %d minutes (%s)", interval, self.cadence)
        return IntervalUpdateResult(
            success=True,
            message=f"Sync interval updated to every {interval} minutes. Restart required for changes to take effect.",
            interval_minutes=interval,
            cadence=self.cadence,
        )
