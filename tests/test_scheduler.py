"""Tests for the sync scheduler."""
from unittest.mock import MagicMock

import pytest
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from sitepulse.models.schemas import SyncRunStats
from sitepulse.tasks.scheduler import (
    SWEEP_JOB_ID,
    SYNC_JOB_ID,
    WARMUP_JOB_ID,
    SyncScheduler,
    build_trigger,
    clamp_interval,
    describe_cadence,
)


@pytest.fixture
def sync_service():
    service = MagicMock()
    service.is_running = False
    return service


@pytest.fixture
def mock_scheduler():
    scheduler = MagicMock()
    scheduler.running = False
    return scheduler


class TestInterval:
    """Test interval clamping and cadence descriptions."""

    @pytest.mark.parametrize("minutes,expected", [(45, 45), (150, 120), (10, 30), (30, 30), (120, 120)])
    def test_clamp(self, minutes, expected):
        """Test that intervals are clamped to 30-120 minutes."""
        assert clamp_interval(minutes) == expected

    @pytest.mark.parametrize("minutes,cadence", [
        (30, "every 30 minutes"),
        (45, "every 45 minutes"),
        (60, "every 1 hour"),
        (90, "every 90 minutes"),
        (120, "every 2 hours"),
    ])
    def test_cadence(self, minutes, cadence):
        """Test the human readable cadence."""
        assert describe_cadence(minutes) == cadence

    def test_whole_hours_use_cron(self):
        """Test that whole-hour intervals use a cron trigger."""
        assert isinstance(build_trigger(60), CronTrigger)
        assert isinstance(build_trigger(120), CronTrigger)
        assert isinstance(build_trigger(45), IntervalTrigger)

    def test_constructor_clamps(self, sync_service, mock_scheduler):
        """Test that the configured interval is clamped on construction."""
        scheduler = SyncScheduler(sync_service, interval_minutes=150, scheduler=mock_scheduler)
        assert scheduler.interval_minutes == 120
        assert scheduler.cadence == "every 2 hours"


class TestLifecycle:
    """Test start/stop and job registration."""

    def test_start_registers_jobs(self, sync_service, mock_scheduler):
        """Test that start registers the sync, warm-up and sweep jobs."""
        analytics = MagicMock()
        scheduler = SyncScheduler(sync_service, interval_minutes=60, analytics=analytics,
                                  analytics_sweep_hour=6, scheduler=mock_scheduler)
        assert scheduler.state == "stopped"

        scheduler.start()

        job_ids = [c.kwargs["id"] for c in mock_scheduler.add_job.call_args_list]
        assert job_ids == [SYNC_JOB_ID, WARMUP_JOB_ID, SWEEP_JOB_ID]
        sync_call, warmup_call, sweep_call = mock_scheduler.add_job.call_args_list
        assert sync_call.kwargs["max_instances"] == 1
        assert isinstance(warmup_call.args[1], DateTrigger)
        assert sweep_call.args[0] == analytics.run_alert_sweep
        mock_scheduler.start.assert_called_once()
        assert scheduler.state == "idle"

    def test_start_without_sweep(self, sync_service, mock_scheduler):
        """Test that no sweep job is added when the sweep hour is unset."""
        scheduler = SyncScheduler(sync_service, analytics=MagicMock(), analytics_sweep_hour=None,
                                  scheduler=mock_scheduler)
        scheduler.start()
        assert mock_scheduler.add_job.call_count == 2

    def test_state_reflects_running_sync(self, sync_service, mock_scheduler):
        """Test that state is running while a sync is in flight."""
        scheduler = SyncScheduler(sync_service, scheduler=mock_scheduler)
        scheduler.start()
        sync_service.is_running = True
        assert scheduler.state == "running"

    def test_stop(self, sync_service, mock_scheduler):
        """Test that stop removes jobs and shuts the scheduler down."""
        scheduler = SyncScheduler(sync_service, scheduler=mock_scheduler)
        scheduler.start()
        mock_scheduler.running = True

        scheduler.stop()

        mock_scheduler.remove_all_jobs.assert_called_once()
        mock_scheduler.shutdown.assert_called_once_with(wait=False)
        assert scheduler.state == "stopped"
        # an injected scheduler is kept
        assert scheduler.scheduler is mock_scheduler

    def test_owned_scheduler_can_restart(self, sync_service):
        """Test that an owned scheduler can be started again after stop."""
        scheduler = SyncScheduler(sync_service, warmup_seconds=3600)
        scheduler.start()
        first = scheduler.scheduler
        scheduler.stop()
        assert scheduler.scheduler is not first
        scheduler.start()
        try:
            assert scheduler.scheduler.running
        finally:
            scheduler.stop()


class TestTick:
    """Test the recurring job body."""

    def test_skips_while_busy(self, sync_service, mock_scheduler):
        """Test that a tick is skipped while a sync is running."""
        sync_service.is_running = True
        scheduler = SyncScheduler(sync_service, scheduler=mock_scheduler)
        scheduler._tick()
        sync_service.perform_sync.assert_not_called()

    def test_runs_when_idle(self, sync_service, mock_scheduler):
        """Test that a tick runs a sync when idle."""
        scheduler = SyncScheduler(sync_service, scheduler=mock_scheduler)
        scheduler._tick()
        sync_service.perform_sync.assert_called_once()

    def test_failure_is_logged_not_raised(self, sync_service, mock_scheduler):
        """Test that a failing sync does not escape the job."""
        sync_service.perform_sync.side_effect = RuntimeError("db down")
        scheduler = SyncScheduler(sync_service, scheduler=mock_scheduler)
        scheduler._tick()


class TestManualRefresh:
    """Test on-demand refreshes."""

    def test_refused_while_busy(self, sync_service, mock_scheduler):
        """Test that a manual refresh is refused while busy."""
        sync_service.is_running = True
        result = SyncScheduler(sync_service, scheduler=mock_scheduler).manual_refresh()
        assert result.success is False
        assert result.message == "Data sync already in progress. Please wait for current sync to complete."
        sync_service.perform_sync.assert_not_called()

    def test_lost_race_reports_busy(self, sync_service, mock_scheduler):
        """Test that losing the start race reports busy."""
        sync_service.perform_sync.return_value = None
        result = SyncScheduler(sync_service, scheduler=mock_scheduler).manual_refresh()
        assert result.success is False
        assert "already in progress" in result.message

    def test_failure(self, sync_service, mock_scheduler):
        """Test that a failing refresh reports the error."""
        sync_service.perform_sync.side_effect = RuntimeError("db down")
        result = SyncScheduler(sync_service, scheduler=mock_scheduler).manual_refresh()
        assert result.success is False
        assert result.message == "Manual refresh failed: db down"

    def test_success(self, sync_service, mock_scheduler):
        """Test that a successful refresh returns its statistics."""
        stats = SyncRunStats(sites_processed=3, records_updated=6, errors=0, duration_ms=12.5)
        sync_service.perform_sync.return_value = stats
        result = SyncScheduler(sync_service, scheduler=mock_scheduler).manual_refresh()
        assert result.success is True
        assert result.message == "Data refresh completed successfully"
        assert result.stats == stats

    def test_get_stats_delegates(self, sync_service, mock_scheduler):
        """Test that get_stats comes from the sync service."""
        sync_service.get_stats.return_value = SyncRunStats(errors=2)
        assert SyncScheduler(sync_service, scheduler=mock_scheduler).get_stats().errors == 2


class TestUpdateInterval:
    """Test interval updates."""

    def test_update_clamps_and_requires_restart(self, sync_service, mock_scheduler):
        """Test that an interval update is clamped and not applied live."""
        scheduler = SyncScheduler(sync_service, scheduler=mock_scheduler)
        result = scheduler.update_interval(200)
        assert result.success is True
        assert result.interval_minutes == 120
        assert result.cadence == "every 2 hours"
        assert "Restart required" in result.message
        assert scheduler.interval_minutes == 120
        mock_scheduler.add_job.assert_not_called()

    def test_invalid_interval(self, sync_service, mock_scheduler):
        """Test that a non-numeric interval is rejected."""
        scheduler = SyncScheduler(sync_service, interval_minutes=45, scheduler=mock_scheduler)
        result = scheduler.update_interval("soon")
        assert result.success is False
        assert scheduler.interval_minutes == 45
