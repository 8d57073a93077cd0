"""
Tests for the background scheduler setup.
"""

from unittest.mock import MagicMock

from app.config.settings import settings
from jobs.scheduler import COMMISSION_RETRY_JOB_ID, create_scheduler


class TestCreateScheduler:
    """Tests for job registration."""

    def test_retry_job_registered_when_enabled(self, monkeypatch):
        """The retry sweep runs on the configured interval."""
        monkeypatch.setattr(settings, "commission_retry_enabled", True)
        monkeypatch.setattr(settings, "commission_retry_interval_minutes", 7)
        session_maker = MagicMock()

        scheduler = create_scheduler(session_maker)

        job = scheduler.get_job(COMMISSION_RETRY_JOB_ID)
        assert job is not None
        assert job.args == (session_maker,)
        assert job.trigger.interval.total_seconds() == 7 * 60
        assert job.max_instances == 1

    def test_no_jobs_when_disabled(self, monkeypatch):
        """Disabling the sweep leaves the scheduler empty."""
        monkeypatch.setattr(settings, "commission_retry_enabled", False)

        scheduler = create_scheduler(MagicMock())

        assert scheduler.get_jobs() == []
