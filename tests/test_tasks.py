"""
Tests for the Celery drivers. Tasks are called directly; queueing is mocked.
"""
from unittest.mock import MagicMock

import pytest

from app.core.config import settings
from app.factories.sync_factory import SyncFactory
from app.models.task_log import CeleryTaskLog
from app.tasks import scheduled_tasks, sync_tasks, task_logger


class FakeLock:
    busy = False

    def __init__(self, client, name, timeout=None):
        self.name = name

    def acquire(self, blocking=True):
        return not FakeLock.busy

    def release(self):
        pass


@pytest.fixture
def tasks(monkeypatch, orchestrator, db_session_factory):
    """Real task objects with their follow-up tasks and alerts replaced by mocks."""
    real = {
        "run_sync_batch": sync_tasks.run_sync_batch,
        "cleanup_sync_progress": sync_tasks.cleanup_sync_progress,
        "start_product_sync": sync_tasks.start_product_sync,
        "scheduled_product_sync": scheduled_tasks.scheduled_product_sync,
        "check_stalled_sync": scheduled_tasks.check_stalled_sync,
    }
    mocks = {
        "run_sync_batch": MagicMock(),
        "cleanup_sync_progress": MagicMock(),
        "completion_alert": MagicMock(),
        "stalled_alert": MagicMock(),
        "alert_manager": MagicMock(),
    }
    FakeLock.busy = False
    monkeypatch.setattr(task_logger, "SessionLocal", db_session_factory)
    monkeypatch.setattr(SyncFactory, "orchestrator", staticmethod(lambda *args, **kwargs: orchestrator))
    monkeypatch.setattr(sync_tasks, "RedisLock", FakeLock)
    monkeypatch.setattr(sync_tasks, "get_redis", lambda: None)
    monkeypatch.setattr(sync_tasks, "run_sync_batch", mocks["run_sync_batch"])
    monkeypatch.setattr(scheduled_tasks, "run_sync_batch", mocks["run_sync_batch"])
    monkeypatch.setattr(sync_tasks, "cleanup_sync_progress", mocks["cleanup_sync_progress"])
    monkeypatch.setattr(sync_tasks, "send_sync_completion_alert", mocks["completion_alert"])
    monkeypatch.setattr(scheduled_tasks, "send_stalled_sync_alert", mocks["stalled_alert"])
    monkeypatch.setattr(sync_tasks, "alert_manager", mocks["alert_manager"])
    monkeypatch.setattr(scheduled_tasks, "alert_manager", mocks["alert_manager"])
    return real, mocks


def test_batch_reschedules_itself_until_done(tasks, orchestrator):
    real, mocks = tasks
    orchestrator.start()

    result = real["run_sync_batch"]()

    assert result["success"] is True
    assert result["processed"] == 3
    assert result["done"] is False
    mocks["run_sync_batch"].apply_async.assert_called_once_with(
        countdown=settings.sync_continuation_delay_seconds
    )
    mocks["cleanup_sync_progress"].apply_async.assert_not_called()


def test_final_batch_schedules_cleanup_and_alert(tasks, orchestrator):
    real, mocks = tasks
    run_id = orchestrator.start().progress.run_id

    for _ in range(3):
        result = real["run_sync_batch"]()

    assert result["done"] is True
    assert result["state"] == "completed"
    mocks["cleanup_sync_progress"].apply_async.assert_called_once_with(
        args=[run_id], countdown=settings.sync_completed_ttl_seconds
    )
    mocks["completion_alert"].assert_called_once()
    assert mocks["completion_alert"].call_args[1]["created"] == 7


def test_batch_skips_when_lock_is_held(tasks, orchestrator):
    real, mocks = tasks
    orchestrator.start()
    FakeLock.busy = True

    result = real["run_sync_batch"]()

    assert result["action"] == "skipped"
    assert orchestrator.load().processed == 0
    mocks["run_sync_batch"].apply_async.assert_not_called()


def test_cleanup_only_removes_matching_completed_run(tasks, orchestrator):
    real, _ = tasks
    run_id = orchestrator.start().progress.run_id

    assert real["cleanup_sync_progress"](run_id)["action"] == "skipped"

    while not orchestrator.advance().done:
        pass
    assert real["cleanup_sync_progress"]("someone-else")["action"] == "skipped"
    assert orchestrator.load() is not None

    assert real["cleanup_sync_progress"](run_id)["action"] == "deleted"
    assert orchestrator.load() is None


def test_start_task_enqueues_first_batch(tasks):
    real, mocks = tasks

    result = real["start_product_sync"]()

    assert result["success"] is True
    assert result["action"] == "started"
    assert result["total"] == 7
    mocks["run_sync_batch"].delay.assert_called_once_with()


def test_start_task_alerts_on_connectivity_failure(tasks, catalog):
    real, mocks = tasks
    catalog.reachable = False

    result = real["start_product_sync"]()

    assert result["success"] is False
    mocks["alert_manager"].send_alert.assert_called_once()
    mocks["run_sync_batch"].delay.assert_not_called()


def test_scheduled_sync_respects_toggle(tasks, monkeypatch):
    real, mocks = tasks

    monkeypatch.setattr(settings, "auto_sync_enabled", False)
    assert real["scheduled_product_sync"]()["action"] == "skipped"
    mocks["run_sync_batch"].delay.assert_not_called()

    monkeypatch.setattr(settings, "auto_sync_enabled", True)
    assert real["scheduled_product_sync"]()["action"] == "started"
    mocks["run_sync_batch"].delay.assert_called_once_with()


def test_watchdog_alerts_and_resumes_stalled_run(tasks, orchestrator, clock, monkeypatch):
    real, mocks = tasks
    monkeypatch.setattr(settings, "resume_stalled_syncs", True)
    orchestrator.start()
    orchestrator.advance()

    assert real["check_stalled_sync"]()["stalled"] is False

    clock.advance(600)
    result = real["check_stalled_sync"]()

    assert result["stalled"] is True
    assert result["resumed"] is True
    mocks["stalled_alert"].assert_called_once()
    mocks["run_sync_batch"].delay.assert_called_once_with()


def test_task_runs_are_logged(tasks, orchestrator, db_session_factory):
    real, _ = tasks
    orchestrator.start()

    real["run_sync_batch"]()

    session = db_session_factory()
    try:
        logs = session.query(CeleryTaskLog).all()
        assert len(logs) == 1
        assert logs[0].task_name == "app.tasks.sync_tasks.run_sync_batch"
        assert logs[0].status == "success"
        assert logs[0].duration_seconds is not None
    finally:
        session.close()


def test_empty_catalog_run_still_schedules_cleanup(tasks, orchestrator, catalog):
    real, mocks = tasks
    catalog.products = []
    run_id = orchestrator.start().progress.run_id

    result = real["run_sync_batch"]()

    assert result["just_completed"] is True
    mocks["cleanup_sync_progress"].apply_async.assert_called_once_with(
        args=[run_id], countdown=settings.sync_completed_ttl_seconds
    )
    mocks["completion_alert"].assert_called_once()
    assert mocks["completion_alert"].call_args[1]["total"] == 0


def test_superseded_batch_does_not_reschedule(tasks, orchestrator, storefront):
    real, mocks = tasks
    orchestrator.start()
    upsert = storefront.create_or_update_product

    def restart_mid_batch(data):
        storefront.create_or_update_product = upsert
        orchestrator.start(force=True)
        return upsert(data)

    storefront.create_or_update_product = restart_mid_batch

    result = real["run_sync_batch"]()

    assert result["superseded"] is True
    mocks["run_sync_batch"].apply_async.assert_not_called()
    mocks["cleanup_sync_progress"].apply_async.assert_not_called()
