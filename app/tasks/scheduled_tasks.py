"""
Scheduled Celery tasks for automatic synchronization.
"""
import logging
from typing import Dict, Any

from app.celery_app import celery_app
from app.constants.sync import SyncMode
from app.core.alerts import alert_manager, AlertLevel, send_stalled_sync_alert
from app.core.config import settings
from app.core.exceptions import ConnectivityError
from app.factories.sync_factory import SyncFactory
from app.tasks.sync_tasks import run_sync_batch, start_sync
from app.tasks.task_logger import log_celery_task

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    name="app.tasks.scheduled_tasks.scheduled_product_sync"
)
@log_celery_task
def scheduled_product_sync(self) -> Dict[str, Any]:
    """
    Periodic full product sync. Runs on the auto sync interval
    (configured in celery_app.py) when auto sync is enabled.

    A run that is still in flight is resumed rather than restarted.
    """
    if not settings.auto_sync_enabled:
        logger.debug("Auto sync disabled, skipping scheduled product sync")
        return {"success": True, "action": "skipped", "message": "Auto sync disabled"}

    try:
        return start_sync(force=False, mode=SyncMode.SCHEDULED)
    except ConnectivityError as e:
        logger.error(f"Scheduled product sync could not start: {e}")
        alert_manager.send_alert(
            title="Scheduled product sync could not start",
            message=str(e),
            level=AlertLevel.ERROR,
            context={"shop_id": settings.printify_shop_id, "mode": SyncMode.SCHEDULED},
        )
        return {"success": False, "action": "error", "message": str(e)}


@celery_app.task(
    bind=True,
    name="app.tasks.scheduled_tasks.check_stalled_sync"
)
@log_celery_task
def check_stalled_sync(self) -> Dict[str, Any]:
    """Watchdog: alert on a run whose heartbeat went quiet and, if configured, kick it again."""
    orchestrator = SyncFactory.orchestrator()
    progress = orchestrator.load()
    if not orchestrator.is_stalled(progress):
        return {"success": True, "stalled": False}

    idle = orchestrator.idle_seconds(progress)
    logger.warning(
        f"Sync run {progress.run_id} stalled at {progress.processed}/{progress.total} "
        f"({idle:.0f}s since last heartbeat)"
    )
    send_stalled_sync_alert(
        shop_id=progress.shop_id,
        run_id=progress.run_id,
        processed=progress.processed,
        total=progress.total,
        idle_seconds=idle,
    )

    resumed = False
    if settings.resume_stalled_syncs:
        run_sync_batch.delay()
        resumed = True
        logger.info(f"Re-enqueued sync batch for stalled run {progress.run_id} ({SyncMode.WATCHDOG})")

    return {"success": True, "stalled": True, "run_id": progress.run_id, "resumed": resumed}
