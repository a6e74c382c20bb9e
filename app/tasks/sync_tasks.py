"""
Celery tasks that drive the product sync.

``run_sync_batch`` is the continuation loop: each invocation advances the
run by one batch under a per-shop Redis lock and re-enqueues itself until
the run reports done.
"""
import logging
from typing import Dict, Any, Optional

import redis
from redis.exceptions import LockError
from redis.lock import Lock as RedisLock

from app.celery_app import celery_app
from app.constants.sync import SYNC_BATCH_LOCK_KEY, SyncMode
from app.core.alerts import alert_manager, AlertLevel, send_sync_completion_alert
from app.core.config import settings
from app.core.exceptions import ConnectivityError
from app.factories.sync_factory import SyncFactory
from app.tasks.task_logger import log_celery_task

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None


def get_redis() -> redis.Redis:
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.Redis.from_url(settings.redis_url, decode_responses=True)
    return _redis_client


def start_sync(force: bool = False, mode: str = SyncMode.MANUAL) -> Dict[str, Any]:
    """
    Start or resume a run and enqueue its first batch.

    Raises:
        ConnectivityError: Printify is unreachable; no run was created
    """
    orchestrator = SyncFactory.orchestrator()
    started = orchestrator.start(force=force)
    run_sync_batch.delay()
    logger.info(
        f"Product sync {'resumed' if started.resumed else 'started'} ({mode}): "
        f"run {started.progress.run_id}, {started.progress.total} products"
    )
    return {
        "success": True,
        "action": "resumed" if started.resumed else "started",
        "run_id": started.progress.run_id,
        "total": started.progress.total,
        "processed": started.progress.processed,
    }


@celery_app.task(
    bind=True,
    name="app.tasks.sync_tasks.start_product_sync",
    max_retries=0
)
@log_celery_task
def start_product_sync(self, force: bool = False, mode: str = SyncMode.MANUAL) -> Dict[str, Any]:
    try:
        return start_sync(force=force, mode=mode)
    except ConnectivityError as e:
        logger.error(f"Product sync not started: {e}")
        alert_manager.send_alert(
            title="Product sync could not start",
            message=str(e),
            level=AlertLevel.ERROR,
            context={"shop_id": settings.printify_shop_id, "mode": mode},
        )
        return {"success": False, "action": "error", "message": str(e)}


@celery_app.task(
    bind=True,
    name="app.tasks.sync_tasks.run_sync_batch",
    max_retries=3,
    default_retry_delay=30
)
@log_celery_task
def run_sync_batch(self) -> Dict[str, Any]:
    """Advance the current run by one batch and schedule the next one."""
    lock_key = SYNC_BATCH_LOCK_KEY.format(shop_id=settings.printify_shop_id)
    lock = RedisLock(get_redis(), lock_key, timeout=settings.sync_lock_timeout_seconds)
    if not lock.acquire(blocking=False):
        logger.info("Another worker is running a sync batch, skipping")
        return {"success": True, "action": "skipped", "message": "Batch already running"}

    try:
        orchestrator = SyncFactory.orchestrator()
        step = orchestrator.advance()
    except Exception as exc:
        logger.error(f"Sync batch failed: {exc}", exc_info=True)
        raise self.retry(exc=exc)
    finally:
        try:
            lock.release()
        except LockError:
            logger.warning(f"Sync batch lock {lock_key} expired before release")

    if not step.done:
        run_sync_batch.apply_async(countdown=settings.sync_continuation_delay_seconds)
    elif step.just_completed:
        progress = orchestrator.load()
        if progress is not None:
            cleanup_sync_progress.apply_async(
                args=[progress.run_id],
                countdown=settings.sync_completed_ttl_seconds,
            )
            duration = (progress.last_processed - progress.started_at).total_seconds()
            send_sync_completion_alert(
                shop_id=progress.shop_id,
                total=progress.total,
                created=progress.created,
                updated=progress.updated,
                errors=progress.errors,
                duration_seconds=duration,
            )

    result = step.model_dump()
    result["success"] = True
    return result


@celery_app.task(
    bind=True,
    name="app.tasks.sync_tasks.cleanup_sync_progress"
)
@log_celery_task
def cleanup_sync_progress(self, run_id: str) -> Dict[str, Any]:
    """Drop the finished progress record of ``run_id``; newer runs are left alone."""
    orchestrator = SyncFactory.orchestrator()
    progress = orchestrator.load()
    if progress is None:
        return {"success": True, "action": "skipped", "message": "Nothing to clean up"}
    if progress.run_id != run_id or not progress.completed:
        return {"success": True, "action": "skipped", "message": f"Run {progress.run_id} is still active"}
    orchestrator.clear()
    return {"success": True, "action": "deleted", "run_id": run_id}
