"""
Celery tasks for the SureCart to Printify order bridge.
"""
import logging
from typing import Dict, Any

from app.celery_app import celery_app
from app.core.exceptions import (
    OrderAlreadySyncedError,
    OrderSyncError,
    PrintifyError,
    SureCartError,
)
from app.factories.sync_factory import SyncFactory
from app.tasks.base import DatabaseTask
from app.tasks.task_logger import log_celery_task

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    base=DatabaseTask,
    name="app.tasks.order_tasks.process_order_event",
    max_retries=3,
    default_retry_delay=120
)
@log_celery_task
def process_order_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Handle one SureCart order webhook event.

    Args:
        event: Raw webhook body (``type`` plus ``data.order``)

    Returns:
        Dict with processing result
    """
    service = SyncFactory.order_sync_service(self.db)
    try:
        result = service.handle_webhook(event)
    except OrderSyncError as e:
        # Non-retryable: nothing Printify can fulfil, or the order is gone
        logger.warning(f"Order event {event.get('type')} not processed: {e}")
        return {"success": False, "status": "failed", "error": str(e)}
    except (PrintifyError, SureCartError) as exc:
        logger.error(f"Order event {event.get('type')} failed: {exc}")
        raise self.retry(exc=exc)

    result["success"] = True
    return result


@celery_app.task(
    bind=True,
    base=DatabaseTask,
    name="app.tasks.order_tasks.sync_order_to_printify",
    max_retries=3,
    default_retry_delay=60
)
@log_celery_task
def sync_order_to_printify(self, order_id: str) -> Dict[str, Any]:
    """Send a single SureCart order to Printify on demand."""
    service = SyncFactory.order_sync_service(self.db)
    try:
        printify_order_id = service.sync_single_order(order_id)
    except OrderAlreadySyncedError as e:
        return {"success": True, "action": "skipped", "message": str(e)}
    except OrderSyncError as e:
        return {"success": False, "action": "error", "message": str(e)}
    except (PrintifyError, SureCartError) as exc:
        raise self.retry(exc=exc)

    return {"success": True, "action": "created", "order_id": order_id, "printify_order_id": printify_order_id}
