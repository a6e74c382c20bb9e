"""API endpoint for receiving SureCart webhooks."""

import logging
from typing import Dict, Any

from fastapi import APIRouter, HTTPException, Request, status

from app.tasks.order_tasks import process_order_event

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post("/surecart", status_code=status.HTTP_202_ACCEPTED)
async def receive_surecart_webhook(request: Request) -> Dict[str, Any]:
    """
    Receive an order webhook from SureCart and queue it for processing.

    The event is acknowledged immediately; the order bridge runs in the worker.
    """
    try:
        event = await request.json()
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON payload")

    if not isinstance(event, dict) or not event.get("type") or not isinstance(event.get("data"), dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Webhook payload must contain 'type' and 'data'"
        )

    task = process_order_event.delay(event)
    logger.info(f"Queued SureCart webhook {event['type']} as task {task.id}")
    return {"status": "queued", "task_id": task.id, "event_type": event["type"]}
