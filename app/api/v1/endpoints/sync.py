"""
Sync endpoints: start or resume a product sync, inspect and reset its
progress, and push single orders to Printify.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.deps import get_order_sync_service, get_orchestrator
from app.core.exceptions import (
    ConnectivityError,
    NoMatchingProductsError,
    OrderAlreadySyncedError,
    OrderNotFoundError,
    OrderSyncError,
    PrintifyError,
    SureCartError,
)
from app.models.order_models import OrderSyncRead
from app.models.sync_models import SyncStatus
from app.services.order_sync import OrderSyncService
from app.services.sync_orchestrator import SyncOrchestrator
from app.tasks.sync_tasks import run_sync_batch

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sync", tags=["Sync"])


@router.post("/products", status_code=status.HTTP_202_ACCEPTED)
def start_product_sync(
    force: bool = Query(False, description="Discard any existing progress and start over"),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator)
):
    """
    Start a product sync, or resume the one in flight.

    Batches run in the Celery worker; poll ``GET /sync/status`` for progress.
    """
    try:
        started = orchestrator.start(force=force)
    except ConnectivityError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    run_sync_batch.delay()
    progress = started.progress
    return {
        "status": "resumed" if started.resumed else "started",
        "resumed": started.resumed,
        "progress": {
            "run_id": progress.run_id,
            "total": progress.total,
            "processed": progress.processed,
            "created": progress.created,
            "updated": progress.updated,
            "errors": progress.errors,
            "force_resync": progress.force_resync,
        },
    }


@router.get("/status", response_model=SyncStatus)
def get_sync_status(orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    return orchestrator.status()


@router.delete("/progress")
def clear_sync_progress(orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    orchestrator.clear()
    return {"status": "cleared"}


@router.post("/orders/{order_id}")
def sync_order(
    order_id: str,
    service: OrderSyncService = Depends(get_order_sync_service)
):
    """Send one SureCart order to Printify right away."""
    try:
        printify_order_id = service.sync_single_order(order_id)
    except NoMatchingProductsError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except OrderNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except OrderAlreadySyncedError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except (PrintifyError, SureCartError) as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    except OrderSyncError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return {"order_id": order_id, "printify_order_id": printify_order_id}


@router.get("/orders", response_model=List[OrderSyncRead])
def list_order_syncs(
    limit: int = Query(50, le=200),
    offset: int = Query(0, ge=0),
    service: OrderSyncService = Depends(get_order_sync_service)
):
    """Recent order syncs with their latest note."""
    repository = service.repository
    records = []
    for record in repository.list_recent(limit=limit, offset=offset):
        item = OrderSyncRead.model_validate(record)
        notes = repository.get_notes(record.order_id)
        item.last_note = notes[-1].note if notes else None
        records.append(item)
    return records
