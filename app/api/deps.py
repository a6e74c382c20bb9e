"""FastAPI dependencies wiring the sync components."""
from fastapi import Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.factories.sync_factory import SyncFactory
from app.services.order_sync import OrderSyncService
from app.services.sync_orchestrator import SyncOrchestrator


def get_orchestrator() -> SyncOrchestrator:
    return SyncFactory.orchestrator()


def get_order_sync_service(db: Session = Depends(get_db)) -> OrderSyncService:
    return SyncFactory.order_sync_service(db)
