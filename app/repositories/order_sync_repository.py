"""
Order sync repository.

Persists the SureCart order -> Printify order cross-reference and its
append-only note log.
"""
import logging
from typing import Optional, List
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.models.order_models import OrderSync, OrderSyncNote

logger = logging.getLogger(__name__)


class OrderSyncRepository:
    """Repository for order sync operations."""

    def __init__(self, db: Session):
        """
        Initialize repository with database session.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def get_by_order_id(self, order_id: str) -> Optional[OrderSync]:
        return self.db.query(OrderSync).filter(
            OrderSync.order_id == str(order_id)
        ).first()

    def get_printify_order_id(self, order_id: str) -> Optional[str]:
        record = self.get_by_order_id(order_id)
        return record.printify_order_id if record else None

    def get_or_create(self, order_id: str, order_number: Optional[str] = None) -> OrderSync:
        record = self.get_by_order_id(order_id)
        if record:
            return record
        record = OrderSync(order_id=str(order_id), order_number=order_number)
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return record

    def set_printify_order_id(
        self,
        order_id: str,
        printify_order_id: str,
        order_number: Optional[str] = None,
        storefront_status: Optional[str] = None,
        printify_status: Optional[str] = None
    ) -> OrderSync:
        """
        Record the Printify order created for a SureCart order.

        Args:
            order_id: SureCart order ID
            printify_order_id: ID assigned by Printify
            order_number: Human-facing SureCart order number
            storefront_status: SureCart status at sync time
            printify_status: Printify status at sync time

        Returns:
            Updated OrderSync record
        """
        record = self.get_or_create(order_id, order_number)
        record.printify_order_id = str(printify_order_id)
        record.order_number = order_number or record.order_number
        record.storefront_status = storefront_status
        record.printify_status = printify_status
        record.error_message = None
        record.last_synced_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(record)
        return record

    def update_status(
        self,
        order_id: str,
        storefront_status: Optional[str] = None,
        printify_status: Optional[str] = None,
        error_message: Optional[str] = None
    ) -> Optional[OrderSync]:
        record = self.get_by_order_id(order_id)
        if not record:
            return None
        if storefront_status is not None:
            record.storefront_status = storefront_status
        if printify_status is not None:
            record.printify_status = printify_status
        record.error_message = error_message
        record.last_synced_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(record)
        return record

    def record_error(self, order_id: str, message: str, order_number: Optional[str] = None) -> OrderSync:
        record = self.get_or_create(order_id, order_number)
        record.error_message = message[:500]
        self.db.commit()
        self.db.refresh(record)
        return record

    def add_note(self, order_id: str, note: str) -> OrderSyncNote:
        record = self.get_or_create(order_id)
        entry = OrderSyncNote(order_sync_id=record.id, note=note)
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        logger.debug(f"Order {order_id}: {note}")
        return entry

    def get_notes(self, order_id: str) -> List[OrderSyncNote]:
        record = self.get_by_order_id(order_id)
        if not record:
            return []
        return self.db.query(OrderSyncNote).filter(
            OrderSyncNote.order_sync_id == record.id
        ).order_by(OrderSyncNote.id).all()

    def list_recent(self, limit: int = 50, offset: int = 0) -> List[OrderSync]:
        return self.db.query(OrderSync).order_by(
            OrderSync.id.desc()
        ).offset(offset).limit(limit).all()
