from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from sqlalchemy import Column, ForeignKey, Integer, String, Text, DateTime, func
from sqlalchemy.orm import relationship

from app.db.base import Base


class OrderSync(Base):
    """Durable cross-reference between a SureCart order and its Printify order."""
    __tablename__ = "order_sync"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String(64), nullable=False, unique=True, index=True)
    order_number = Column(String(64), nullable=True)
    printify_order_id = Column(String(64), nullable=True, index=True)
    # paid, processing, completed, refunded, canceled
    storefront_status = Column(String(50), nullable=True)
    # pending, completed, canceled
    printify_status = Column(String(50), nullable=True)
    error_message = Column(String(500), nullable=True)

    last_synced_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    notes = relationship(
        "OrderSyncNote",
        back_populates="order_sync",
        order_by="OrderSyncNote.id",
        cascade="all, delete-orphan"
    )


class OrderSyncNote(Base):
    """Append-only note log attached to an order sync record."""
    __tablename__ = "order_sync_note"

    id = Column(Integer, primary_key=True, index=True)
    order_sync_id = Column(Integer, ForeignKey("order_sync.id", ondelete="CASCADE"),
                           nullable=False, index=True)
    note = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    order_sync = relationship("OrderSync", back_populates="notes")


class Address(BaseModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    country: str = ""
    region: str = ""
    address1: str = ""
    address2: str = ""
    city: str = ""
    zip: str = ""

    def is_empty(self) -> bool:
        return not (self.address1 or self.city or self.country)


class OrderLineItem(BaseModel):
    """A SureCart line item with the product and variant metadata expanded"""
    id: Optional[str] = None
    quantity: int = 1
    product_id: Optional[str] = None
    product_metadata: Dict[str, Any] = Field(default_factory=dict)
    variant_id: Optional[str] = None
    variant_metadata: Dict[str, Any] = Field(default_factory=dict)


class StorefrontOrder(BaseModel):
    """A SureCart order normalized for the fulfillment bridge"""
    id: str
    number: Optional[str] = None
    status: str = ""
    line_items: List[OrderLineItem] = Field(default_factory=list)
    shipping_address: Optional[Address] = None
    billing_address: Optional[Address] = None
    customer: Optional[Address] = None

    @property
    def label(self) -> str:
        return f"SureCart Order #{self.number or self.id}"


class OrderSyncRead(BaseModel):
    """API view of an order sync record"""
    order_id: str
    order_number: Optional[str] = None
    printify_order_id: Optional[str] = None
    storefront_status: Optional[str] = None
    printify_status: Optional[str] = None
    error_message: Optional[str] = None
    last_synced_at: Optional[datetime] = None
    last_note: Optional[str] = None

    class Config:
        from_attributes = True
