from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any


class ProductOption(BaseModel):
    """Option derived from variant titles (e.g. Color, Size)"""
    name: str
    values: List[str] = Field(default_factory=list)


class PriceData(BaseModel):
    """A one-time SureCart price, amount in minor units"""
    name: str
    amount: int = Field(0, ge=0, description="Amount in cents")
    currency: str = "usd"
    metadata: Dict[str, str] = Field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "amount": self.amount,
            "currency": self.currency,
            "metadata": dict(self.metadata),
        }


class VariantData(BaseModel):
    """A SureCart variant built from an active Printify variant"""
    title: str
    sku: str
    amount: int = Field(0, ge=0, description="Price in cents")
    cost: int = Field(0, ge=0, description="Cost in cents")
    option_values: List[str] = Field(default_factory=list)
    metadata: Dict[str, str] = Field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            "title": self.title,
            "sku": self.sku,
            "amount": self.amount,
            "cost": self.cost,
            "metadata": dict(self.metadata),
        }
        for i, value in enumerate(self.option_values, start=1):
            payload[f"option_{i}"] = value
        return payload


class SureCartProductData(BaseModel):
    """Destination product data produced by the product mapper"""
    name: str
    description: str = ""
    image_url: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    metadata: Dict[str, str] = Field(default_factory=dict)
    options: List[ProductOption] = Field(default_factory=list)
    prices: List[PriceData] = Field(default_factory=list)
    variants: List[VariantData] = Field(default_factory=list)

    def product_payload(self) -> Dict[str, Any]:
        """Fields sent on product create/update; prices and variants go separately."""
        return {
            "name": self.name,
            "description": self.description,
            "metadata": dict(self.metadata),
        }


class ProductSyncResult(BaseModel):
    """Result of upserting one product into SureCart"""
    printify_id: Optional[str] = None
    surecart_id: Optional[str] = None
    action: str  # created, updated, skipped, error
    success: bool
    message: str = ""
    error_details: Optional[str] = None
    prices_created: int = 0
    prices_updated: int = 0
    variants_created: int = 0
    variants_updated: int = 0
    media_attached: int = 0
