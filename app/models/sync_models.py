"""
Models for the batch product sync: the normalized Printify catalog snapshot
and the persisted run state.
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.constants.sync import SyncState


class UpstreamImage(BaseModel):
    """A catalog image on a Printify product"""
    id: Optional[str] = None
    src: str = ""
    variant_ids: List[str] = Field(default_factory=list)
    position: Optional[str] = None
    is_default: bool = False


class UpstreamVariant(BaseModel):
    """A Printify product variant, normalized"""
    id: str
    title: str = ""
    price: Optional[float] = None
    cost: Optional[float] = None
    sku: Optional[str] = None
    option_ids: List[str] = Field(default_factory=list)
    image_ids: List[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    # Only the active-state booleans present on the payload
    flags: Dict[str, bool] = Field(default_factory=dict)


class UpstreamOption(BaseModel):
    name: str = ""
    type: Optional[str] = None


class UpstreamProduct(BaseModel):
    """Immutable snapshot of a Printify product"""
    id: str
    title: str = ""
    description: str = ""
    images: List[UpstreamImage] = Field(default_factory=list)
    variants: List[UpstreamVariant] = Field(default_factory=list)
    options: List[UpstreamOption] = Field(default_factory=list)
    price: Optional[float] = None
    external_id: Optional[str] = None
    print_provider_id: Optional[str] = None
    blueprint_id: Optional[str] = None
    # Product-level image, preview_url, thumbnail_url in that order
    fallback_images: List[str] = Field(default_factory=list)
    # True when the snapshot came from the detail endpoint
    detailed: bool = False

    class Config:
        frozen = True


class SyncProgress(BaseModel):
    """Persisted state of a sync run; one per shop"""
    run_id: str
    shop_id: str
    total: int = 0
    processed: int = 0
    created: int = 0
    updated: int = 0
    errors: int = 0
    error_messages: List[str] = Field(default_factory=list)
    completed: bool = False
    force_resync: bool = False
    products: List[UpstreamProduct] = Field(default_factory=list)
    started_at: datetime
    last_processed: datetime
    completed_at: Optional[datetime] = None


class SyncCompletion(BaseModel):
    """Summary of the last finished run, kept for display"""
    run_id: str
    time: datetime
    created: int = 0
    updated: int = 0
    errors: int = 0
    total: int = 0


class StartResult(BaseModel):
    progress: SyncProgress
    resumed: bool = False


class StepResult(BaseModel):
    """Outcome of a single batch step"""
    done: bool
    state: str
    processed: int = 0
    total: int = 0
    created: int = 0
    updated: int = 0
    errors: int = 0
    batch_processed: int = 0
    # This step finished the run
    just_completed: bool = False
    # The record was replaced or cleared while this step ran; its work was not saved
    superseded: bool = False


class SyncStatus(BaseModel):
    """Status snapshot returned to callers; never includes the product list"""
    state: str = SyncState.NOT_STARTED
    stalled: bool = False
    run_id: Optional[str] = None
    total: int = 0
    processed: int = 0
    created: int = 0
    updated: int = 0
    errors: int = 0
    error_messages: List[str] = Field(default_factory=list)
    force_resync: bool = False
    started_at: Optional[datetime] = None
    last_processed: Optional[datetime] = None
    last_completion: Optional[SyncCompletion] = None
