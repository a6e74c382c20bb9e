"""Constants for sync operations."""


class SyncAction:
    """Per-item sync outcome."""
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    ERROR = "error"


class SyncState:
    """Lifecycle states of a batch sync run."""
    NOT_STARTED = "not_started"
    RUNNING = "running"
    STALLED = "stalled"
    COMPLETED = "completed"


class TaskStatus:
    """Celery task status constants."""
    STARTED = "started"
    SUCCESS = "success"
    FAILURE = "failure"
    RETRY = "retry"


class SyncMode:
    """What triggered a sync run."""
    MANUAL = "manual"
    SCHEDULED = "scheduled"
    WATCHDOG = "watchdog"


class OrderEvent:
    """SureCart webhook event types handled by the order bridge."""
    CREATED = "order.created"
    PAYMENT_SUCCEEDED = "order.payment_succeeded"
    UPDATED = "order.updated"
    STATUS_UPDATED = "order.status_updated"


CREATED_EVENTS = (OrderEvent.CREATED, OrderEvent.PAYMENT_SUCCEEDED)
UPDATED_EVENTS = (OrderEvent.UPDATED, OrderEvent.STATUS_UPDATED)


# SureCart order status -> Printify order status
ORDER_STATUS_MAP = {
    "paid": "pending",
    "processing": "pending",
    "completed": "completed",
    "refunded": "canceled",
    "canceled": "canceled",
}

# Flags that mark a Printify variant inactive when explicitly False
ACTIVE_VARIANT_FLAGS = (
    "is_active",
    "active",
    "is_enabled",
    "enabled",
    "is_selected",
    "selected",
    "is_available",
    "available",
)

# Metadata keys written on SureCart resources
META_PRINTIFY_ID = "printify_id"
META_EXTERNAL_ID = "printify_external_id"
META_PRINT_PROVIDER_ID = "printify_print_provider_id"
META_BLUEPRINT_ID = "printify_blueprint_id"
META_SYNCED_AT = "printify_synced_at"
META_IMAGES = "printify_images"
META_VARIANT_ID = "printify_variant_id"
META_VARIANT_OPTIONS = "printify_variant_options"

OPTION_SEPARATOR = " / "
MINOR_UNITS_THRESHOLD = 1000
UNTITLED_PRODUCT = "Untitled Product"
DEFAULT_VARIANT_TITLE = "Default"
SKU_PREFIX = "PRINTIFY"

# Redis keys
SYNC_PROGRESS_KEY = "sync_progress:{shop_id}"
SYNC_COMPLETED_KEY = "sync_completed:{shop_id}"
SYNC_BATCH_LOCK_KEY = "sync_batch:{shop_id}"
