from app.models.order_models import OrderSync, OrderSyncNote
from app.models.task_log import CeleryTaskLog

__all__ = [
    "OrderSync",
    "OrderSyncNote",
    "CeleryTaskLog",
]
