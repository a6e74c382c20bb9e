"""
Repository layer.

- BaseSyncStateRepository / RedisSyncStateRepository: transient sync run state
- OrderSyncRepository: SureCart -> Printify order cross-reference
- TaskLogRepository: Celery task log operations
"""
from app.repositories.sync_state_repository import (
    BaseSyncStateRepository,
    RedisSyncStateRepository,
)
from app.repositories.order_sync_repository import OrderSyncRepository
from app.repositories.task_log_repository import TaskLogRepository

__all__ = [
    'BaseSyncStateRepository',
    'RedisSyncStateRepository',
    'OrderSyncRepository',
    'TaskLogRepository',
]
