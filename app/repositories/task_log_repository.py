"""
Task log repository.

Handles Celery task log database operations.
"""
from typing import Optional, List, Dict
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.models.task_log import CeleryTaskLog


class TaskLogRepository:
    """Repository for Celery task log operations."""

    def __init__(self, db: Session):
        self.db = db

    def create_task_log(
        self,
        task_id: str,
        task_name: str,
        shop_id: Optional[str] = None,
        task_args: List = None,
        task_kwargs: Dict = None,
        status: str = "started"
    ) -> CeleryTaskLog:
        """
        Create a Celery task log record.

        Args:
            task_id: Unique Celery task ID
            task_name: Name of the task
            shop_id: Printify shop the task works on, if any
            task_args: Positional arguments passed to task
            task_kwargs: Keyword arguments passed to task
            status: Initial task status

        Returns:
            Created CeleryTaskLog record
        """
        log = self.get_task_log(task_id)
        if log:
            # Retries reuse the task id
            log.status = status
            self.db.commit()
            self.db.refresh(log)
            return log

        log = CeleryTaskLog(
            task_id=task_id,
            task_name=task_name,
            shop_id=shop_id,
            task_args=task_args or [],
            task_kwargs=task_kwargs or {},
            status=status
        )
        self.db.add(log)
        self.db.commit()
        self.db.refresh(log)
        return log

    def get_task_log(self, task_id: str) -> Optional[CeleryTaskLog]:
        return self.db.query(CeleryTaskLog).filter(
            CeleryTaskLog.task_id == task_id
        ).first()

    def update_task_log(
        self,
        task_id: str,
        status: Optional[str] = None,
        result: Optional[Dict] = None,
        error_message: Optional[str] = None,
        duration_seconds: Optional[float] = None
    ) -> Optional[CeleryTaskLog]:
        log = self.get_task_log(task_id)
        if not log:
            return None
        if status:
            log.status = status
        if result is not None:
            log.result = result
        if error_message is not None:
            log.error_message = error_message
        if duration_seconds is not None:
            log.duration_seconds = int(duration_seconds)
        log.completed_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(log)
        return log
