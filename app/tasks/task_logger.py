"""
Decorator for automatic logging of Celery tasks.
"""
import functools
import logging
import time
from typing import Callable, Any

from celery import Task
from celery.exceptions import Retry
from sqlalchemy.exc import SQLAlchemyError

from app.constants.sync import TaskStatus
from app.core.alerts import send_task_error_alert
from app.core.config import settings
from app.db.session import SessionLocal
from app.repositories.task_log_repository import TaskLogRepository

logger = logging.getLogger(__name__)


def _safe_log(action: Callable[[TaskLogRepository], Any], db) -> None:
    try:
        action(TaskLogRepository(db))
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Could not write task log: {e}")


def log_celery_task(func: Callable) -> Callable:
    """
    Record each run of a Celery task in the task log table.

    Usage:
        @celery_app.task(bind=True, max_retries=3)
        @log_celery_task
        def my_task(self, arg1):
            ...

    Retries reuse the task log row. Once retries are exhausted an alert is sent.
    """
    @functools.wraps(func)
    def wrapper(self: Task, *args, **kwargs) -> Any:
        db = SessionLocal()
        task_id = self.request.id or f"eager-{self.name}-{time.time()}"
        started = time.monotonic()
        status = TaskStatus.RETRY if self.request.retries else TaskStatus.STARTED
        try:
            _safe_log(lambda repo: repo.create_task_log(
                task_id=task_id,
                task_name=self.name,
                shop_id=settings.printify_shop_id or None,
                task_args=list(args),
                task_kwargs=dict(kwargs),
                status=status,
            ), db)
            logger.info(f"Task {self.name} [{task_id}] {status}")

            result = func(self, *args, **kwargs)

            success = result.get("success", True) if isinstance(result, dict) else True
            _safe_log(lambda repo: repo.update_task_log(
                task_id=task_id,
                status=TaskStatus.SUCCESS if success else TaskStatus.FAILURE,
                result={"data": result} if result else None,
                duration_seconds=time.monotonic() - started,
            ), db)
            logger.info(
                f"Task {self.name} [{task_id}] finished in {time.monotonic() - started:.2f}s "
                f"(success={success})"
            )
            return result

        except Retry:
            _safe_log(lambda repo: repo.update_task_log(task_id=task_id, status=TaskStatus.RETRY), db)
            logger.info(f"Task {self.name} [{task_id}] scheduled for retry")
            raise

        except Exception as exc:
            error_message = f"{type(exc).__name__}: {exc}"
            logger.error(f"Task {self.name} [{task_id}] failed: {error_message}")
            _safe_log(lambda repo: repo.update_task_log(
                task_id=task_id,
                status=TaskStatus.FAILURE,
                error_message=error_message,
                duration_seconds=time.monotonic() - started,
            ), db)

            retries = self.request.retries or 0
            max_retries = self.max_retries or 0
            if retries >= max_retries:
                send_task_error_alert(
                    task_name=self.name,
                    error=exc,
                    task_id=task_id,
                    shop_id=settings.printify_shop_id or None,
                    retries=retries,
                    max_retries=max_retries,
                )
            # Celery handles retries
            raise

        finally:
            db.close()

    return wrapper
