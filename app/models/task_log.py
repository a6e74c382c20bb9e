from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, func

from app.db.base import Base


class CeleryTaskLog(Base):
    __tablename__ = "celery_task_log"

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(String(255), unique=True, nullable=False, index=True)
    task_name = Column(String(255), nullable=False, index=True)
    shop_id = Column(String(64), nullable=True, index=True)
    task_args = Column(JSON, nullable=True)
    task_kwargs = Column(JSON, nullable=True)
    # started, success, failure, retry
    status = Column(String(50), nullable=False, default="started")
    result = Column(JSON, nullable=True)
    error_message = Column(Text, nullable=True)
    duration_seconds = Column(Integer, nullable=True)

    started_at = Column(DateTime(timezone=True), server_default=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)
