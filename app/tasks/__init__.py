"""
Celery tasks package initialization.
"""
from app.tasks.sync_tasks import *
from app.tasks.order_tasks import *
from app.tasks.scheduled_tasks import *
