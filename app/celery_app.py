"""
Celery application configuration for the Printify-SureCart sync service.
"""
from celery import Celery
from celery.signals import setup_logging

from app.core.config import settings
from app.core.logging_config import configure_logging

# Create Celery instance
celery_app = Celery(
    "printify_surecart_sync",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "app.tasks.sync_tasks",
        "app.tasks.order_tasks",
        "app.tasks.scheduled_tasks",
    ]
)

celery_app.conf.update(
    # Serialization
    task_serializer=settings.celery_task_serializer,
    result_serializer=settings.celery_result_serializer,
    accept_content=settings.celery_accept_content,

    # Timezone
    timezone=settings.celery_timezone,
    enable_utc=settings.celery_enable_utc,

    # Task execution; a batch is bounded by the sync time budget
    task_track_started=True,
    task_time_limit=10 * 60,
    task_soft_time_limit=8 * 60,

    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=100,

    # Task acknowledgment
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    result_expires=7200,

    task_routes={
        'app.tasks.sync_tasks.*': {
            'queue': 'sync_queue',
            'priority': 5
        },
        'app.tasks.scheduled_tasks.*': {
            'queue': 'scheduler_queue',
            'priority': 7
        },
        'app.tasks.order_tasks.*': {
            'queue': 'webhook_queue',
            'priority': 8
        },
    },

    broker_connection_retry_on_startup=True,
    broker_connection_retry=True,
    broker_connection_max_retries=10,
)

celery_app.conf.beat_schedule = {
    'scheduled-product-sync': {
        'task': 'app.tasks.scheduled_tasks.scheduled_product_sync',
        'schedule': float(settings.auto_sync_interval_seconds),
    },
    'check-stalled-sync-every-5-minutes': {
        'task': 'app.tasks.scheduled_tasks.check_stalled_sync',
        'schedule': 300.0,
    },
}


@setup_logging.connect
def _configure_worker_logging(**kwargs):
    configure_logging()


if __name__ == '__main__':
    celery_app.start()
