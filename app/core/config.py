from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Printify
    printify_api_token: str = ""
    printify_shop_id: str = ""
    printify_api_url: str = "https://api.printify.com/v1"
    printify_request_timeout: int = 30
    printify_page_limit: int = 100

    # SureCart
    surecart_api_token: str = ""
    surecart_api_url: str = "https://api.surecart.com/v1"
    surecart_request_timeout: int = 30
    default_currency: str = "usd"

    # Infrastructure
    database_url: str = "sqlite:///./sync.db"
    redis_url: str = "redis://localhost:6379/0"
    celery_broker_url: str = "redis://localhost:6379/0"
    celery_result_backend: str = "redis://localhost:6379/0"
    celery_task_serializer: str = "json"
    celery_result_serializer: str = "json"
    celery_accept_content: List[str] = ["json"]
    celery_timezone: str = "UTC"
    celery_enable_utc: bool = True

    # Batch sync
    sync_batch_size: int = 5
    sync_time_budget_seconds: float = 20.0
    sync_stall_threshold_seconds: int = 300
    sync_progress_ttl_seconds: int = 3600
    sync_completed_ttl_seconds: int = 3600
    sync_continuation_delay_seconds: int = 1
    sync_lock_timeout_seconds: int = 120
    refresh_product_details: bool = False
    media_attach_delay_seconds: float = 0.5

    # Automatic product sync
    auto_sync_enabled: bool = False
    auto_sync_interval_seconds: int = 86400
    resume_stalled_syncs: bool = True

    # Order sync
    order_sync_enabled: bool = True
    order_sync_statuses: List[str] = ["paid", "processing"]
    printify_shipping_method: int = 1
    printify_send_shipping_notification: bool = True

    # Alerts
    alerts_enabled: bool = False
    alert_slack_enabled: bool = False
    alert_slack_webhook_url: str = ""
    alert_webhook_enabled: bool = False
    alert_webhook_url: str = ""

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
