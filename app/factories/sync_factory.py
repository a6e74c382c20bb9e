"""Factory for wiring API clients, repositories and services from settings."""

from sqlalchemy.orm import Session

from app.core.config import settings
from app.repositories.order_sync_repository import OrderSyncRepository
from app.repositories.sync_state_repository import (
    BaseSyncStateRepository,
    RedisSyncStateRepository,
)
from app.services.order_sync import OrderSyncService
from app.services.printify.client import PrintifyClient
from app.services.surecart.client import SureCartClient
from app.services.surecart.orders import SureCartOrders
from app.services.surecart.products import SureCartStorefront
from app.services.sync_orchestrator import SyncOrchestrator


class SyncFactory:
    """Factory class for building sync components."""

    @staticmethod
    def printify_client(config=None) -> PrintifyClient:
        config = config or settings
        return PrintifyClient(
            api_token=config.printify_api_token,
            shop_id=config.printify_shop_id,
            base_url=config.printify_api_url,
            timeout=config.printify_request_timeout,
        )

    @staticmethod
    def surecart_client(config=None) -> SureCartClient:
        config = config or settings
        return SureCartClient(
            api_token=config.surecart_api_token,
            base_url=config.surecart_api_url,
            timeout=config.surecart_request_timeout,
        )

    @staticmethod
    def state_repository(config=None) -> RedisSyncStateRepository:
        config = config or settings
        return RedisSyncStateRepository.from_url(config.redis_url)

    @staticmethod
    def orchestrator(
        config=None,
        repository: BaseSyncStateRepository = None
    ) -> SyncOrchestrator:
        """
        Build the product sync orchestrator for the configured shop.

        Args:
            config: Settings object (defaults to the global settings)
            repository: State repository override; Redis by default

        Returns:
            SyncOrchestrator: Ready to start or advance a run
        """
        config = config or settings
        storefront = SureCartStorefront(
            SyncFactory.surecart_client(config),
            media_delay=config.media_attach_delay_seconds,
        )
        return SyncOrchestrator(
            catalog=SyncFactory.printify_client(config),
            storefront=storefront,
            repository=repository or SyncFactory.state_repository(config),
            shop_id=config.printify_shop_id,
            batch_size=config.sync_batch_size,
            time_budget=config.sync_time_budget_seconds,
            stall_threshold=config.sync_stall_threshold_seconds,
            progress_ttl=config.sync_progress_ttl_seconds,
            completed_ttl=config.sync_completed_ttl_seconds,
            page_limit=config.printify_page_limit,
            refresh_details=config.refresh_product_details,
            currency=config.default_currency,
        )

    @staticmethod
    def order_sync_service(db: Session, config=None) -> OrderSyncService:
        config = config or settings
        return OrderSyncService(
            printify=SyncFactory.printify_client(config),
            orders=SureCartOrders(SyncFactory.surecart_client(config)),
            repository=OrderSyncRepository(db),
            sync_statuses=config.order_sync_statuses,
            enabled=config.order_sync_enabled,
            shipping_method=config.printify_shipping_method,
            send_shipping_notification=config.printify_send_shipping_notification,
        )
