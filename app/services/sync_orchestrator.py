"""
Resumable batch sync of the Printify catalog into SureCart.

A run is started once (``start``), then driven forward by repeated calls to
``advance`` until it reports ``done``. All state lives in the sync state
repository, so any process can pick a run up where the last one stopped.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional
from uuid import uuid4

from app.constants.sync import SyncAction, SyncState
from app.core.exceptions import ConnectivityError, IntegrationError
from app.models.product_models import ProductSyncResult
from app.models.sync_models import (
    StartResult,
    StepResult,
    SyncCompletion,
    SyncProgress,
    SyncStatus,
    UpstreamProduct,
)
from app.repositories.sync_state_repository import BaseSyncStateRepository
from app.services.product_mapper import map_product

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncOrchestrator:
    """
    State machine for one shop's product sync:
    not_started -> running -> (stalled) -> completed.

    Args:
        catalog: Catalog source port (``check_connection``, ``get_all_products``, ``get_product``)
        storefront: Storefront port (``create_or_update_product``)
        repository: Sync state storage
        shop_id: Printify shop the run belongs to
        batch_size: Max products per ``advance`` call
        time_budget: Soft wall-clock limit per ``advance`` call, in seconds
        stall_threshold: Seconds without a heartbeat before a run counts as stalled
        progress_ttl: Expiry of an in-flight progress record, refreshed on every checkpoint
        completed_ttl: Retention of the finished progress record and completion summary
    """

    def __init__(
        self,
        catalog,
        storefront,
        repository: BaseSyncStateRepository,
        shop_id: str,
        batch_size: int = 5,
        time_budget: float = 20.0,
        stall_threshold: int = 300,
        progress_ttl: int = 3600,
        completed_ttl: int = 3600,
        page_limit: int = 100,
        refresh_details: bool = False,
        currency: str = "usd",
        clock: Callable[[], datetime] = utcnow,
        timer: Callable[[], float] = time.monotonic
    ):
        self.catalog = catalog
        self.storefront = storefront
        self.repository = repository
        self.shop_id = str(shop_id)
        self.batch_size = max(1, batch_size)
        self.time_budget = time_budget
        self.stall_threshold = stall_threshold
        self.progress_ttl = progress_ttl
        self.completed_ttl = completed_ttl
        self.page_limit = page_limit
        self.refresh_details = refresh_details
        self.currency = currency
        self._now = clock
        self._timer = timer

    # ---------------------------------------------------------------- start

    def start(self, force: bool = False) -> StartResult:
        """
        Start a run, or resume the one in flight.

        Raises:
            ConnectivityError: Printify could not be reached; nothing is persisted
        """
        existing = self.repository.load(self.shop_id)
        if force and existing:
            logger.info(f"Forced resync for shop {self.shop_id}: discarding run {existing.run_id}")
            self.repository.clear(self.shop_id)
        elif existing and not existing.completed:
            logger.info(
                f"Resuming sync run {existing.run_id} for shop {self.shop_id} "
                f"at {existing.processed}/{existing.total}"
            )
            return StartResult(progress=existing, resumed=True)

        try:
            self.catalog.check_connection()
            products = self.catalog.get_all_products(limit=self.page_limit)
        except IntegrationError as e:
            logger.error(f"Cannot start product sync for shop {self.shop_id}: {e}")
            raise ConnectivityError(f"Could not connect to Printify: {e}") from e

        now = self._now()
        progress = SyncProgress(
            run_id=uuid4().hex,
            shop_id=self.shop_id,
            total=len(products),
            products=products,
            force_resync=force,
            started_at=now,
            last_processed=now,
        )
        self.repository.save(progress, ttl=self.progress_ttl)
        logger.info(
            f"Started sync run {progress.run_id} for shop {self.shop_id}: {progress.total} products"
        )
        return StartResult(progress=progress, resumed=False)

    # -------------------------------------------------------------- advance

    def advance(self) -> StepResult:
        """
        Process the next batch and checkpoint.

        Item failures are recorded on the progress record and never raised.
        """
        progress = self.repository.load(self.shop_id)
        if progress is None:
            return StepResult(done=True, state=SyncState.NOT_STARTED)
        if progress.completed:
            return self._step_result(progress, 0)

        started = self._timer()
        end = min(progress.processed + self.batch_size, progress.total)
        batch_processed = 0
        while progress.processed < end:
            if batch_processed and self._timer() - started > self.time_budget:
                logger.info(
                    f"Time budget of {self.time_budget}s reached after {batch_processed} product(s)"
                )
                break
            product = progress.products[progress.processed]
            result = self._process_item(product)
            self._record(progress, product, result)
            progress.processed += 1
            batch_processed += 1

        progress.last_processed = self._now()
        just_completed = progress.processed >= progress.total
        if just_completed:
            saved = self._complete(progress)
        else:
            saved = self.repository.save(
                progress, ttl=self.progress_ttl, expected_run_id=progress.run_id
            )
        if not saved:
            logger.warning(
                f"Sync run {progress.run_id} was replaced or cleared during a batch; "
                f"dropping its checkpoint"
            )
            current = self.repository.load(self.shop_id)
            return StepResult(done=True, state=self._state(current), superseded=True)

        logger.info(
            f"Sync run {progress.run_id}: {progress.processed}/{progress.total} "
            f"(created={progress.created}, updated={progress.updated}, errors={progress.errors})"
        )
        return self._step_result(progress, batch_processed, just_completed=just_completed)

    def _process_item(self, product: UpstreamProduct) -> ProductSyncResult:
        try:
            detail = product
            if self.refresh_details or not (product.detailed or product.variants):
                detail = self.catalog.get_product(product.id)
            data = map_product(detail, synced_at=self._now(), currency=self.currency)
            return self.storefront.create_or_update_product(data)
        except Exception as e:
            logger.error(f"Error syncing Printify product {product.id}: {e}", exc_info=True)
            return ProductSyncResult(
                printify_id=product.id,
                action=SyncAction.ERROR,
                success=False,
                message=str(e),
            )

    @staticmethod
    def _record(progress: SyncProgress, product: UpstreamProduct, result: ProductSyncResult) -> None:
        if result.action == SyncAction.CREATED:
            progress.created += 1
        elif result.action == SyncAction.UPDATED:
            progress.updated += 1
        else:
            progress.errors += 1
            detail = result.error_details or result.message
            progress.error_messages.append(
                f"Product {product.id} ({product.title or 'untitled'}): {detail}"
            )

    def _complete(self, progress: SyncProgress) -> bool:
        now = self._now()
        progress.completed = True
        progress.completed_at = now
        # Kept for the retention window, then expires
        if not self.repository.save(progress, ttl=self.completed_ttl, expected_run_id=progress.run_id):
            return False
        self.repository.save_completion(
            self.shop_id,
            SyncCompletion(
                run_id=progress.run_id,
                time=now,
                created=progress.created,
                updated=progress.updated,
                errors=progress.errors,
                total=progress.total,
            ),
            ttl=self.completed_ttl,
        )
        logger.info(
            f"Sync run {progress.run_id} completed: {progress.created} created, "
            f"{progress.updated} updated, {progress.errors} errors"
        )
        return True

    def _step_result(
        self, progress: SyncProgress, batch_processed: int, just_completed: bool = False
    ) -> StepResult:
        return StepResult(
            done=progress.completed,
            state=self._state(progress),
            processed=progress.processed,
            total=progress.total,
            created=progress.created,
            updated=progress.updated,
            errors=progress.errors,
            batch_processed=batch_processed,
            just_completed=just_completed,
        )

    # --------------------------------------------------------------- status

    def idle_seconds(self, progress: SyncProgress) -> float:
        return (self._now() - progress.last_processed).total_seconds()

    def is_stalled(self, progress: Optional[SyncProgress]) -> bool:
        if progress is None or progress.completed:
            return False
        return self.idle_seconds(progress) > self.stall_threshold

    def _state(self, progress: Optional[SyncProgress]) -> str:
        if progress is None:
            return SyncState.NOT_STARTED
        if progress.completed:
            return SyncState.COMPLETED
        if self.is_stalled(progress):
            return SyncState.STALLED
        return SyncState.RUNNING

    def load(self) -> Optional[SyncProgress]:
        return self.repository.load(self.shop_id)

    def status(self) -> SyncStatus:
        progress = self.repository.load(self.shop_id)
        completion = self.repository.load_completion(self.shop_id)
        if progress is None:
            return SyncStatus(state=SyncState.NOT_STARTED, last_completion=completion)

        return SyncStatus(
            state=self._state(progress),
            stalled=self.is_stalled(progress),
            run_id=progress.run_id,
            total=progress.total,
            processed=progress.processed,
            created=progress.created,
            updated=progress.updated,
            errors=progress.errors,
            error_messages=list(progress.error_messages),
            force_resync=progress.force_resync,
            started_at=progress.started_at,
            last_processed=progress.last_processed,
            last_completion=completion,
        )

    def clear(self) -> None:
        self.repository.clear(self.shop_id)
        logger.info(f"Cleared sync progress for shop {self.shop_id}")
