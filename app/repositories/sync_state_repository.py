"""
Sync state repository.

Holds the single per-shop SyncProgress record and the last SyncCompletion
summary. Both are transient and expire on their own.
"""
import json
import logging
from typing import Optional

import redis

from app.constants.sync import SYNC_COMPLETED_KEY, SYNC_PROGRESS_KEY
from app.models.sync_models import SyncCompletion, SyncProgress

logger = logging.getLogger(__name__)


class BaseSyncStateRepository:
    """
    Storage interface for sync run state.

    Subclasses must implement every method; the orchestrator depends only
    on this interface.
    """

    def load(self, shop_id: str) -> Optional[SyncProgress]:
        raise NotImplementedError

    def save(self, progress: SyncProgress, ttl: int, expected_run_id: Optional[str] = None) -> bool:
        """
        Persist the whole record atomically and (re)set its expiry.

        With ``expected_run_id`` the write only happens while the stored
        record still belongs to that run. Returns False when it was skipped.
        """
        raise NotImplementedError

    def clear(self, shop_id: str) -> None:
        raise NotImplementedError

    def save_completion(self, shop_id: str, completion: SyncCompletion, ttl: int) -> None:
        raise NotImplementedError

    def load_completion(self, shop_id: str) -> Optional[SyncCompletion]:
        raise NotImplementedError


class RedisSyncStateRepository(BaseSyncStateRepository):
    """Redis-backed state: one JSON blob per key, written with SET ... EX."""

    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisSyncStateRepository":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def load(self, shop_id: str) -> Optional[SyncProgress]:
        raw = self.client.get(SYNC_PROGRESS_KEY.format(shop_id=shop_id))
        if not raw:
            return None
        try:
            return SyncProgress.model_validate_json(raw)
        except ValueError as e:
            logger.error(f"Discarding unreadable sync progress for shop {shop_id}: {e}")
            self.clear(shop_id)
            return None

    def save(self, progress: SyncProgress, ttl: int, expected_run_id: Optional[str] = None) -> bool:
        key = SYNC_PROGRESS_KEY.format(shop_id=progress.shop_id)
        payload = progress.model_dump_json()
        if expected_run_id is None:
            self.client.set(key, payload, ex=ttl)
            return True

        with self.client.pipeline() as pipe:
            try:
                pipe.watch(key)
                if _stored_run_id(pipe.get(key)) != expected_run_id:
                    pipe.unwatch()
                    return False
                pipe.multi()
                pipe.set(key, payload, ex=ttl)
                pipe.execute()
                return True
            except redis.WatchError:
                logger.info(f"Sync progress for shop {progress.shop_id} changed during save")
                return False

    def clear(self, shop_id: str) -> None:
        self.client.delete(SYNC_PROGRESS_KEY.format(shop_id=shop_id))

    def save_completion(self, shop_id: str, completion: SyncCompletion, ttl: int) -> None:
        self.client.set(
            SYNC_COMPLETED_KEY.format(shop_id=shop_id),
            completion.model_dump_json(),
            ex=ttl,
        )

    def load_completion(self, shop_id: str) -> Optional[SyncCompletion]:
        raw = self.client.get(SYNC_COMPLETED_KEY.format(shop_id=shop_id))
        if not raw:
            return None
        try:
            return SyncCompletion.model_validate_json(raw)
        except ValueError as e:
            logger.error(f"Discarding unreadable sync completion for shop {shop_id}: {e}")
            return None


def _stored_run_id(raw) -> Optional[str]:
    if not raw:
        return None
    try:
        return json.loads(raw).get("run_id")
    except (ValueError, AttributeError):
        return None
