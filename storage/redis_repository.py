"""
Redis-backed scan repository.

Key layout (prefix from settings.REDIS_KEY_PREFIX):
    {prefix}:scans                    hash    scan_id -> ScanResult JSON
    {prefix}:brand:{domain}:scans     zset    scan_id scored by created_at
    {prefix}:progress                 hash    scan_id -> ScanProgress JSON
    {prefix}:competitors:{domain}     hash    lowercased name -> record JSON
"""

import logging
from typing import List, Optional

import redis

from config.settings import settings
from models.schemas import CompetitorTrackingRecord, ScanProgress, ScanResult
from storage.repository import StorageError, competitor_sort_key

logger = logging.getLogger(__name__)


class RedisScanRepository:
    """ScanRepository over Redis hashes and sorted sets."""

    def __init__(self, client: Optional[redis.Redis] = None, prefix: Optional[str] = None):
        if client is None:
            from config.database import get_redis_client
            client = get_redis_client()
        self.client = client
        self.prefix = prefix or settings.REDIS_KEY_PREFIX

    def _key(self, *parts: str) -> str:
        return ":".join((self.prefix,) + parts)

    def save_scan(self, result: ScanResult) -> None:
        try:
            pipe = self.client.pipeline()
            pipe.hset(self._key("scans"), result.scan_id, result.model_dump_json())
            pipe.zadd(
                self._key("brand", result.brand_domain, "scans"),
                {result.scan_id: result.created_at.timestamp()},
            )
            pipe.execute()
        except redis.RedisError as e:
            logger.error(f"Failed to save scan {result.scan_id}: {e}")
            raise StorageError(f"Could not save scan {result.scan_id}") from e

    def get_scan(self, scan_id: str) -> Optional[ScanResult]:
        try:
            raw = self.client.hget(self._key("scans"), scan_id)
        except redis.RedisError as e:
            raise StorageError(f"Could not read scan {scan_id}") from e
        return ScanResult.model_validate_json(raw) if raw else None

    def list_recent_scans(self, brand_domain: str, limit: int = 10) -> List[ScanResult]:
        try:
            scan_ids = self.client.zrevrange(self._key("brand", brand_domain, "scans"), 0, limit - 1)
            if not scan_ids:
                return []
            raws = self.client.hmget(self._key("scans"), scan_ids)
        except redis.RedisError as e:
            raise StorageError(f"Could not list scans for {brand_domain}") from e
        return [ScanResult.model_validate_json(raw) for raw in raws if raw]

    def save_progress(self, progress: ScanProgress) -> None:
        try:
            self.client.hset(self._key("progress"), progress.scan_id, progress.model_dump_json())
        except redis.RedisError as e:
            raise StorageError(f"Could not save progress for {progress.scan_id}") from e

    def get_progress(self, scan_id: str) -> Optional[ScanProgress]:
        try:
            raw = self.client.hget(self._key("progress"), scan_id)
        except redis.RedisError as e:
            raise StorageError(f"Could not read progress for {scan_id}") from e
        return ScanProgress.model_validate_json(raw) if raw else None

    def get_competitor_record(self, brand_domain: str, competitor_name: str) -> Optional[CompetitorTrackingRecord]:
        try:
            raw = self.client.hget(self._key("competitors", brand_domain), competitor_name.lower())
        except redis.RedisError as e:
            raise StorageError(f"Could not read competitor {competitor_name}") from e
        return CompetitorTrackingRecord.model_validate_json(raw) if raw else None

    def upsert_competitor_record(self, record: CompetitorTrackingRecord) -> None:
        try:
            self.client.hset(
                self._key("competitors", record.brand_domain),
                record.competitor_name.lower(),
                record.model_dump_json(),
            )
        except redis.RedisError as e:
            raise StorageError(f"Could not save competitor {record.competitor_name}") from e

    def list_competitor_records(self, brand_domain: str) -> List[CompetitorTrackingRecord]:
        try:
            raws = self.client.hvals(self._key("competitors", brand_domain))
        except redis.RedisError as e:
            raise StorageError(f"Could not list competitors for {brand_domain}") from e
        records = [CompetitorTrackingRecord.model_validate_json(raw) for raw in raws]
        return sorted(records, key=competitor_sort_key)
