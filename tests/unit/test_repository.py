"""
Unit tests for scan repositories.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
import redis

from models.schemas import CompetitorTrackingRecord, ScanProgress, ScanResult, ScanScore
from storage.redis_repository import RedisScanRepository
from storage.repository import StorageError


def make_result(scan_id, profile, minutes_ago=0):
    return ScanResult(
        scan_id=scan_id,
        brand_profile=profile,
        score=ScanScore(final_score=50.0),
        created_at=datetime.now(timezone.utc) - timedelta(minutes=minutes_ago),
    )


class TestInMemoryRepository:
    def test_scan_round_trip(self, repository, profile):
        result = make_result("scan-1", profile)
        repository.save_scan(result)
        assert repository.get_scan("scan-1") == result
        assert repository.get_scan("missing") is None

    def test_recent_scans_newest_first_and_limited(self, repository, profile):
        for i, minutes in enumerate([30, 10, 20]):
            repository.save_scan(make_result(f"scan-{i}", profile, minutes))

        recent = repository.list_recent_scans(profile.domain, limit=2)
        assert [s.scan_id for s in recent] == ["scan-1", "scan-2"]
        assert repository.list_recent_scans("other.com") == []

    def test_progress_is_overwritten(self, repository):
        repository.save_progress(ScanProgress(scan_id="s", percent=10, stage="profiling"))
        repository.save_progress(ScanProgress(scan_id="s", percent=40, stage="querying"))
        assert repository.get_progress("s").stage == "querying"

    def test_competitor_lookup_is_case_insensitive(self, repository):
        record = CompetitorTrackingRecord(brand_domain="cal.com", competitor_name="Calendly", rank=1)
        repository.upsert_competitor_record(record)
        assert repository.get_competitor_record("cal.com", "CALENDLY") == record
        assert repository.get_competitor_record("other.com", "Calendly") is None

    def test_competitors_listed_ranked_first(self, repository):
        for name, rank, count in [("Doodle", None, 9), ("SavvyCal", 2, 3), ("Calendly", 1, 5)]:
            repository.upsert_competitor_record(CompetitorTrackingRecord(
                brand_domain="cal.com", competitor_name=name, rank=rank, last_mention_count=count,
            ))
        names = [r.competitor_name for r in repository.list_competitor_records("cal.com")]
        assert names == ["Calendly", "SavvyCal", "Doodle"]


class TestRedisRepository:
    def test_save_scan_writes_hash_and_index(self, profile):
        client = MagicMock()
        pipe = client.pipeline.return_value
        result = make_result("scan-1", profile)

        RedisScanRepository(client=client, prefix="test").save_scan(result)

        pipe.hset.assert_called_once_with("test:scans", "scan-1", result.model_dump_json())
        zadd_key, mapping = pipe.zadd.call_args.args
        assert zadd_key == "test:brand:cal.com:scans"
        assert mapping == {"scan-1": result.created_at.timestamp()}
        pipe.execute.assert_called_once()

    def test_get_scan_parses_json(self, profile):
        result = make_result("scan-1", profile)
        client = MagicMock()
        client.hget.return_value = result.model_dump_json()

        loaded = RedisScanRepository(client=client, prefix="test").get_scan("scan-1")
        assert loaded.scan_id == "scan-1"
        assert loaded.brand_profile == profile

    def test_list_recent_scans_reads_index(self, profile):
        client = MagicMock()
        client.zrevrange.return_value = ["scan-2", "scan-1"]
        client.hmget.return_value = [
            make_result("scan-2", profile).model_dump_json(),
            None,
        ]

        scans = RedisScanRepository(client=client, prefix="test").list_recent_scans("cal.com", limit=2)

        client.zrevrange.assert_called_once_with("test:brand:cal.com:scans", 0, 1)
        assert [s.scan_id for s in scans] == ["scan-2"]

    def test_redis_errors_become_storage_errors(self):
        client = MagicMock()
        client.hget.side_effect = redis.ConnectionError("connection refused")
        client.hset.side_effect = redis.TimeoutError("timed out")
        repo = RedisScanRepository(client=client, prefix="test")

        with pytest.raises(StorageError):
            repo.get_scan("scan-1")
        with pytest.raises(StorageError):
            repo.save_progress(ScanProgress(scan_id="scan-1"))
        with pytest.raises(StorageError):
            repo.get_competitor_record("cal.com", "Calendly")
