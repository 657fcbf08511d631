"""
Scan repository interface and in-memory implementation.

The pipeline only needs create-or-update by key, select by key and an
ordered, limited select of recent scans per brand.
"""

import logging
import threading
from typing import Dict, List, Optional, Protocol, Tuple

from models.schemas import CompetitorTrackingRecord, ScanProgress, ScanResult

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the backing store cannot complete a read or write."""


class ScanRepository(Protocol):
    """Typed storage interface used by the orchestrator and the API."""

    def save_scan(self, result: ScanResult) -> None:
        ...

    def get_scan(self, scan_id: str) -> Optional[ScanResult]:
        ...

    def list_recent_scans(self, brand_domain: str, limit: int = 10) -> List[ScanResult]:
        ...

    def save_progress(self, progress: ScanProgress) -> None:
        ...

    def get_progress(self, scan_id: str) -> Optional[ScanProgress]:
        ...

    def get_competitor_record(self, brand_domain: str, competitor_name: str) -> Optional[CompetitorTrackingRecord]:
        ...

    def upsert_competitor_record(self, record: CompetitorTrackingRecord) -> None:
        ...

    def list_competitor_records(self, brand_domain: str) -> List[CompetitorTrackingRecord]:
        ...


def competitor_sort_key(record: CompetitorTrackingRecord):
    """Ranked records first, then by mention count."""
    return (record.rank is None, record.rank or 0, -record.last_mention_count, record.competitor_name.lower())


class InMemoryScanRepository:
    """Thread-safe in-process repository, used for tests and local runs."""

    def __init__(self):
        self._lock = threading.Lock()
        self._scans: Dict[str, ScanResult] = {}
        self._progress: Dict[str, ScanProgress] = {}
        self._competitors: Dict[Tuple[str, str], CompetitorTrackingRecord] = {}

    def save_scan(self, result: ScanResult) -> None:
        with self._lock:
            self._scans[result.scan_id] = result

    def get_scan(self, scan_id: str) -> Optional[ScanResult]:
        with self._lock:
            return self._scans.get(scan_id)

    def list_recent_scans(self, brand_domain: str, limit: int = 10) -> List[ScanResult]:
        with self._lock:
            scans = [s for s in self._scans.values() if s.brand_domain == brand_domain]
        scans.sort(key=lambda s: s.created_at, reverse=True)
        return scans[:limit]

    def save_progress(self, progress: ScanProgress) -> None:
        with self._lock:
            self._progress[progress.scan_id] = progress

    def get_progress(self, scan_id: str) -> Optional[ScanProgress]:
        with self._lock:
            return self._progress.get(scan_id)

    def get_competitor_record(self, brand_domain: str, competitor_name: str) -> Optional[CompetitorTrackingRecord]:
        with self._lock:
            return self._competitors.get((brand_domain, competitor_name.lower()))

    def upsert_competitor_record(self, record: CompetitorTrackingRecord) -> None:
        with self._lock:
            self._competitors[(record.brand_domain, record.competitor_name.lower())] = record

    def list_competitor_records(self, brand_domain: str) -> List[CompetitorTrackingRecord]:
        with self._lock:
            records = [r for (domain, _), r in self._competitors.items() if domain == brand_domain]
        return sorted(records, key=competitor_sort_key)
