"""
Scan Controller

Handles scan requests for the API: runs scans under the configured
wall-clock budget and maps scan-level errors to HTTP errors that carry
only an error code and a user-safe message.
"""

import logging
import threading
from typing import List, Optional

from fastapi import Depends, HTTPException

from agents.scan_orchestrator import ScanError, ScanErrorCode, ScanOrchestrator, build_orchestrator
from config.database import test_connection
from config.settings import settings
from models.schemas import (
    CompetitorTrackingRecord,
    ErrorResponse,
    ScanProgress,
    ScanRequest,
    ScanResult,
)
from storage.repository import InMemoryScanRepository, StorageError
from utils.helpers import generate_scan_id

logger = logging.getLogger(__name__)

HTTP_STATUS = {
    ScanErrorCode.CONFIG_ERROR: 503,
    ScanErrorCode.NO_RESULTS: 502,
    ScanErrorCode.BOTH_PROVIDERS_FAILED: 502,
    ScanErrorCode.TIMEOUT: 504,
    ScanErrorCode.PERSISTENCE_ERROR: 500,
}

# Singleton instances
_repository = None
_orchestrator: Optional[ScanOrchestrator] = None


def to_http_exception(error: ScanError) -> HTTPException:
    """
    Map a ScanError to an HTTPException without leaking internals.

    A scan that finished but could not be saved still returns its result.
    """
    body = ErrorResponse(code=error.code.value, message=error.message, result=error.result)
    return HTTPException(
        status_code=HTTP_STATUS.get(error.code, 500),
        detail=body.model_dump(mode="json", exclude_none=True),
    )


def get_repository():
    """Redis repository when Redis is reachable, in-memory otherwise."""
    global _repository
    if _repository is None:
        status = test_connection()
        if status["connected"]:
            from storage.redis_repository import RedisScanRepository
            _repository = RedisScanRepository()
            logger.info("✓ Using Redis scan repository")
        else:
            logger.warning(f"⚠️ Redis not connected ({status['error']}), using in-memory repository")
            _repository = InMemoryScanRepository()
    return _repository


def get_orchestrator(repository=Depends(get_repository)) -> ScanOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        try:
            _orchestrator = build_orchestrator(repository=repository)
        except ScanError as e:
            raise to_http_exception(e)
    return _orchestrator


def start_scan(request: ScanRequest, orchestrator: ScanOrchestrator) -> ScanResult:
    """
    Run a scan synchronously under the configured timeout.

    Args:
        request: Validated scan request
        orchestrator: Scan orchestrator

    Returns:
        ScanResult

    Raises:
        HTTPException: With the scan error code on failure
    """
    scan_id = generate_scan_id()
    cancel_event = threading.Event()
    timer = threading.Timer(settings.SCAN_TIMEOUT_SECONDS, cancel_event.set)
    timer.daemon = True
    timer.start()

    try:
        return orchestrator.run_scan(
            scan_id,
            request.input.website_url,
            request.input,
            user_id=request.user_id,
            cancel_event=cancel_event,
            requested_providers=request.providers,
        )
    except ScanError as e:
        logger.error(f"Scan {scan_id} failed: {e.code.value}")
        raise to_http_exception(e)
    finally:
        timer.cancel()


def _storage_unavailable(e: StorageError) -> HTTPException:
    logger.error(f"Storage error: {e}")
    return HTTPException(
        status_code=503,
        detail=ErrorResponse(code="STORAGE_UNAVAILABLE", message="Scan storage is unavailable.").model_dump(),
    )


def fetch_scan(scan_id: str, repository) -> ScanResult:
    try:
        result = repository.get_scan(scan_id)
    except StorageError as e:
        raise _storage_unavailable(e)
    if result is None:
        raise HTTPException(status_code=404, detail=f"Scan {scan_id} not found")
    return result


def fetch_progress(scan_id: str, repository) -> ScanProgress:
    try:
        progress = repository.get_progress(scan_id)
    except StorageError as e:
        raise _storage_unavailable(e)
    if progress is None:
        raise HTTPException(status_code=404, detail=f"No progress for scan {scan_id}")
    return progress


def fetch_competitors(brand_domain: str, repository) -> List[CompetitorTrackingRecord]:
    try:
        return repository.list_competitor_records(brand_domain.lower())
    except StorageError as e:
        raise _storage_unavailable(e)
