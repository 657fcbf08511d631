"""
Scan Routes

Endpoints for running scans and reading scan results, progress and
competitor tracking.
"""

from typing import List

from fastapi import APIRouter, Depends

from models.schemas import CompetitorTrackingRecord, ScanProgress, ScanRequest, ScanResult
from src.controllers.scan_controller import (
    fetch_competitors,
    fetch_progress,
    fetch_scan,
    get_orchestrator,
    get_repository,
    start_scan,
)


router = APIRouter(tags=["Scans"])


@router.post("/scans", response_model=ScanResult)
def create_scan(request: ScanRequest, orchestrator=Depends(get_orchestrator)) -> ScanResult:
    """
    Run a visibility scan and return its result.

    Example:
        POST /scans
        {
            "input": {
                "brand_name": "Cal.com",
                "website_url": "https://cal.com",
                "core_problem": "Scheduling meetings without back-and-forth emails",
                "target_buyer": "Freelancers and small teams"
            }
        }
    """
    return start_scan(request, orchestrator)


@router.get("/scans/{scan_id}", response_model=ScanResult)
def get_scan(scan_id: str, repository=Depends(get_repository)) -> ScanResult:
    """Get a persisted scan result."""
    return fetch_scan(scan_id, repository)


@router.get("/scans/{scan_id}/progress", response_model=ScanProgress)
def get_scan_progress(scan_id: str, repository=Depends(get_repository)) -> ScanProgress:
    """Get the latest progress record for a scan (stage and percent)."""
    return fetch_progress(scan_id, repository)


@router.get("/brands/{brand_domain}/competitors", response_model=List[CompetitorTrackingRecord])
def list_competitors(brand_domain: str, repository=Depends(get_repository)) -> List[CompetitorTrackingRecord]:
    """Tracked competitors for a brand, ranked ones first."""
    return fetch_competitors(brand_domain, repository)
