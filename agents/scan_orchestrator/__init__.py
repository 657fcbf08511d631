"""
Scan Orchestrator

Runs a scan as a LangGraph state machine with bounded provider fan-out.
"""

from agents.scan_orchestrator.errors import ScanError, ScanErrorCode
from agents.scan_orchestrator.orchestrator import ScanOrchestrator, build_orchestrator, run_scan
from agents.scan_orchestrator.pool import run_bounded
from agents.scan_orchestrator.shadow import ShadowRunner


__all__ = [
    "ScanError",
    "ScanErrorCode",
    "ScanOrchestrator",
    "ShadowRunner",
    "build_orchestrator",
    "run_bounded",
    "run_scan",
]
