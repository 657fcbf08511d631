"""
Shadow execution.

Runs an alternate pipeline variant in the background for comparison.
A shadow task owns its own error boundary: it never returns anything to
the primary path and its exceptions are logged, not raised.
"""

import logging
import threading
from typing import Callable

from agents.mention_detector_agent import MentionDetector
from models.schemas import ScanResult

logger = logging.getLogger(__name__)


class ShadowRunner:
    """Spawn fire-and-forget tasks on daemon threads."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    def spawn(self, fn: Callable, *args) -> None:
        if not self.enabled:
            return

        def guarded():
            try:
                fn(*args)
            except Exception as e:
                logger.error(f"Shadow task {getattr(fn, '__name__', fn)} failed: {type(e).__name__}: {e}")

        thread = threading.Thread(target=guarded, name="scan-shadow", daemon=True)
        thread.start()


def compare_verified_detection(result: ScanResult, detector: MentionDetector) -> float:
    """
    Re-run detection with LLM verification on every response and log
    how often it agrees with the primary result.

    Returns:
        Agreement rate between 0 and 1
    """
    compared = 0
    agreed = 0
    for analysis in result.analyses:
        if not analysis.response.ok:
            continue
        shadow = detector.analyze(analysis.response, result.brand_profile)
        compared += 1
        if shadow.mentioned == analysis.mentioned:
            agreed += 1

    rate = agreed / compared if compared else 1.0
    logger.info(f"🔍 Shadow detection for {result.scan_id}: {agreed}/{compared} agree ({rate:.0%})")
    return rate
