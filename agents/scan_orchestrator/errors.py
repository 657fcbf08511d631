"""
Scan-level error codes.

Per-call provider failures are data on ProviderResponse; only the
failures below end a scan, and callers only ever see the code and a
user-safe message.
"""

from enum import Enum
from typing import Optional


class ScanErrorCode(str, Enum):
    NO_RESULTS = "NO_RESULTS"
    BOTH_PROVIDERS_FAILED = "BOTH_PROVIDERS_FAILED"
    CONFIG_ERROR = "CONFIG_ERROR"
    TIMEOUT = "TIMEOUT"
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"


ERROR_MESSAGES = {
    ScanErrorCode.NO_RESULTS: "No AI provider returned a usable answer. Please try again later.",
    ScanErrorCode.BOTH_PROVIDERS_FAILED: "All AI providers failed to respond. Please try again later.",
    ScanErrorCode.CONFIG_ERROR: "The scan service is not configured correctly.",
    ScanErrorCode.TIMEOUT: "The scan timed out before any answer was received.",
    ScanErrorCode.PERSISTENCE_ERROR: "The scan finished but could not be saved.",
}


class ScanError(Exception):
    """
    A scan-level failure.

    Args:
        code: ScanErrorCode
        message: User-safe message (defaults to the code's standard message)
        result: The computed ScanResult, when one exists (PERSISTENCE_ERROR)
    """

    def __init__(self, code: ScanErrorCode, message: Optional[str] = None, result=None):
        self.code = ScanErrorCode(code)
        self.message = message or ERROR_MESSAGES[self.code]
        self.result = result
        super().__init__(f"{self.code.value}: {self.message}")
