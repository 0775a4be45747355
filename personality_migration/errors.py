"""
Exception hierarchy for the migration routing layer.

Every exception carries an explicit ``kind`` discriminant so callers can
branch on the failure class without inspecting message text.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorKind(Enum):
    """Discriminant tags for migration-layer failures."""

    OPERATIVE = "operative"
    SHADOW = "shadow"
    MISMATCH = "mismatch"
    CONFIGURATION = "configuration"


class MigrationError(Exception):
    """Base exception for all routing/comparison errors."""

    kind: Optional[ErrorKind] = None


class OperativeError(MigrationError):
    """
    Raised when the backend acting as source of truth reports a failure.

    The router never catches these; they bubble to the caller so existing
    upstream error handling keeps working during the migration.
    """

    kind = ErrorKind.OPERATIVE

    def __init__(self, message: str, operation: Optional[str] = None, backend: str = "legacy"):
        super().__init__(message)
        self.operation = operation
        self.backend = backend


class ShadowError(MigrationError):
    """
    Wraps a failure of the non-operative backend.

    Produced only for logging; it is never raised out of the router.
    """

    kind = ErrorKind.SHADOW

    def __init__(self, operation: str, cause: BaseException):
        super().__init__(f"{operation}: {cause}")
        self.operation = operation
        self.cause = cause


class MismatchError(MigrationError):
    """
    Raised by the comparator when ``throw_on_mismatch`` is configured.

    Attributes:
        results: The mismatching comparison results
        summary: Per-operation mismatch summary
    """

    kind = ErrorKind.MISMATCH

    def __init__(self, results: List[Any]):
        self.results = list(results)
        self.summary: List[Dict[str, Any]] = [
            {
                "operation_name": result.operation_name,
                "discrepancy_count": len(result.discrepancies),
                "legacy_error": result.legacy_error,
                "new_error": result.new_error,
            }
            for result in self.results
        ]
        names = ", ".join(entry["operation_name"] for entry in self.summary)
        super().__init__(f"Comparison mismatch detected for: {names}")


class ConfigurationError(MigrationError):
    """Exception raised for configuration-related errors."""

    kind = ErrorKind.CONFIGURATION
