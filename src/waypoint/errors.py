"""Error types for contract violations in the chapter tracker.

Absence of data (an unresolved stage, an unknown chapter id, a missing
document selection) is never reported through these classes; callers get
``None``/``False`` instead. The exceptions below are reserved for misuse
of the API, such as resolving against an index that was never wired in.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


# -----------------------------------------------------------------------------
# Error Code Constants
# -----------------------------------------------------------------------------

class ErrorCode:
    """Constants for machine-readable error codes."""

    INDEX_NOT_CONFIGURED = "index_not_configured"
    INVALID_TREE = "invalid_tree"
    INTERNAL_ERROR = "internal_error"


# -----------------------------------------------------------------------------
# Base Error Class
# -----------------------------------------------------------------------------

@dataclass
class WaypointError(Exception):
    """Base exception class for tracker contract violations.

    Attributes:
        error_code: Machine-readable error identifier.
        message: Human-readable error description.
        details: Additional structured error information.
    """

    error_code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        Exception.__init__(self, self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary for logs and host diagnostics."""
        result: dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = dict(self.details)
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


@dataclass
class IndexNotConfiguredError(WaypointError):
    """Raised when an operation that needs a content index runs without one."""

    error_code: str = field(default=ErrorCode.INDEX_NOT_CONFIGURED)
    message: str = field(default="No content index has been configured")
    details: dict[str, Any] = field(default_factory=dict)

    operation: str | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.operation is not None:
            result["operation"] = self.operation
        return result


@dataclass
class InvalidTreeError(WaypointError, ValueError):
    """Raised when a chapter tree would violate its structural invariants."""

    error_code: str = field(default=ErrorCode.INVALID_TREE)
    message: str = field(default="Chapter tree structure is invalid")
    details: dict[str, Any] = field(default_factory=dict)


__all__ = [
    "ErrorCode",
    "WaypointError",
    "IndexNotConfiguredError",
    "InvalidTreeError",
]
