"""Error Hierarchy — typed, categorized exceptions for all indexer failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Integrity errors are fatal: replay aborts, startup stops
    - Transient errors (chain RPC) are retried on the next poll cycle, never fatal mid-run
    - to_response() produces the REST envelope; no internal details leaked

Design Decisions:
    - Single hierarchy with IndexerError base: FastAPI global handler catches all
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    INTEGRITY = "integrity"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    CONFIGURATION = "configuration"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    workflow_id: str | None = None
    block_number: int | None = None
    tx_hash: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class IndexerError(Exception):
    """Base exception for all indexer errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "workflow_id": self.context.workflow_id,
                    "block_number": self.context.block_number,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }


# ─── Domain Errors ───────────────────────────────────────────────

class EventOrderingError(IndexerError):
    """Event log is not in canonical order — the Event Store is corrupt."""
    def __init__(self, index: int, context: ErrorContext | None = None):
        super().__init__(
            f"Events are not in canonical order at position {index} "
            "- event store corruption detected",
            "EVENT_ORDERING_VIOLATION", ErrorCategory.INTEGRITY,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.index = index


class ResourceNotFoundError(IndexerError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


class ConfigurationError(IndexerError):
    """Required setting missing or invalid."""
    def __init__(self, setting: str, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"Invalid configuration for {setting}: {message}",
            "CONFIGURATION_ERROR", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.setting = setting


# ─── Infrastructure Errors ───────────────────────────────────────

class DatabaseError(IndexerError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class ChainRPCError(IndexerError):
    """Chain RPC call failed after retries."""
    def __init__(
        self,
        message: str,
        method: str,
        retry_after_ms: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_ms = retry_after_ms
        super().__init__(
            f"Chain RPC error ({method}): {message}",
            "CHAIN_RPC_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.WARNING, ctx, 503,
        )
        self.method = method
