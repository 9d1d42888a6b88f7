"""Error Hierarchy — typed, categorized exceptions for every marketplace failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Session errors (NoAgent, AuthorizationDenied) are fatal to that session, never retried
    - Ledger-level failures are final for that submission (no automatic retry)
    - to_response() produces REST envelope; to_sse_event() produces SSE envelope

Design Decisions:
    - Single hierarchy with MarketplaceError base: API handler catches all (ADR: uniform error shape)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any
from datetime import datetime, timezone

if TYPE_CHECKING:
    from marketplace.core.models import OperationReceipt


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    SESSION = "session"
    VALIDATION = "validation"
    RESOURCE_NOT_FOUND = "resource_not_found"
    LEDGER = "ledger"
    EXTERNAL_API = "external_api"
    TIMEOUT = "timeout"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    identity: str | None = None
    operation: str | None = None
    item_id: int | None = None
    tx_hash: str | None = None
    debug_info: dict[str, Any] | None = None


class MarketplaceError(Exception):
    """Base exception for all marketplace errors."""

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
                    "identity": self.context.identity,
                    "operation": self.context.operation,
                    "item_id": self.context.item_id,
                    "tx_hash": self.context.tx_hash,
                },
            }
        }

    def to_sse_event(self) -> dict:
        """Convert to SSE error event."""
        return {
            "type": "error",
            "data": {
                "code": self.code,
                "message": self.message,
                "severity": self.severity.value,
                "recoverable": self.severity in (
                    ErrorSeverity.INFO, ErrorSeverity.WARNING,
                ),
            },
        }


# ─── Session Errors ─────────────────────────────────────────────

class NoAgentError(MarketplaceError):
    """No signing agent present in the environment."""
    def __init__(self, message: str = "No signing agent available", context: ErrorContext | None = None):
        super().__init__(
            message, "NO_AGENT", ErrorCategory.SESSION,
            ErrorSeverity.CRITICAL, context, 503,
        )


class AuthorizationDeniedError(MarketplaceError):
    """User declined to authorize any identity."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Authorization request was declined",
            "AUTHORIZATION_DENIED", ErrorCategory.SESSION,
            ErrorSeverity.CRITICAL, context, 403,
        )


class NoSignerError(MarketplaceError):
    """Mutating call attempted without an established signer binding."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "No signer binding established; connect a wallet first",
            "NO_SIGNER", ErrorCategory.SESSION,
            ErrorSeverity.ERROR, context, 409,
        )


class SignatureDeclinedError(MarketplaceError):
    """User rejected the signature request for a single transaction."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Transaction signature was declined",
            "SIGNATURE_DECLINED", ErrorCategory.SESSION,
            ErrorSeverity.WARNING, context, 409,
        )


# ─── Validation Errors (local, pre-network) ─────────────────────

class ValidationError(MarketplaceError):
    """Caller-supplied argument rejected before touching the network."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )
        self.field = field


class InvalidAddressError(MarketplaceError):
    """Address is not a syntactically valid identity."""
    def __init__(self, address: str, context: ErrorContext | None = None):
        super().__init__(
            f"Invalid identity address: {address!r}",
            "INVALID_ADDRESS", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.address = address


class UnknownItemError(MarketplaceError):
    """Item id outside the ledger's [1, itemCount] range."""
    def __init__(self, item_id: int, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.item_id = item_id
        super().__init__(
            f"Item '{item_id}' not found",
            "UNKNOWN_ITEM", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, ctx, 404,
        )
        self.item_id = item_id


# ─── Ledger Errors ──────────────────────────────────────────────

class TransactionRevertedError(MarketplaceError):
    """Ledger rejected the transaction, at submission or after inclusion."""
    def __init__(
        self,
        reason: str | None = None,
        tx_hash: str | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.tx_hash = tx_hash or ctx.tx_hash
        detail = f": {reason}" if reason else ""
        super().__init__(
            f"Transaction reverted{detail}",
            "TRANSACTION_REVERTED", ErrorCategory.LEDGER,
            ErrorSeverity.ERROR, ctx, 422,
        )
        self.reason = reason
        self.tx_hash = tx_hash


class ConfirmationTimeoutError(MarketplaceError):
    """Transaction receipt not observed within the confirmation window."""
    def __init__(self, tx_hash: str, timeout_seconds: float, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.tx_hash = tx_hash
        super().__init__(
            f"Transaction {tx_hash} not confirmed within {timeout_seconds:g}s",
            "CONFIRMATION_TIMEOUT", ErrorCategory.TIMEOUT,
            ErrorSeverity.ERROR, ctx, 504,
        )
        self.tx_hash = tx_hash


class LedgerRpcError(MarketplaceError):
    """JSON-RPC transport or protocol failure talking to the ledger or wallet."""
    def __init__(
        self,
        message: str,
        rpc_code: int | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Ledger RPC error: {message}",
            "LEDGER_RPC_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.CRITICAL, context, 502,
        )
        self.rpc_code = rpc_code


class RefreshFailedError(MarketplaceError):
    """Transaction confirmed on the ledger, but re-reading the catalog failed.

    The mutation is final; only the local view is stale. `receipt` carries the
    confirmed outcome so callers never resubmit a transaction that already landed.
    """
    def __init__(
        self,
        receipt: "OperationReceipt",
        cause: MarketplaceError,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.tx_hash = receipt.tx_hash
        super().__init__(
            f"Transaction {receipt.tx_hash} confirmed but the cache refresh "
            f"failed: {cause.message}",
            "REFRESH_FAILED", ErrorCategory.LEDGER,
            ErrorSeverity.WARNING, ctx, 502,
        )
        self.receipt = receipt
        self.cause = cause
