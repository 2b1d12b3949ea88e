"""
Storefront Exception Hierarchy

Structured exception classes raised by the services and the data store
gateway. Every exception carries a message, a machine-readable code and
optional details, and knows the HTTP status it maps to.

Exception Hierarchy:
    StorefrontError
    ├── ValidationError     (400)
    │   ├── InsufficientStockError
    │   └── EmptyCartError
    ├── NotFoundError       (404)
    ├── AuthError           (401)
    └── StoreError          (500)
        └── TransactionTimeoutError
"""
import logging
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


class StorefrontError(Exception):
    """
    Base exception for all storefront errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code for programmatic handling
        details: Additional context for debugging/logging
        status_code: HTTP status the API layer responds with
    """

    default_code: str = "STOREFRONT_ERROR"
    default_message: str = "An error occurred"
    status_code: int = 500

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


# =============================================================================
# CLIENT ERRORS
# =============================================================================

class ValidationError(StorefrontError):
    """Client-caused failure; the message is safe to return as-is."""
    default_code = "VALIDATION_ERROR"
    default_message = "Invalid request"
    status_code = 400


class InsufficientStockError(ValidationError):
    default_code = "INSUFFICIENT_STOCK"
    default_message = "Insufficient stock"

    def __init__(
        self,
        product_id: Optional[int] = None,
        requested: Optional[int] = None,
        available: Optional[int] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        details.update({
            "product_id": product_id,
            "requested": requested,
            "available": available,
        })
        super().__init__(details=details, **kwargs)


class EmptyCartError(ValidationError):
    default_code = "CART_EMPTY"
    default_message = "Cart is empty"


class NotFoundError(StorefrontError):
    default_code = "NOT_FOUND"
    default_message = "Resource not found"
    status_code = 404


class AuthError(StorefrontError):
    """Missing, invalid or expired credential."""
    default_code = "UNAUTHORIZED"
    default_message = "Not authenticated"
    status_code = 401


# =============================================================================
# STORE ERRORS
# =============================================================================

class StoreError(StorefrontError):
    """Connectivity, query or unclassified constraint failure in the store."""
    default_code = "STORE_ERROR"
    default_message = "Database error"
    status_code = 500


class TransactionTimeoutError(StoreError):
    default_code = "TRANSACTION_TIMEOUT"
    default_message = "Transaction timed out"


def log_exception(exc: StorefrontError, level: int = logging.ERROR) -> None:
    """Log a storefront exception with its structured context."""
    logger.log(level, f"[{exc.code}] {exc.message}", extra={"error": exc.to_dict()})
