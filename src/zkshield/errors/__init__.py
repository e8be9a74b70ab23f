"""zkshield error handling.

Structured exceptions that separate fatal input errors from the retryable
stale-root condition.
"""

from .exceptions import (
    ConfigurationError,
    ConservationError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    LedgerError,
    MalformedHexError,
    ProverError,
    ShieldError,
    StaleRootError,
    ValidationError,
    WidthExceededError,
    create_stale_root_error,
    create_validation_error,
)

__all__ = [
    "ShieldError",
    "ValidationError",
    "MalformedHexError",
    "WidthExceededError",
    "ConservationError",
    "StaleRootError",
    "ConfigurationError",
    "ProverError",
    "LedgerError",
    "ErrorSeverity",
    "ErrorCategory",
    "ErrorContext",
    "create_validation_error",
    "create_stale_root_error",
]
