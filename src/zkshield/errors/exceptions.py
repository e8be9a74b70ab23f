"""Exception hierarchy for zkshield.

Input validation failures are fatal and raised before any external call.
A stale Merkle root is retryable: the caller refreshes state and re-runs
the whole operation. The engine never wraps prover or ledger exceptions;
``ProverError`` and ``LedgerError`` are raised only by the adapters that
detect those failures themselves (a non-zero exit, a reverted receipt).
"""

import time
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels."""

    MEDIUM = "medium"
    HIGH = "high"


class ErrorCategory(Enum):
    """Error categories."""

    VALIDATION = "validation"
    CRYPTOGRAPHIC = "cryptographic"
    STATE = "state"
    PROVER = "prover"
    LEDGER = "ledger"
    CONFIGURATION = "configuration"
    SYSTEM = "system"


@dataclass
class ErrorContext:
    """Context information for an error."""

    timestamp: float = field(default_factory=time.time)
    component: Optional[str] = None
    operation: Optional[str] = None
    account: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary."""
        return {
            "timestamp": self.timestamp,
            "component": self.component,
            "operation": self.operation,
            "account": self.account,
            "metadata": self.metadata,
        }


class ShieldError(Exception):
    """Base exception for all zkshield errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        retryable: bool = False,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.severity = severity
        self.category = category
        self.context = context or ErrorContext()
        self.cause = cause
        self.retryable = retryable
        self.metadata = metadata or {}
        self.timestamp = time.time()
        self.traceback = traceback.format_exc()

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "severity": self.severity.value,
            "category": self.category.value,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
            "retryable": self.retryable,
            "metadata": self.metadata,
            "timestamp": self.timestamp,
        }

    def __str__(self) -> str:
        parts = [f"{self.__class__.__name__}: {self.message}"]

        if self.error_code:
            parts.append(f"Code: {self.error_code}")

        if self.severity != ErrorSeverity.MEDIUM:
            parts.append(f"Severity: {self.severity.value}")

        if self.category != ErrorCategory.SYSTEM:
            parts.append(f"Category: {self.category.value}")

        if self.retryable:
            parts.append("Retryable: Yes")

        return " | ".join(parts)


class ValidationError(ShieldError):
    """Input failed validation before any external call was made."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        expected: Optional[Any] = None,
        **kwargs,
    ):
        kwargs.setdefault("error_code", "INVALID_INPUT")
        super().__init__(message, category=ErrorCategory.VALIDATION, **kwargs)
        self.field = field
        self.value = value
        self.expected = expected

    def to_dict(self) -> Dict[str, Any]:
        """Convert validation error to dictionary."""
        data = super().to_dict()
        data.update(
            {
                "field": self.field,
                "value": str(self.value) if self.value is not None else None,
                "expected": str(self.expected) if self.expected is not None else None,
            }
        )
        return data


class MalformedHexError(ValidationError):
    """A value that should be hex could not be parsed as hex."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("error_code", "MALFORMED_HEX")
        super().__init__(message, **kwargs)


class WidthExceededError(ValidationError):
    """A value is wider than the bit width declared for it."""

    def __init__(self, message: str, bit_length: Optional[int] = None, **kwargs):
        kwargs.setdefault("error_code", "WIDTH_EXCEEDED")
        super().__init__(message, **kwargs)
        self.bit_length = bit_length


class ConservationError(ValidationError):
    """Transfer inputs and outputs do not balance, or overflow the adder."""

    def __init__(
        self,
        message: str,
        input_sum: Optional[int] = None,
        output_sum: Optional[int] = None,
        **kwargs,
    ):
        kwargs.setdefault("error_code", "CONSERVATION")
        super().__init__(message, **kwargs)
        self.input_sum = input_sum
        self.output_sum = output_sum

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"input_sum": self.input_sum, "output_sum": self.output_sum})
        return data


class StaleRootError(ShieldError):
    """A Merkle path did not fold to the ledger's current root."""

    def __init__(
        self,
        message: str,
        leaf: Optional[str] = None,
        leaf_index: Optional[int] = None,
        expected_root: Optional[str] = None,
        computed_root: Optional[str] = None,
        **kwargs,
    ):
        kwargs.setdefault("error_code", "STALE_ROOT")
        super().__init__(
            message, category=ErrorCategory.STATE, retryable=True, **kwargs
        )
        self.leaf = leaf
        self.leaf_index = leaf_index
        self.expected_root = expected_root
        self.computed_root = computed_root

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "leaf": self.leaf,
                "leaf_index": self.leaf_index,
                "expected_root": self.expected_root,
                "computed_root": self.computed_root,
            }
        )
        return data


class ConfigurationError(ShieldError):
    """Configuration error."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        **kwargs,
    ):
        super().__init__(message, category=ErrorCategory.CONFIGURATION, **kwargs)
        self.config_key = config_key
        self.config_value = config_value

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration error to dictionary."""
        data = super().to_dict()
        data.update(
            {
                "config_key": self.config_key,
                "config_value": str(self.config_value)
                if self.config_value is not None
                else None,
            }
        )
        return data


class ProverError(ShieldError):
    """The external prover process failed."""

    def __init__(
        self,
        message: str,
        circuit: Optional[str] = None,
        returncode: Optional[int] = None,
        stderr: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(
            message,
            category=ErrorCategory.PROVER,
            severity=ErrorSeverity.HIGH,
            **kwargs,
        )
        self.circuit = circuit
        self.returncode = returncode
        self.stderr = stderr

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "circuit": self.circuit,
                "returncode": self.returncode,
                "stderr": self.stderr,
            }
        )
        return data


def create_validation_error(
    field: str, value: Any, expected: Any, message: Optional[str] = None
) -> ValidationError:
    """Create a validation error."""
    if message is None:
        message = f"Invalid value for field '{field}': expected {expected}, got {value}"

    return ValidationError(message=message, field=field, value=value, expected=expected)


def create_stale_root_error(
    leaf: str, leaf_index: int, expected_root: str, computed_root: str
) -> StaleRootError:
    """Create a stale-root error for a path that failed to reconcile."""
    message = (
        f"Merkle path for leaf {leaf} at index {leaf_index} folds to "
        f"{computed_root}, ledger root is {expected_root}"
    )
    return StaleRootError(
        message=message,
        leaf=leaf,
        leaf_index=leaf_index,
        expected_root=expected_root,
        computed_root=computed_root,
    )


class LedgerError(ShieldError):
    """A ledger transaction was mined but reverted."""

    def __init__(self, message: str, transaction_hash: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.LEDGER,
            severity=ErrorSeverity.HIGH,
            **kwargs,
        )
        self.transaction_hash = transaction_hash

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"transaction_hash": self.transaction_hash})
        return data
