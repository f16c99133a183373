"""Error Hierarchy - typed, categorized exceptions for every conversion failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - All causes are deterministic properties of schema data: nothing here is retryable
    - to_dict() produces the envelope callers use to present the failure

Design Decisions:
    - Single hierarchy with UnitConversionError base: one except clause catches all
    - ErrorContext as dataclass: rich observability without coupling to logging
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from unitgraph.core.domain_types import format_signature


class ErrorSeverity(str, Enum):
    """Error severity for observability and caller handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    DIMENSION = "dimension"
    DEFINITION = "definition"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    from_unit: str | None = None
    to_unit: str | None = None
    item_name: str | None = None
    schema_name: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None


class UnitConversionError(Exception):
    """Base exception for all unit conversion errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()

    def to_dict(self) -> dict:
        """Convert to the standardized error envelope."""
        return {
            "error": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "from_unit": self.context.from_unit,
                    "to_unit": self.context.to_unit,
                    "item_name": self.context.item_name,
                    "schema_name": self.context.schema_name,
                },
            }
        }


# ─── Conversion Errors ──────────────────────────────────────────

class IncompatibleUnitsError(UnitConversionError):
    """Source and target units measure different base dimensions."""
    def __init__(
        self,
        from_unit: str,
        to_unit: str,
        from_signature: dict | None = None,
        to_signature: dict | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.from_unit = from_unit
        ctx.to_unit = to_unit
        ctx.user_message = ctx.user_message or f"cannot convert {from_unit} to {to_unit}"
        message = f"Units '{from_unit}' and '{to_unit}' have different base dimensions"
        if from_signature is not None and to_signature is not None:
            message += f": {format_signature(from_signature)} vs {format_signature(to_signature)}"
        super().__init__(
            message,
            "INCOMPATIBLE_UNITS", ErrorCategory.DIMENSION,
            ErrorSeverity.ERROR, ctx,
        )
        self.from_signature = from_signature or {}
        self.to_signature = to_signature or {}


class CircularDefinitionError(UnitConversionError):
    """A definition refers back to a name already being resolved."""
    def __init__(self, cycle: list[str], context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.item_name = cycle[-1] if cycle else None
        super().__init__(
            f"Circular definition: {' -> '.join(cycle)}",
            "CIRCULAR_DEFINITION", ErrorCategory.DEFINITION,
            ErrorSeverity.ERROR, ctx,
        )
        self.cycle = cycle


class UnknownReferenceError(UnitConversionError):
    """A referenced schema or item is absent from the context."""
    def __init__(
        self, reference: str, schema_name: str | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.item_name = reference
        ctx.schema_name = ctx.schema_name or schema_name
        where = f" (from schema '{schema_name}')" if schema_name else ""
        super().__init__(
            f"Unknown reference '{reference}'{where}",
            "UNKNOWN_REFERENCE", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, ctx,
        )
        self.reference = reference


class InvalidOffsetUnitError(UnitConversionError):
    """An offset appears where the transform would not be affine."""
    def __init__(self, item_name: str, reason: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.item_name = item_name
        super().__init__(
            f"Invalid offset in '{item_name}': {reason}",
            "INVALID_OFFSET_UNIT", ErrorCategory.DEFINITION,
            ErrorSeverity.ERROR, ctx,
        )
        self.reason = reason


class InvalidDefinitionError(UnitConversionError):
    """A definition string or scale factor cannot be evaluated."""
    def __init__(self, item_name: str, reason: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.item_name = item_name
        super().__init__(
            f"Invalid definition for '{item_name}': {reason}",
            "INVALID_DEFINITION", ErrorCategory.DEFINITION,
            ErrorSeverity.ERROR, ctx,
        )
        self.reason = reason


# ─── Registry Errors ────────────────────────────────────────────

class DuplicateSchemaError(UnitConversionError):
    """A schema with the same name is already loaded."""
    def __init__(self, schema_name: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.schema_name = schema_name
        super().__init__(
            f"Schema '{schema_name}' is already loaded",
            "DUPLICATE_SCHEMA", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, ctx,
        )
