# profilecut/errors.py
# Error taxonomy shared by every optimizer component.
#
# - CLIENT   : malformed item / constraint input, never retried
# - BUSINESS : domain rule violation (infeasible packing, empty list, ...)
# - SYSTEM   : unexpected internal fault, retried by caller policy if idempotent
#
# Every error carries a stable `code` and a `details` dict. Messages are
# human-readable only; tracebacks never go into them.

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorClass(str, Enum):
    CLIENT = "CLIENT"
    BUSINESS = "BUSINESS"
    SYSTEM = "SYSTEM"


class OptimizerError(Exception):
    code: str = "SYSTEM_001"
    error_class: ErrorClass = ErrorClass.SYSTEM

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})

    # Keep errors picklable so they survive a trip through a process pool.
    def __reduce__(self):
        return (self.__class__, (self.message, self.details))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "class": self.error_class.value,
            "message": self.message,
            "details": dict(self.details),
        }


class ValidationError(OptimizerError, ValueError):
    """Invalid item or constraint input. `field` and `index` point at the offending value."""

    code = "CLIENT_001"
    error_class = ErrorClass.CLIENT

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        *,
        field: Optional[str] = None,
        index: Optional[int] = None,
    ):
        details = dict(details or {})
        if field is not None:
            details["field"] = field
        if index is not None:
            details["index"] = index
        super().__init__(message, details)

    @property
    def field(self) -> Optional[str]:
        return self.details.get("field")

    @property
    def index(self) -> Optional[int]:
        return self.details.get("index")


class OptimizationFailed(OptimizerError):
    code = "BUSINESS_001"
    error_class = ErrorClass.BUSINESS


class InvalidCuttingParameters(OptimizerError):
    code = "BUSINESS_002"
    error_class = ErrorClass.BUSINESS


class EmptyItemList(OptimizerError):
    code = "BUSINESS_003"
    error_class = ErrorClass.BUSINESS


class InternalFault(OptimizerError):
    code = "SYSTEM_001"
    error_class = ErrorClass.SYSTEM


class OptimizationTimeout(OptimizerError):
    code = "SYSTEM_002"
    error_class = ErrorClass.SYSTEM


def as_error_dict(exc: BaseException) -> Dict[str, Any]:
    """
    Structured error for any exception.
    Unknown exceptions become SYSTEM_001 with a generic message (the original
    text may contain internals, so it is not forwarded).
    """
    if isinstance(exc, OptimizerError):
        return exc.to_dict()
    return InternalFault(
        "Internal optimizer error",
        {"exception": type(exc).__name__},
    ).to_dict()
