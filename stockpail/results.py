"""
Operation Results Module

Exceptions raised by collaborator adapters and the structured result
returned by every service operation.
"""

from typing import Any, Optional


class StockPailError(Exception):
    """Base class for all Stock Pail errors."""


class ValidationError(StockPailError):
    """Input was rejected before any collaborator call was made."""


class CollaboratorError(StockPailError):
    """The record store, file store or parse function failed."""


OK = "ok"
VALIDATION_ERROR = "validation_error"
COLLABORATOR_ERROR = "collaborator_error"


class OperationResult:
    """Encapsulates the outcome of a service operation."""

    def __init__(self, status: str, message: str = "", value: Any = None):
        self.status = status
        self.message = message
        self.value = value

    @classmethod
    def ok(cls, value: Any = None, message: str = "") -> "OperationResult":
        return cls(OK, message, value)

    @classmethod
    def invalid(cls, message: str) -> "OperationResult":
        return cls(VALIDATION_ERROR, message)

    @classmethod
    def collaborator_failure(cls, message: str) -> "OperationResult":
        return cls(COLLABORATOR_ERROR, message)

    @property
    def is_ok(self) -> bool:
        return self.status == OK

    def __bool__(self):
        return self.is_ok

    def __repr__(self):
        return f"OperationResult(status={self.status!r}, message={self.message!r})"
