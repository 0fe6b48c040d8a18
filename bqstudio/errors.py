"""Exceptions raised by the estimate pipeline."""

from __future__ import annotations

from typing import Any, Dict, Optional


class ErrorCode:
    """Error code constants."""

    FETCH_FAILED = "FETCH_FAILED"
    MUTATION_FAILED = "MUTATION_FAILED"
    EDITING_LOCKED = "EDITING_LOCKED"
    TREE_INTEGRITY = "TREE_INTEGRITY"
    IMPORT_INVALID = "IMPORT_INVALID"


class EstimateError(Exception):
    """Base exception for estimate errors.

    Attributes:
        code: Error code from :class:`ErrorCode`
        message: Human-readable error message
        details: Additional error context
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class FetchError(EstimateError):
    """Loading the flat item list from the store failed."""

    def __init__(self, project_id: str, message: str) -> None:
        super().__init__(ErrorCode.FETCH_FAILED, message, {"project_id": project_id})
        self.project_id = project_id


class MutationError(EstimateError):
    """A single create/update/delete call was rejected by the store."""

    def __init__(self, operation: str, message: str, item_id: Optional[str] = None) -> None:
        super().__init__(
            ErrorCode.MUTATION_FAILED,
            message,
            {"operation": operation, "item_id": item_id},
        )
        self.operation = operation
        self.item_id = item_id


class EditingLockedError(EstimateError):
    def __init__(self, operation: str) -> None:
        super().__init__(
            ErrorCode.EDITING_LOCKED,
            f"Estimate is locked; '{operation}' was not sent to the store",
            {"operation": operation},
        )
        self.operation = operation


class TreeIntegrityError(EstimateError):
    """A record cannot be placed in the three-level tree."""

    def __init__(self, item_id: str, reason: str) -> None:
        super().__init__(
            ErrorCode.TREE_INTEGRITY,
            f"Item '{item_id}' excluded from tree: {reason}",
            {"item_id": item_id, "reason": reason},
        )
        self.item_id = item_id
        self.reason = reason


class ImportValidationError(EstimateError, ValueError):
    """An import file or one of its rows is invalid."""

    def __init__(self, message: str, row: Optional[int] = None) -> None:
        super().__init__(ErrorCode.IMPORT_INVALID, message, {"row": row})
        self.row = row


__all__ = [
    "EditingLockedError",
    "ErrorCode",
    "EstimateError",
    "FetchError",
    "ImportValidationError",
    "MutationError",
    "TreeIntegrityError",
]
