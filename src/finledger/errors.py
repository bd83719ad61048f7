"""Error taxonomy and the boundary result wrapper."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Optional, TypeVar

from .logging_config import get_logger

logger = get_logger("errors")

T = TypeVar("T")

GENERIC_FAILURE_MESSAGE = "Operation failed. Please try again."


class LedgerError(Exception):
    """Base class for every error the ledger core raises on purpose."""


class LedgerValidationError(LedgerError, ValueError):
    """Input or state that violates a ledger rule."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class DuplicateUsernameError(LedgerValidationError):
    """Raised when the unique username index rejects an insert."""

    def __init__(self, username: str) -> None:
        super().__init__("Username already exists", field="username")
        self.username = username


class ReferenceInUseError(LedgerError):
    """Raised when deleting an account/category that transactions still reference."""

    def __init__(self, entity: str, entity_id: int, references: int) -> None:
        super().__init__(
            f"Cannot delete {entity} {entity_id}: referenced by {references} transaction(s)"
        )
        self.entity = entity
        self.entity_id = entity_id
        self.references = references


@dataclass
class OperationResult(Generic[T]):
    """Outcome handed back to the presentation layer."""

    success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    errors: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def ok(cls, value: Optional[T] = None) -> "OperationResult[T]":
        return cls(success=True, value=value)

    @classmethod
    def fail(
        cls, error: str, errors: dict[str, list[str]] | None = None
    ) -> "OperationResult[T]":
        return cls(success=False, error=error, errors=dict(errors or {}))


def run_operation(func: Callable[..., T], *args: Any, **kwargs: Any) -> OperationResult[T]:
    """Invoke a core call and translate failures into an OperationResult.

    Ledger errors carry a human-readable message and are surfaced verbatim.
    Anything else is logged with its traceback and reported generically so
    no partial state leaks to the caller.
    """

    try:
        return OperationResult.ok(func(*args, **kwargs))
    except LedgerValidationError as exc:
        errors = {exc.field: [exc.message]} if exc.field else {}
        return OperationResult.fail(exc.message, errors)
    except LedgerError as exc:
        return OperationResult.fail(str(exc))
    except Exception:
        logger.exception(
            "Unexpected failure", extra={"operation": getattr(func, "__name__", repr(func))}
        )
        return OperationResult.fail(GENERIC_FAILURE_MESSAGE)
