"""Helpers shared by the SQLModel repositories."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Optional, TypeVar

from sqlmodel import Session, SQLModel, select

from ...errors import LedgerValidationError

ModelT = TypeVar("ModelT", bound=SQLModel)


def fetch_owned(
    session: Session, model: type[ModelT], entity_id: int, user_id: int
) -> Optional[ModelT]:
    """Return the row with ``entity_id`` when it belongs to ``user_id``."""

    return session.exec(
        select(model).where(model.id == entity_id).where(model.user_id == user_id)  # type: ignore[attr-defined]
    ).first()


def merge_changes(obj: SQLModel, changes: Mapping[str, Any], allowed: Iterable[str]) -> None:
    """Copy ``changes`` onto ``obj``; unknown or protected fields are rejected."""

    allowed_set = set(allowed)
    unknown = sorted(set(changes) - allowed_set)
    if unknown:
        raise LedgerValidationError(
            f"Cannot update field(s): {', '.join(unknown)}", field=unknown[0]
        )
    for key, value in changes.items():
        setattr(obj, key, value)
