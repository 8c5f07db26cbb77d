from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mfgorders.db.models.manufacturing import ReferenceSequence

ORDER_SEQUENCE = "manufacturing_order"


def _increment(db: Session, name: str) -> int | None:
    # Single UPDATE ... RETURNING: the row lock serializes concurrent callers
    return db.execute(
        update(ReferenceSequence)
        .where(ReferenceSequence.name == name)
        .values(last_value=ReferenceSequence.last_value + 1)
        .returning(ReferenceSequence.last_value)
    ).scalar_one_or_none()


def next_value(db: Session, name: str) -> int:
    """Allocate the next value of a named sequence inside the caller's transaction.

    The allocation is undone if the caller rolls back.
    """
    value = _increment(db, name)
    if value is not None:
        return value
    try:
        with db.begin_nested():
            db.add(ReferenceSequence(name=name, last_value=1))
        return 1
    except IntegrityError:
        # Another transaction created the row first
        value = _increment(db, name)
        if value is None:
            raise
        return value


def format_reference(prefix: str, value: int, width: int = 6) -> str:
    return f"{prefix}{value:0{width}d}"


def next_order_reference(db: Session, prefix: str = "MO-") -> str:
    return format_reference(prefix, next_value(db, ORDER_SEQUENCE))
