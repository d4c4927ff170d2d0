# Overview: Service-layer operations for concurrency; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy import update

from ..extensions import db


def conditional_update(model, *, where, values: dict) -> int:
    """
    Compare-and-set UPDATE: apply `values` only to rows matching `where`.

    Returns the number of rows changed. A 0 means another writer moved the
    row out of the expected state first; the caller decides what that means.

    The statement bypasses the identity map (synchronize_session=False), so
    callers refresh any loaded instance afterwards.
    """
    stmt = (
        update(model)
        .where(*where)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    return result.rowcount

