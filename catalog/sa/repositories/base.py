# catalog/sa/repositories/base.py
from typing import Any, Dict, Iterable, List
from sqlalchemy import Table, or_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session


def accessible_to(model, user_id: str):
    """Filter for rows a user may see: every catalog row plus their own manual rows"""
    table = model.__table__
    return or_(table.c.manual.is_(False), table.c.owner_user_id == user_id)


def upsert_catalog_rows(session: Session, table: Table, rows: List[Dict[str, Any]],
                        update_columns: Iterable[str]) -> None:
    """Insert catalog rows or overwrite the ones whose source_id already exists.

    The whole batch goes out as one INSERT ... ON CONFLICT (source_id) DO UPDATE
    statement, so concurrent writers of the same source_id never create a
    duplicate row.
    """
    if not rows:
        return

    dialect = session.get_bind().dialect.name
    insert = postgresql.insert if dialect == 'postgresql' else sqlite.insert

    stmt = insert(table).values([{**row, 'manual': False} for row in rows])
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c.source_id],
        set_={name: stmt.excluded[name] for name in update_columns}
    )
    session.execute(stmt)
