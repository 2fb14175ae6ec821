"""
Existence-checked schema changes.

Databases reach a migration from different historical points, so a
structural change first looks at what is there. "Already there" is fine;
"there but different" is a StructuralConflict.
"""

import re
import sqlite3

from errors import StructuralConflict

_TYPE_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_ ]*(\(\s*\d+(\s*,\s*\d+)?\s*\))?$")


def quote_identifier(name: str) -> str:
    """Quote a table/column name for interpolation into SQL."""
    if not name or "\x00" in name:
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return '"' + name.replace('"', '""') + '"'


def _sql_literal(value) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return "'" + value.replace("'", "''") + "'"
    raise ValueError(f"Unsupported default value: {value!r}")


def table_exists(conn: sqlite3.Connection, table: str) -> bool:
    cursor = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type='table' AND name = ? COLLATE NOCASE",
        (table,)
    )
    return cursor.fetchone() is not None


def _column_info(conn: sqlite3.Connection, table: str) -> dict:
    """Map lower-cased column name -> PRAGMA table_info row."""
    cursor = conn.execute(f"PRAGMA table_info({quote_identifier(table)})")
    return {row[1].lower(): row for row in cursor.fetchall()}


def column_names(conn: sqlite3.Connection, table: str) -> list[str]:
    cursor = conn.execute(f"PRAGMA table_info({quote_identifier(table)})")
    return [row[1] for row in cursor.fetchall()]


def add_column_if_absent(
    conn: sqlite3.Connection,
    table: str,
    column: str,
    column_type: str,
    nullable: bool = True,
    default=None
) -> bool:
    """
    Add a column unless it already exists.

    Args:
        conn: Connection (inside the step's transaction)
        table: Table to alter
        column: Column name
        column_type: Declared SQLite type, e.g. "TEXT"
        nullable: Whether NULL is allowed
        default: Optional literal default

    Returns:
        True if the column was added, False if it was already present

    Raises:
        StructuralConflict: table missing, or existing column contradicts the request
    """
    if not _TYPE_PATTERN.match(column_type):
        raise ValueError(f"Invalid column type: {column_type!r}")

    if not table_exists(conn, table):
        raise StructuralConflict(f"Cannot add {table}.{column}: table does not exist")

    existing = _column_info(conn, table).get(column.lower())
    if existing is not None:
        existing_type = (existing[2] or "").strip().upper()
        if existing_type != column_type.strip().upper():
            raise StructuralConflict(
                f"{table}.{column} exists as {existing_type or 'untyped'}, "
                f"requested {column_type.upper()}"
            )
        if nullable and existing[3]:
            raise StructuralConflict(f"{table}.{column} exists as NOT NULL, requested nullable")
        return False

    # SQLite cannot backfill existing rows of a NOT NULL column without a default
    if not nullable and default is None:
        raise StructuralConflict(f"Cannot add NOT NULL column {table}.{column} without a default")

    ddl = f"ALTER TABLE {quote_identifier(table)} ADD COLUMN {quote_identifier(column)} {column_type}"
    if not nullable:
        ddl += " NOT NULL"
    if default is not None:
        ddl += f" DEFAULT {_sql_literal(default)}"

    conn.execute(ddl)
    return True
