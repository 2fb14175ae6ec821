"""
Migration runner for Mediastore.

Provides:
- VersionInfo table tracking applied versions
- One transaction per step: schema changes, data rewrites and the
  VersionInfo record commit together or not at all
- Checksum verification for drift detection
- Status reporting and a small CLI

Usage:
    python -m migrations.runner <db_path> [up|status|dry-run]
"""

import json
import sqlite3
import sys
from contextlib import closing
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from errors import MigrationError, StoreFailure
from logging_utils import configure_logging, get_logger
from migrations.registry import MigrationContext, MigrationStep
from qualities import get_quality_definitions

logger = get_logger(__name__)

VERSION_TABLE = "VersionInfo"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _default_migrations() -> tuple[MigrationStep, ...]:
    # Imported lazily: the migrations package imports this module
    from migrations import MIGRATIONS
    return MIGRATIONS


def _connect(db_path) -> sqlite3.Connection:
    """
    Open a connection with explicit transaction control.

    isolation_level=None stops sqlite3 from opening/committing transactions
    on its own, so BEGIN..COMMIT spans DDL and DML alike.
    """
    return sqlite3.connect(str(db_path), isolation_level=None)


def _ensure_version_table(conn: sqlite3.Connection) -> None:
    conn.execute(f"""
        CREATE TABLE IF NOT EXISTS {VERSION_TABLE} (
            Version INTEGER PRIMARY KEY,
            AppliedOn TEXT NOT NULL,
            Description TEXT,
            Checksum TEXT,
            Details TEXT
        )
    """)


def _read_applied(conn: sqlite3.Connection) -> list[dict]:
    cursor = conn.execute(
        f"SELECT Version, AppliedOn, Description, Checksum FROM {VERSION_TABLE} ORDER BY Version"
    )
    return [
        {
            "version": row[0],
            "applied_at": row[1],
            "name": row[2],
            "checksum": row[3]
        }
        for row in cursor.fetchall()
    ]


def _check_applied_prefix(applied_versions, migrations) -> int:
    """
    Verify applied versions are a prefix of the known versions.

    Returns:
        Highest applied version (0 for a fresh store)

    Raises:
        MigrationError: database has versions this build doesn't know,
            or a known version below the highest applied one is missing
    """
    if not applied_versions:
        return 0

    applied = set(applied_versions)
    known = {step.version for step in migrations}
    highest = max(applied)

    unknown = sorted(applied - known)
    if unknown:
        raise MigrationError(
            f"Database has migrations this build does not know about: {unknown}"
        )

    missing = sorted(v for v in known if v <= highest and v not in applied)
    if missing:
        raise MigrationError(
            f"Applied migrations are not contiguous, missing: {missing}"
        )

    return highest


def _pending_steps(migrations, highest: int) -> list[MigrationStep]:
    return sorted(
        (step for step in migrations if step.version > highest),
        key=lambda s: s.version
    )


def _rollback(conn: sqlite3.Connection) -> None:
    if not conn.in_transaction:
        return
    try:
        conn.execute("ROLLBACK")
    except sqlite3.Error as e:
        logger.error("Rollback failed: %s", e)


def get_applied_migrations(db_path) -> list[dict]:
    """Get list of applied migrations, ordered by version."""
    with closing(_connect(db_path)) as conn:
        _ensure_version_table(conn)
        return _read_applied(conn)


def get_pending_migrations(db_path, migrations=None) -> list[dict]:
    """Get migrations with a version above the highest applied one."""
    if migrations is None:
        migrations = _default_migrations()

    applied = get_applied_migrations(db_path)
    highest = max((m["version"] for m in applied), default=0)

    return [
        {
            "version": step.version,
            "name": step.name,
            "checksum": step.checksum
        }
        for step in _pending_steps(migrations, highest)
    ]


def run_migration(
    conn: sqlite3.Connection,
    step: MigrationStep,
    context: MigrationContext
) -> dict:
    """
    Run a single migration inside one transaction and record it.

    Args:
        conn: Connection opened by _connect (no implicit transactions)
        step: Migration to apply
        context: Connection + catalog handed to the step

    Returns:
        Details dict returned by the step

    Raises:
        StoreFailure: SQLite raised; everything the step did is rolled back
        MigrationError: the step raised one (e.g. StructuralConflict), or any
            other exception, wrapped; rolled back
    """
    logger.info("Applying migration %s", step.display_name)

    conn.execute("BEGIN")
    try:
        details = step.up(context) or {}
        conn.execute(
            f"""
            INSERT INTO {VERSION_TABLE} (Version, AppliedOn, Description, Checksum, Details)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                step.version,
                _utc_now_iso(),
                step.name,
                step.checksum,
                json.dumps(details, default=str)
            )
        )
        conn.execute("COMMIT")
    except Exception as e:
        _rollback(conn)
        logger.error("Migration %s failed, rolled back: %s", step.display_name, e)
        if isinstance(e, sqlite3.Error):
            raise StoreFailure(str(e), version=step.version) from e
        if not isinstance(e, MigrationError):
            raise MigrationError(f"{type(e).__name__}: {e}", version=step.version) from e
        if e.version is None:
            e.version = step.version
        raise

    logger.info("Applied migration %s", step.display_name)
    return details


def run_all_pending(
    db_path,
    migrations=None,
    catalog_provider: Optional[Callable] = None,
    dry_run: bool = False
) -> dict:
    """
    Run all pending migrations in ascending version order.

    Stops at the first failure and re-raises it; steps that committed before
    it stay committed.

    Args:
        db_path: Path to SQLite database
        migrations: Registry (defaults to migrations.MIGRATIONS)
        catalog_provider: Returns the quality catalog; called once per run
        dry_run: Only report what would run

    Returns:
        {version, applied, pending, details}
    """
    if migrations is None:
        migrations = _default_migrations()
    if catalog_provider is None:
        catalog_provider = get_quality_definitions

    result = {
        "version": 0,
        "applied": [],
        "pending": [],
        "details": []
    }

    with closing(_connect(db_path)) as conn:
        _ensure_version_table(conn)
        applied = _read_applied(conn)
        highest = _check_applied_prefix([m["version"] for m in applied], migrations)
        result["version"] = highest

        pending = _pending_steps(migrations, highest)
        result["pending"] = [step.version for step in pending]

        if not pending:
            logger.info("Schema is up to date (version %d)", highest)
            return result

        if dry_run:
            logger.info("Dry run: would apply %s", result["pending"])
            return result

        context = MigrationContext(
            conn=conn,
            quality_definitions=tuple(catalog_provider())
        )

        for step in pending:
            details = run_migration(conn, step, context)
            result["applied"].append(step.version)
            result["pending"].remove(step.version)
            result["version"] = step.version
            result["details"].append({
                "version": step.version,
                "name": step.name,
                "details": details
            })

    logger.info(
        "Applied %d migration(s). Schema version: %d",
        len(result["applied"]),
        result["version"]
    )
    return result


def get_status(db_path, migrations=None) -> dict:
    """
    Get migration status report.

    Returns:
        {
            current_version: int,
            applied: [{version, applied_at, name, checksum}],
            pending: [{version, name, checksum}],
            modified: [{version, old_checksum, new_checksum}],
            unknown: [version]   # applied but not in this build
        }
    """
    if migrations is None:
        migrations = _default_migrations()

    applied = get_applied_migrations(db_path)
    pending = get_pending_migrations(db_path, migrations)

    known = {step.version: step for step in migrations}
    modified = []
    unknown = []

    for record in applied:
        step = known.get(record["version"])
        if step is None:
            unknown.append(record["version"])
            continue
        if record["checksum"] and step.checksum and record["checksum"] != step.checksum:
            modified.append({
                "version": record["version"],
                "old_checksum": record["checksum"],
                "new_checksum": step.checksum
            })

    return {
        "current_version": max((m["version"] for m in applied), default=0),
        "applied": applied,
        "pending": pending,
        "modified": modified,
        "unknown": unknown
    }


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print("Usage: python -m migrations.runner <db_path> [up|status|dry-run]", file=sys.stderr)
        return 1

    configure_logging()
    db_path = Path(argv[0])
    action = argv[1] if len(argv) > 1 else "status"

    try:
        if action == "up":
            result = run_all_pending(db_path)
        elif action == "dry-run":
            result = run_all_pending(db_path, dry_run=True)
        elif action == "status":
            result = get_status(db_path)
        else:
            print(f"Unknown action: {action}", file=sys.stderr)
            return 1
    except MigrationError as e:
        print(json.dumps({"success": False, "error": str(e)}, indent=2))
        return 1

    print(json.dumps(result, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
