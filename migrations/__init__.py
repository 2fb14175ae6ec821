"""
Mediastore database migrations.

Each migration is a module mNNN_<name>.py with:
  - MIGRATION_ID: integer version (applied in ascending order)
  - DESCRIPTION: short name recorded in VersionInfo
  - up(context): apply structural changes and data rewrites, return details

Migrations are forward-only. Add new modules to MIGRATIONS below.
"""

from . import m001_initial_setup, m036_update_with_quality_converters
from .registry import MigrationContext, MigrationStep, build_registry

MIGRATIONS = build_registry([
    m001_initial_setup,
    m036_update_with_quality_converters,
])

# Export runner functions for stable imports
from .runner import (  # noqa: E402
    get_applied_migrations,
    get_pending_migrations,
    get_status,
    run_all_pending,
    run_migration,
)
