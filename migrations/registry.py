"""
Migration steps and the ordered registry.

Each migration module exposes:
  - MIGRATION_ID: integer version
  - DESCRIPTION: short human-readable name
  - up(context) -> dict: structural changes + data rewrites, returns details

The registry is an explicit tuple built once from a list of modules and
passed to the runner - nothing registers itself at import time.
"""

import hashlib
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional


@dataclass(frozen=True)
class MigrationContext:
    """What a step gets to work with: the open connection and this run's catalog."""
    conn: sqlite3.Connection
    quality_definitions: tuple = field(default_factory=tuple)


@dataclass(frozen=True)
class MigrationStep:
    version: int
    name: str
    up: Callable[[MigrationContext], dict]
    source_path: Optional[Path] = None

    @property
    def display_name(self) -> str:
        return f"{self.version:03d}_{self.name}"

    @property
    def checksum(self) -> str:
        """SHA256 prefix of the migration source, for drift detection."""
        if self.source_path is None or not Path(self.source_path).exists():
            return ""
        content = Path(self.source_path).read_bytes()
        return hashlib.sha256(content).hexdigest()[:16]

    @classmethod
    def from_module(cls, module) -> "MigrationStep":
        version = getattr(module, "MIGRATION_ID", None)
        if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
            raise ValueError(f"{module.__name__}: MIGRATION_ID must be a positive integer")

        name = getattr(module, "DESCRIPTION", module.__name__.rsplit(".", 1)[-1])
        source = getattr(module, "__file__", None)
        return cls(
            version=version,
            name=name,
            up=module.up,
            source_path=Path(source) if source else None
        )


def build_registry(modules) -> tuple[MigrationStep, ...]:
    """
    Build the ordered registry.

    Raises:
        ValueError: two migrations share a version
    """
    steps = [
        module if isinstance(module, MigrationStep) else MigrationStep.from_module(module)
        for module in modules
    ]
    steps.sort(key=lambda s: s.version)

    seen = {}
    for step in steps:
        if step.version in seen:
            raise ValueError(
                f"Duplicate migration version {step.version}: "
                f"{seen[step.version]} and {step.name}"
            )
        seen[step.version] = step.name

    return tuple(steps)
