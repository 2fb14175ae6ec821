"""
Reference catalog of quality definitions.

Migrations only need the catalog as ordered {id, weight} data; what a
quality means is decided elsewhere. The provider returns a fresh, weight
ordered list on every call so a run always sees the current catalog.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class QualityDefinition:
    """One catalog entry. Lower weight ranks lower."""
    id: int
    name: str
    weight: int


# Catalog shipped with the application: (id, name, weight)
DEFAULT_QUALITY_DEFINITIONS = (
    QualityDefinition(0, "Unknown", 1),
    QualityDefinition(1, "SDTV", 2),
    QualityDefinition(8, "WEBDL-480p", 3),
    QualityDefinition(2, "DVD", 4),
    QualityDefinition(4, "HDTV-720p", 5),
    QualityDefinition(9, "HDTV-1080p", 6),
    QualityDefinition(10, "Raw-HD", 7),
    QualityDefinition(5, "WEBDL-720p", 8),
    QualityDefinition(6, "Bluray-720p", 9),
    QualityDefinition(3, "WEBDL-1080p", 10),
    QualityDefinition(7, "Bluray-1080p", 11),
)


def get_quality_definitions() -> list[QualityDefinition]:
    """Default catalog provider, ordered by weight ascending."""
    return sorted(DEFAULT_QUALITY_DEFINITIONS, key=lambda q: q.weight)


def find_by_id(catalog, quality_id: int):
    """Return the catalog entry with this id, or None."""
    for definition in catalog:
        if definition.id == quality_id:
            return definition
    return None
