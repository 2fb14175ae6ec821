"""
Migration 036: Store qualities by id.

Changes:
- QualityProfiles gains an Items column: one {quality, allowed} entry per
  catalog quality, in weight order, built from the legacy Allowed list
- Blacklist, EpisodeFiles, History: the Quality column keeps only the
  quality id instead of the whole nested quality object

Rows whose legacy JSON can't be read are left untouched and counted in
the recorded details.

The dataclasses below are this migration's view of the data at version 36.
They are not the application's models and must not be imported elsewhere.
"""

import json
import sqlite3
from dataclasses import dataclass

from converters import EmbeddedDocumentConverter, QualityIntConverter, try_deserialize
from errors import StructuralConflict
from logging_utils import get_logger
from migrations.schema import add_column_if_absent, quote_identifier, table_exists
from qualities import QualityDefinition

MIGRATION_ID = 36
DESCRIPTION = "update_with_quality_converters"

QUALITY_MODEL_TABLES = ("Blacklist", "EpisodeFiles", "History")

logger = get_logger(__name__)


@dataclass
class _ProfileItem036:
    quality: QualityDefinition
    allowed: bool


@dataclass
class _SourceQuality036:
    id: int


@dataclass
class _SourceQualityModel036:
    quality: _SourceQuality036
    proper: bool = False


@dataclass
class _DestinationQualityModel036:
    quality: int
    proper: bool


def parse_allowed(blob) -> set[int]:
    """
    Parse a legacy Allowed list into the set of quality ids.

    Entries are quality objects ({"id": 4, "name": ...}) or bare ids.

    Raises:
        ValueError/KeyError: not a list of qualities
    """
    data = json.loads(blob)
    if not isinstance(data, list):
        raise ValueError(f"Allowed must be a JSON list, got {type(data).__name__}")

    allowed = set()
    for entry in data:
        if isinstance(entry, dict):
            entry = entry["id"]
        if not isinstance(entry, int) or isinstance(entry, bool):
            raise ValueError(f"Not a quality id: {entry!r}")
        allowed.add(entry)
    return allowed


def build_profile_items(allowed_ids, catalog) -> list[_ProfileItem036]:
    """
    One item per catalog quality, ordered by weight, allowed iff listed.

    Ids in allowed_ids that aren't in the catalog are ignored.
    """
    allowed_ids = set(allowed_ids or ())
    return [
        _ProfileItem036(quality=definition, allowed=definition.id in allowed_ids)
        for definition in sorted(catalog, key=lambda d: d.weight)
    ]


def flatten_quality_model(source: _SourceQualityModel036) -> _DestinationQualityModel036:
    # Everything else the nested quality carried is dropped
    return _DestinationQualityModel036(quality=source.quality.id, proper=source.proper)


def convert_quality_profiles(conn: sqlite3.Connection, catalog) -> dict:
    """Fill QualityProfiles.Items from QualityProfiles.Allowed."""
    converter = EmbeddedDocumentConverter(
        _ProfileItem036,
        QualityIntConverter(catalog),
        many=True
    )

    result = {"converted": 0, "skipped": []}
    rows = conn.execute("SELECT Id, Allowed FROM QualityProfiles ORDER BY Id").fetchall()

    for profile_id, allowed_json in rows:
        if allowed_json is None or not str(allowed_json).strip():
            allowed = set()
        else:
            allowed, ok = try_deserialize(allowed_json, parse_allowed)
            if not ok:
                logger.debug("QualityProfiles %s: unreadable Allowed, skipped", profile_id)
                result["skipped"].append(profile_id)
                continue

        items = build_profile_items(allowed, catalog)
        conn.execute(
            "UPDATE QualityProfiles SET Items = ? WHERE Id = ?",
            (converter.to_db(items), profile_id)
        )
        result["converted"] += 1

    return result


def convert_quality_model(
    conn: sqlite3.Connection,
    table: str,
    converter: EmbeddedDocumentConverter
) -> dict:
    """
    Rewrite every legacy quality model in table.Quality to its flat form.

    Works on distinct values: each legacy JSON string is converted once and
    every row holding it is updated in one statement.

    Returns:
        {"rows_updated": int, "skipped_values": int}
    """
    if not table_exists(conn, table):
        raise StructuralConflict(f"Cannot convert {table}.Quality: table does not exist")

    source_converter = EmbeddedDocumentConverter(_SourceQualityModel036)
    quoted = quote_identifier(table)
    result = {"rows_updated": 0, "skipped_values": 0}

    values = [row[0] for row in conn.execute(f"SELECT DISTINCT Quality FROM {quoted}").fetchall()]

    for quality_json in values:
        source, ok = source_converter.try_from_db(quality_json)
        if not ok:
            logger.debug("%s: unreadable Quality %r, skipped", table, quality_json)
            result["skipped_values"] += 1
            continue

        cursor = conn.execute(
            f"UPDATE {quoted} SET Quality = ? WHERE Quality = ?",
            (converter.to_db(flatten_quality_model(source)), quality_json)
        )
        result["rows_updated"] += cursor.rowcount

    return result


def up(context) -> dict:
    conn = context.conn

    items_added = add_column_if_absent(conn, "QualityProfiles", "Items", "TEXT", nullable=True)
    profiles = convert_quality_profiles(conn, context.quality_definitions)

    model_converter = EmbeddedDocumentConverter(_DestinationQualityModel036, QualityIntConverter())
    models = {
        table: convert_quality_model(conn, table, model_converter)
        for table in QUALITY_MODEL_TABLES
    }

    return {
        "items_column_added": items_added,
        "quality_profiles": profiles,
        "quality_models": models
    }
