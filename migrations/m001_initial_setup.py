"""
Migration 001: Initial schema.

Creates the tables later migrations rewrite, in their original shape:
- QualityProfiles: Allowed holds a JSON list of quality objects
- Blacklist, EpisodeFiles, History: Quality holds a JSON quality model
  with the full quality object nested inside
"""

MIGRATION_ID = 1
DESCRIPTION = "initial_setup"

TABLES = [
    """
    CREATE TABLE IF NOT EXISTS QualityProfiles (
        Id INTEGER PRIMARY KEY,
        Name TEXT NOT NULL UNIQUE,
        Cutoff INTEGER NOT NULL,
        Allowed TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS Series (
        Id INTEGER PRIMARY KEY,
        TvdbId INTEGER NOT NULL,
        Title TEXT NOT NULL,
        QualityProfileId INTEGER,
        Path TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS EpisodeFiles (
        Id INTEGER PRIMARY KEY,
        SeriesId INTEGER NOT NULL,
        Path TEXT NOT NULL,
        Size INTEGER NOT NULL,
        DateAdded TEXT NOT NULL,
        Quality TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS History (
        Id INTEGER PRIMARY KEY,
        EpisodeId INTEGER NOT NULL,
        SeriesId INTEGER NOT NULL,
        SourceTitle TEXT NOT NULL,
        Date TEXT NOT NULL,
        Quality TEXT NOT NULL,
        Data TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS Blacklist (
        Id INTEGER PRIMARY KEY,
        SeriesId INTEGER NOT NULL,
        EpisodeIds TEXT NOT NULL,
        SourceTitle TEXT NOT NULL,
        Quality TEXT NOT NULL,
        Date TEXT NOT NULL
    )
    """,
]

INDEXES = [
    "CREATE INDEX IF NOT EXISTS IX_History_Date ON History(Date)",
    "CREATE INDEX IF NOT EXISTS IX_EpisodeFiles_SeriesId ON EpisodeFiles(SeriesId)",
]


def up(context) -> dict:
    """Create tables and indexes. Safe on databases that already have them."""
    for ddl in TABLES:
        context.conn.execute(ddl)
    for ddl in INDEXES:
        context.conn.execute(ddl)

    return {"tables": ["QualityProfiles", "Series", "EpisodeFiles", "History", "Blacklist"]}
