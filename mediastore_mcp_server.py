#!/usr/bin/env python3
"""
Mediastore MCP Server
A Model Context Protocol server hosting the Mediastore database.

On startup the database is brought to the current schema version. If a
migration fails (or migrations are pending and auto-apply is off) the server
refuses to start rather than serve a partially migrated store.

Exposes tools for:
- Reporting migration status
- Running pending migrations (or a dry run)
"""

import asyncio
from pathlib import Path
from typing import Any

# MCP imports
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

# Local imports
from config import load_config, resolve_db_path
from errors import MigrationError
from logging_utils import configure_logging, get_logger
from migrations import get_pending_migrations, get_status, run_all_pending

logger = get_logger(__name__)

CONFIG = load_config()
DB_PATH = resolve_db_path(CONFIG)

server = Server("mediastore-mcp")


def format_status(status: dict) -> str:
    """Render get_status() output as markdown."""
    text = "## Migration Status\n\n"
    text += f"Schema version: **{status['current_version']}**\n\n"

    if status["applied"]:
        text += "### Applied\n"
        for m in status["applied"]:
            text += f"- **{m['version']}** {m['name']} ({m['applied_at'][:10]})\n"
    else:
        text += "No migrations applied yet.\n"

    if status["pending"]:
        text += "\n### Pending\n"
        for m in status["pending"]:
            text += f"- **{m['version']}** {m['name']}\n"

    if status["modified"]:
        text += "\n### Modified Since Applied\n"
        for m in status["modified"]:
            text += f"- **{m['version']}** (checksum changed)\n"

    if status["unknown"]:
        text += "\n### Unknown To This Build\n"
        for version in status["unknown"]:
            text += f"- **{version}**\n"

    return text


def format_run(result: dict, dry_run: bool = False) -> str:
    """Render run_all_pending() output as markdown."""
    text = "## Migration Dry Run\n\n" if dry_run else "## Migration Run\n\n"
    text += f"- **Schema version:** {result['version']}\n"
    if result["applied"]:
        text += f"- **Applied:** {', '.join(str(v) for v in result['applied'])}\n"
    if result["pending"]:
        label = "Would apply" if dry_run else "Pending"
        text += f"- **{label}:** {', '.join(str(v) for v in result['pending'])}\n"
    if not result["applied"] and not result["pending"]:
        text += "- Already up to date\n"
    for entry in result["details"]:
        text += f"- **{entry['version']} {entry['name']}:** {entry['details']}\n"
    return text


def startup_migrate(db_path=None, auto_apply=None) -> dict:
    """
    Bring the database to the current version before serving.

    Raises:
        SystemExit: migration failed, or pending with auto-apply disabled
    """
    if db_path is None:
        db_path = DB_PATH
    if auto_apply is None:
        auto_apply = CONFIG["migrations"]["auto_apply"]

    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Using DB: %s", db_path)

    if not auto_apply:
        pending = get_pending_migrations(db_path)
        if pending:
            logger.error(
                "Pending migrations %s and auto-apply is off. Run: python -m migrations.runner \"%s\" up",
                [m["version"] for m in pending],
                db_path
            )
            raise SystemExit(1)
        return {"version": None, "applied": [], "pending": [], "details": []}

    try:
        result = run_all_pending(db_path)
    except MigrationError as e:
        logger.error("Database migration failed, refusing to start: %s", e)
        raise SystemExit(1) from e

    return result


@server.list_tools()
async def list_tools() -> list[Tool]:
    """List all available Mediastore tools."""
    return [
        Tool(
            name="mediastore_migration_status",
            description="Show applied, pending and modified database migrations.",
            inputSchema={
                "type": "object",
                "properties": {}
            }
        ),
        Tool(
            name="mediastore_run_migrations",
            description="Run pending database migrations. Safe to run multiple times - applied versions are skipped.",
            inputSchema={
                "type": "object",
                "properties": {
                    "action": {
                        "type": "string",
                        "enum": ["up", "dry_run", "status"],
                        "description": "up = apply pending, dry_run = list what would run, status = report only",
                        "default": "status"
                    }
                }
            }
        ),
    ]


def handle_tool(name: str, arguments: dict[str, Any]) -> str:
    """Synchronous tool dispatch; returns the response text."""
    if name == "mediastore_migration_status":
        return format_status(get_status(DB_PATH))

    if name == "mediastore_run_migrations":
        action = arguments.get("action", "status")
        if action == "status":
            return format_status(get_status(DB_PATH))
        if action == "dry_run":
            return format_run(run_all_pending(DB_PATH, dry_run=True), dry_run=True)
        if action == "up":
            return format_run(run_all_pending(DB_PATH))
        return f"Unknown action: {action}. Use 'status', 'dry_run' or 'up'."

    return f"Unknown tool: {name}"


@server.call_tool()
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Handle tool calls."""
    try:
        text = handle_tool(name, arguments or {})
    except MigrationError as e:
        text = f"Migration failed: {e}"
    except Exception as e:
        logger.exception("Tool %s failed", name)
        text = f"Error executing {name}: {e}"
    return [TextContent(type="text", text=text)]


async def main():
    """Run the Mediastore MCP server."""
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


if __name__ == "__main__":
    configure_logging(CONFIG["logging"]["level"])
    startup_migrate()
    asyncio.run(main())
