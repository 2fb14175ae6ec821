"""
Tests for the MCP host: startup gate and tool responses.
"""

import shutil
import sqlite3
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import mediastore_mcp_server as host
from migrations.runner import get_applied_migrations


class TestStartupMigrate(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = Path(self.temp_dir) / "nested" / "mediastore.db"

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_auto_apply_brings_store_up_to_date(self):
        result = host.startup_migrate(self.db_path, auto_apply=True)

        self.assertEqual(result["applied"], [1, 36])
        self.assertEqual([m["version"] for m in get_applied_migrations(self.db_path)], [1, 36])

    def test_pending_without_auto_apply_refuses_to_start(self):
        with self.assertRaises(SystemExit):
            host.startup_migrate(self.db_path, auto_apply=False)

    def test_up_to_date_without_auto_apply_starts(self):
        host.startup_migrate(self.db_path, auto_apply=True)
        result = host.startup_migrate(self.db_path, auto_apply=False)
        self.assertEqual(result["applied"], [])

    def test_failed_migration_refuses_to_start(self):
        host.startup_migrate(self.db_path, auto_apply=True)
        conn = sqlite3.connect(self.db_path)
        with conn:
            conn.execute("INSERT INTO VersionInfo (Version, AppliedOn) VALUES (500, '2030-01-01T00:00:00Z')")
        conn.close()

        with self.assertRaises(SystemExit):
            host.startup_migrate(self.db_path, auto_apply=True)


class TestTools(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = Path(self.temp_dir) / "mediastore.db"
        patcher = patch.object(host, "DB_PATH", self.db_path)
        patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_status_on_fresh_store(self):
        text = host.handle_tool("mediastore_migration_status", {})

        self.assertIn("Schema version: **0**", text)
        self.assertIn("No migrations applied yet.", text)
        self.assertIn("### Pending", text)
        self.assertIn("update_with_quality_converters", text)

    def test_dry_run_then_up(self):
        text = host.handle_tool("mediastore_run_migrations", {"action": "dry_run"})
        self.assertIn("Would apply:** 1, 36", text)

        text = host.handle_tool("mediastore_run_migrations", {"action": "up"})
        self.assertIn("Applied:** 1, 36", text)

        text = host.handle_tool("mediastore_run_migrations", {"action": "up"})
        self.assertIn("Already up to date", text)

    def test_unknown_action_and_tool(self):
        self.assertIn("Unknown action", host.handle_tool("mediastore_run_migrations", {"action": "down"}))
        self.assertIn("Unknown tool", host.handle_tool("mediastore_drop_everything", {}))


if __name__ == "__main__":
    unittest.main()
