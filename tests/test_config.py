"""
Tests for configuration loading.
"""

import json
import shutil
import sys
import tempfile
import unittest
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import DEFAULT_CONFIG, load_config, resolve_db_path


class TestLoadConfig(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.config_path = Path(self.temp_dir) / "config.json"

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_defaults_without_file(self):
        config = load_config(self.config_path, environ={})
        self.assertEqual(config, DEFAULT_CONFIG)
        self.assertIsNot(config["paths"], DEFAULT_CONFIG["paths"])

    def test_file_overrides_merge(self):
        self.config_path.write_text(json.dumps({"paths": {"db_path": "/data/store.db"}}))
        config = load_config(self.config_path, environ={})

        self.assertEqual(config["paths"]["db_path"], "/data/store.db")
        self.assertTrue(config["migrations"]["auto_apply"])

    def test_environment_wins(self):
        self.config_path.write_text(json.dumps({"logging": {"level": "WARNING"}}))
        config = load_config(self.config_path, environ={
            "MEDIASTORE_DB_PATH": "/tmp/env.db",
            "MEDIASTORE_AUTO_APPLY_MIGRATIONS": "0",
            "MEDIASTORE_LOG_LEVEL": "DEBUG",
        })

        self.assertEqual(config["paths"]["db_path"], "/tmp/env.db")
        self.assertFalse(config["migrations"]["auto_apply"])
        self.assertEqual(config["logging"]["level"], "DEBUG")

    def test_resolve_db_path_expands_home(self):
        config = load_config(self.config_path, environ={})
        path = resolve_db_path(config)
        self.assertTrue(path.is_absolute())
        self.assertEqual(path.name, "mediastore.db")


if __name__ == "__main__":
    unittest.main()
