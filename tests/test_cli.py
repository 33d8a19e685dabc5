"""
Tests for the command-line interface.
"""

import json
import tempfile
import unittest
from pathlib import Path

from click.testing import CliRunner

from zotero_store.cli import main
from zotero_store.driver import MemoryCluster


FEED = {
    "name": "Reading Group",
    "version": 21,
    "collections": [{"key": "COLL0001", "data": {"name": "Week 1"}}],
    "items": [
        {"key": "ITEM0001", "data": {"title": "First"}},
        {"key": "ITEM0002", "data": {"title": "Second"}},
    ],
    "deleted": {"items": ["GONE0001"], "collections": []},
}


class TestCli(unittest.TestCase):
    """Test cases for the zotero-store command."""

    def setUp(self):
        MemoryCluster.reset()
        self.runner = CliRunner()
        self.temp_dir = tempfile.TemporaryDirectory()
        self.feed_file = Path(self.temp_dir.name) / "feed.json"
        self.feed_file.write_text(json.dumps(FEED))

    def tearDown(self):
        self.temp_dir.cleanup()

    def invoke(self, *args):
        return self.runner.invoke(main, ["--url", "memory://cli", *args])

    def test_setup_twice(self):
        """Test that creating an existing bucket is reported, not failed."""
        first = self.invoke("setup")
        second = self.invoke("setup")

        self.assertEqual(first.exit_code, 0, first.output)
        self.assertIn("Created bucket zotero", first.output)
        self.assertEqual(second.exit_code, 0, second.output)
        self.assertIn("already exists", second.output)

    def test_provision(self):
        """Test provisioning a library."""
        result = self.invoke("provision", "groups/10")

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("g10", result.output)
        scopes = MemoryCluster.get_state("cli").buckets["zotero"]
        self.assertEqual(sorted(scopes["g10"]), ["collections", "items", "meta"])

    def test_import_and_info(self):
        """Test applying a feed and showing the result."""
        result = self.invoke("import", "groups/10", str(self.feed_file))
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Imported 1 collections and 2 items", result.output)

        result = self.invoke("info", "groups/10", "--keys")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Reading Group", result.output)
        self.assertIn("21", result.output)
        self.assertIn("ITEM0001 ITEM0002", result.output)

    def test_import_invalid_json(self):
        """Test that a broken feed file is rejected."""
        self.feed_file.write_text("{not json")

        result = self.invoke("import", "groups/10", str(self.feed_file))

        self.assertEqual(result.exit_code, 1)
        self.assertIn("not valid JSON", result.output)

    def test_remove(self):
        """Test removing a library without confirmation prompt."""
        self.invoke("provision", "users/4")

        result = self.invoke("remove", "users/4", "--yes")

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertNotIn("u4", MemoryCluster.get_state("cli").buckets["zotero"])

    def test_remove_unknown_library(self):
        """Test that removing an unknown library fails with a message."""
        result = self.invoke("remove", "users/404", "--yes")

        self.assertEqual(result.exit_code, 1)
        self.assertIn("Error", result.output)


if __name__ == "__main__":
    unittest.main()
