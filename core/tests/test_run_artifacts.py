"""Tests for run artifact writer."""

import json
import tempfile
import unittest
from pathlib import Path

from core.run_artifacts import write_run_report


class TestRunArtifacts(unittest.TestCase):
    def test_write_run_report(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_run_report(
                report={"status": "success", "files_processed": 3},
                run_id="run-123",
                output_dir=tmpdir,
            )
            self.assertTrue(Path(path).is_file())
            self.assertEqual(Path(path).name, "run-123.json")
            payload = json.loads(Path(path).read_text(encoding="utf-8"))
            self.assertEqual(payload["run_id"], "run-123")
            self.assertEqual(payload["status"], "success")
            self.assertEqual(payload["files_processed"], 3)
            self.assertIn("timestamp_utc", payload)

    def test_command_prefixes_file_name(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            extract_path = write_run_report({"command": "extract"}, "run-1", tmpdir)
            prune_path = write_run_report({"command": "prune"}, "run-1", tmpdir)

            self.assertEqual(Path(extract_path).name, "extract-run-1.json")
            self.assertNotEqual(extract_path, prune_path)
            self.assertEqual(json.loads(Path(prune_path).read_text(encoding="utf-8"))["command"], "prune")

    def test_creates_missing_directory(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            target = Path(tmpdir) / "reports" / "nested"
            path = write_run_report({"status": "success"}, "run-9", str(target))
            self.assertTrue(Path(path).is_file())


if __name__ == "__main__":
    unittest.main()
