"""Tests for structured logging context helpers."""

import logging
import os
import tempfile
import unittest

from core.structured_logging import (
    _RunContextFilter,
    configure_structured_logging,
    get_run_id,
    phase_scope,
    resolve_log_level,
    set_run_id,
    source_file_scope,
)


class TestStructuredLogging(unittest.TestCase):
    def _record(self) -> logging.LogRecord:
        record = logging.LogRecord("test", logging.INFO, __file__, 1, "msg", None, None)
        _RunContextFilter().filter(record)
        return record

    def test_run_id_generated_and_set(self) -> None:
        run_id = set_run_id()
        self.assertEqual(get_run_id(), run_id)
        self.assertEqual(set_run_id("fixed"), "fixed")
        self.assertEqual(self._record().run_id, "fixed")

    def test_phase_and_source_scopes_reset(self) -> None:
        with phase_scope("extract"):
            with source_file_scope("src/a.cpp"):
                record = self._record()
                self.assertEqual(record.phase, "extract")
                self.assertEqual(record.source, "src/a.cpp")
            self.assertEqual(self._record().source, "-")
        self.assertEqual(self._record().phase, "-")

    def test_resolve_log_level(self) -> None:
        self.assertEqual(resolve_log_level("debug"), logging.DEBUG)
        self.assertEqual(resolve_log_level(logging.WARNING), logging.WARNING)
        self.assertEqual(resolve_log_level("nonsense"), logging.INFO)

    def test_log_file_handler_added_once(self) -> None:
        root = logging.getLogger()
        original_level = root.level
        with tempfile.TemporaryDirectory() as tmpdir:
            log_file = os.path.join(tmpdir, "run.log")
            try:
                configure_structured_logging("INFO", log_file=log_file)
                configure_structured_logging("INFO", log_file=log_file)
                handlers = [
                    h for h in root.handlers
                    if isinstance(h, logging.FileHandler) and h.baseFilename == os.path.abspath(log_file)
                ]
                self.assertEqual(len(handlers), 1)

                logging.getLogger("cxxdoc.test").info("hello from test")
                handlers[0].flush()
                with open(log_file, "r", encoding="utf-8") as f:
                    content = f.read()
                self.assertIn("hello from test", content)
                self.assertIn("source=", content)
            finally:
                for handler in list(root.handlers):
                    if isinstance(handler, logging.FileHandler):
                        root.removeHandler(handler)
                        handler.close()
                root.setLevel(original_level)


if __name__ == "__main__":
    unittest.main()
