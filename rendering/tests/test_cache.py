"""
Unit tests for cache.py

Tests change detection, persistence and orphan pruning of the incremental
extraction cache.
"""

import json
import os
import shutil
import tempfile
import unittest

from rendering.cache import CACHE_FILENAME, CACHE_VERSION, DocumentationCache, hash_file


class CacheTestCase(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.source = self.write("src/a.cpp", "void a() {}\n")
        self.output = self.write("out/a.md", "# a\n")
        self.cache = DocumentationCache.for_directory(os.path.join(self.tmpdir, "out"))

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def write(self, relative_path, content):
        path = os.path.join(self.tmpdir, relative_path)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        return path


class TestChangeDetection(CacheTestCase):
    def test_unknown_file_needs_extraction(self):
        self.assertTrue(self.cache.needs_extraction(self.source))

    def test_recorded_file_is_unchanged(self):
        self.cache.update_file(self.source, [self.output], construct_count=1, language="cpp")

        self.assertFalse(self.cache.needs_extraction(self.source))

    def test_content_change(self):
        self.cache.update_file(self.source, [self.output], construct_count=1, language="cpp")
        self.write("src/a.cpp", "void a() { return; }\n")

        self.assertTrue(self.cache.needs_extraction(self.source))

    def test_missing_output_forces_extraction(self):
        self.cache.update_file(self.source, [self.output], construct_count=1, language="cpp")
        os.remove(self.output)

        self.assertTrue(self.cache.needs_extraction(self.source))

    def test_missing_source_is_not_extracted(self):
        self.assertFalse(self.cache.needs_extraction(os.path.join(self.tmpdir, "src", "gone.cpp")))

    def test_hash_file(self):
        self.assertEqual(len(hash_file(self.source)), 64)
        self.assertEqual(hash_file(os.path.join(self.tmpdir, "nope")), "")


class TestPersistence(CacheTestCase):
    def test_save_and_load(self):
        self.cache.update_file(self.source, [self.output], construct_count=2, language="cpp")
        self.cache.save()

        reloaded = DocumentationCache(self.cache.cache_path)
        self.assertTrue(reloaded.load())
        self.assertEqual(reloaded.generated_files(self.source), [os.path.abspath(self.output)])
        self.assertEqual(reloaded.get_stats()["total_constructs"], 2)
        self.assertIsNotNone(reloaded.last_updated)

        with open(self.cache.cache_path, "r", encoding="utf-8") as f:
            payload = json.load(f)
        self.assertEqual(payload["version"], CACHE_VERSION)
        self.assertIn(os.path.abspath(self.output), payload["output_to_source"])

    def test_missing_cache(self):
        self.assertFalse(self.cache.load())
        self.assertEqual(self.cache.files, {})

    def test_corrupt_cache_is_ignored(self):
        self.write(os.path.join("out", CACHE_FILENAME), "{not json")

        self.assertFalse(self.cache.load())
        self.assertEqual(self.cache.files, {})

    def test_unsupported_version_is_ignored(self):
        self.write(os.path.join("out", CACHE_FILENAME), json.dumps({"version": "0.1", "files": {"x": {}}}))

        self.assertFalse(self.cache.load())
        self.assertEqual(self.cache.files, {})


class TestOrphans(CacheTestCase):
    def test_output_orphaned_when_source_removed(self):
        self.cache.update_file(self.source, [self.output], construct_count=1, language="cpp")
        os.remove(self.source)

        self.assertEqual(self.cache.get_orphaned_files(), [os.path.abspath(self.output)])

    def test_shared_output_survives_while_one_source_exists(self):
        other = self.write("src/a.h", "void a();\n")
        self.cache.update_file(self.source, [self.output], construct_count=1, language="cpp")
        self.cache.update_file(other, [self.output], construct_count=1, language="cpp")
        os.remove(other)

        self.assertEqual(self.cache.get_orphaned_files(), [])

    def test_prune_removes_orphans_and_untracked_files(self):
        stray = self.write("out/stray.md", "# stray\n")
        self.cache.update_file(self.source, [self.output], construct_count=1, language="cpp")
        os.remove(self.source)

        removed = self.cache.prune_orphaned_files(os.path.join(self.tmpdir, "out"))

        self.assertEqual(sorted(removed), sorted([os.path.abspath(self.output), os.path.abspath(stray)]))
        self.assertFalse(os.path.exists(self.output))
        self.assertFalse(os.path.exists(stray))
        self.assertEqual(self.cache.files, {})

    def test_prune_dry_run_keeps_files(self):
        self.cache.update_file(self.source, [self.output], construct_count=1, language="cpp")
        os.remove(self.source)

        removed = self.cache.prune_orphaned_files(dry_run=True)

        self.assertEqual(removed, [os.path.abspath(self.output)])
        self.assertTrue(os.path.exists(self.output))
        self.assertIn(os.path.abspath(self.source), self.cache.files)

    def test_update_replaces_previous_outputs(self):
        renamed = self.write("out/b.md", "# b\n")
        self.cache.update_file(self.source, [self.output], construct_count=1, language="cpp")
        self.cache.update_file(self.source, [renamed], construct_count=1, language="cpp")

        self.assertNotIn(os.path.abspath(self.output), self.cache.output_to_sources)
        self.assertEqual(self.cache.generated_files(self.source), [os.path.abspath(renamed)])

    def test_verify_integrity(self):
        self.cache.update_file(self.source, [self.output], construct_count=1, language="cpp")
        self.assertEqual(self.cache.verify_integrity(), [])

        os.remove(self.output)
        with self.assertLogs("rendering.cache", level="WARNING"):
            problems = self.cache.verify_integrity()
        self.assertTrue(any("Missing generated file" in p for p in problems))

    def test_remove_file(self):
        self.cache.update_file(self.source, [self.output], construct_count=1, language="cpp")
        self.cache.remove_file(self.source)

        self.assertEqual(self.cache.files, {})
        self.assertEqual(self.cache.output_to_sources, {})


if __name__ == "__main__":
    unittest.main()
