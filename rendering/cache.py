"""
Incremental extraction cache.

Remembers, per source file, a content hash, modification time and the
Markdown files generated from it, so unchanged files are not re-extracted and
outputs whose sources disappeared can be pruned.
"""

import glob
import hashlib
import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

CACHE_FILENAME = ".cxxdoc-cache.json"
CACHE_VERSION = "1.0"


def hash_file(file_path: str) -> str:
    """SHA-256 of a file's contents (empty string if unreadable)."""
    digest = hashlib.sha256()
    try:
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(65536), b""):
                digest.update(chunk)
    except OSError as e:
        logger.warning("Cannot hash %s: %s", file_path, e)
        return ""
    return digest.hexdigest()


def file_mtime(file_path: str) -> str:
    """Modification time as a string (empty if the file is missing)."""
    try:
        return str(os.path.getmtime(file_path))
    except OSError:
        return ""


class DocumentationCache:
    """JSON-backed record of source files and their generated outputs."""

    def __init__(self, cache_path: str):
        self.cache_path = cache_path
        self.files: Dict[str, Dict[str, Any]] = {}
        self.output_to_sources: Dict[str, List[str]] = {}
        self.last_updated: Optional[str] = None

    @classmethod
    def for_directory(cls, directory: str) -> "DocumentationCache":
        return cls(os.path.join(directory, CACHE_FILENAME))

    @staticmethod
    def _key(path: str) -> str:
        return os.path.abspath(path)

    def load(self) -> bool:
        """Load the cache file; a missing or corrupt file leaves the cache empty.

        Returns:
            True if a cache was loaded.
        """
        if not os.path.isfile(self.cache_path):
            logger.info("No cache found at %s; starting fresh", self.cache_path)
            return False
        try:
            with open(self.cache_path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable cache %s: %s", self.cache_path, e)
            self.clear()
            return False

        if not isinstance(payload, dict) or payload.get("version") != CACHE_VERSION:
            logger.warning("Ignoring cache %s with unsupported format", self.cache_path)
            self.clear()
            return False

        self.files = dict(payload.get("files", {}))
        self.output_to_sources = {k: list(v) for k, v in payload.get("output_to_source", {}).items()}
        self.last_updated = payload.get("last_updated")
        logger.info("Loaded cache with %d files from %s", len(self.files), self.cache_path)
        return True

    def save(self) -> None:
        directory = os.path.dirname(self.cache_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self.last_updated = datetime.now(timezone.utc).isoformat()
        payload = {
            "version": CACHE_VERSION,
            "last_updated": self.last_updated,
            "files": self.files,
            "output_to_source": self.output_to_sources,
        }
        with open(self.cache_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, sort_keys=True)
        logger.debug("Saved cache with %d files to %s", len(self.files), self.cache_path)

    def needs_extraction(self, source_path: str) -> bool:
        """Whether a source file must be (re-)extracted.

        True when the file is unknown, its mtime or content hash changed, or
        one of its generated files is gone. False when the file itself no
        longer exists.
        """
        if not os.path.isfile(source_path):
            return False

        entry = self.files.get(self._key(source_path))
        if entry is None:
            return True
        if entry.get("last_modified") != file_mtime(source_path):
            return True
        if entry.get("content_hash") != hash_file(source_path):
            return True
        return any(not os.path.isfile(path) for path in entry.get("generated_files", []))

    def update_file(
        self,
        source_path: str,
        generated_files: List[str],
        construct_count: int,
        language: str,
    ) -> None:
        """Record a fresh extraction of a source file."""
        key = self._key(source_path)
        self._unlink_outputs(key)
        outputs = [self._key(path) for path in generated_files]
        self.files[key] = {
            "content_hash": hash_file(source_path),
            "last_modified": file_mtime(source_path),
            "construct_count": construct_count,
            "language": language,
            "generated_files": outputs,
        }
        for output in outputs:
            sources = self.output_to_sources.setdefault(output, [])
            if key not in sources:
                sources.append(key)

    def _unlink_outputs(self, key: str) -> None:
        entry = self.files.get(key)
        if entry is None:
            return
        for output in entry.get("generated_files", []):
            sources = self.output_to_sources.get(output, [])
            if key in sources:
                sources.remove(key)
            if not sources:
                self.output_to_sources.pop(output, None)

    def remove_file(self, source_path: str) -> None:
        key = self._key(source_path)
        self._unlink_outputs(key)
        self.files.pop(key, None)

    def generated_files(self, source_path: str) -> List[str]:
        entry = self.files.get(self._key(source_path), {})
        return list(entry.get("generated_files", []))

    def get_orphaned_files(self) -> List[str]:
        """Generated files all of whose sources no longer exist."""
        orphans = []
        for output, sources in self.output_to_sources.items():
            if sources and all(not os.path.isfile(source) for source in sources):
                orphans.append(output)
        return sorted(orphans)

    def get_orphaned_files_in_directory(self, directory: str) -> List[str]:
        """Markdown files in ``directory`` the cache does not know about."""
        tracked = set(self.output_to_sources)
        orphans = []
        for path in glob.glob(os.path.join(directory, "*.md")):
            if self._key(path) not in tracked:
                orphans.append(self._key(path))
        return sorted(orphans)

    def prune_orphaned_files(self, directory: Optional[str] = None, dry_run: bool = False) -> List[str]:
        """Delete orphaned outputs and forget sources that no longer exist.

        Args:
            directory: Also prune untracked Markdown files found here.
            dry_run: Only report what would be deleted.

        Returns:
            Paths that were (or would be) deleted.
        """
        orphans = self.get_orphaned_files()
        if directory is not None:
            orphans.extend(p for p in self.get_orphaned_files_in_directory(directory) if p not in orphans)

        for path in orphans:
            if dry_run:
                logger.info("Would remove orphaned file %s", path)
                continue
            try:
                os.remove(path)
                logger.info("Removed orphaned file %s", path)
            except FileNotFoundError:
                logger.debug("Orphaned file already gone: %s", path)
            self.output_to_sources.pop(path, None)

        if not dry_run:
            for source in [s for s in self.files if not os.path.isfile(s)]:
                self.remove_file(source)
        return orphans

    def get_stats(self) -> Dict[str, Any]:
        return {
            "cached_files": len(self.files),
            "generated_files": len(self.output_to_sources),
            "total_constructs": sum(entry.get("construct_count", 0) for entry in self.files.values()),
            "orphaned_files": len(self.get_orphaned_files()),
            "last_updated": self.last_updated,
        }

    def verify_integrity(self) -> List[str]:
        """Describe inconsistencies between the cache and the file system."""
        problems = []
        for source, entry in self.files.items():
            if not os.path.isfile(source):
                problems.append(f"Missing source file: {source}")
            for output in entry.get("generated_files", []):
                if not os.path.isfile(output):
                    problems.append(f"Missing generated file: {output} (from {source})")
                if source not in self.output_to_sources.get(output, []):
                    problems.append(f"Reverse mapping missing for {output} -> {source}")
        for output, sources in self.output_to_sources.items():
            for source in sources:
                if source not in self.files:
                    problems.append(f"Output {output} maps to untracked source {source}")
        for problem in problems:
            logger.warning("Cache integrity: %s", problem)
        return problems

    def clear(self) -> None:
        self.files = {}
        self.output_to_sources = {}
        self.last_updated = None
