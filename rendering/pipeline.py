"""
Documentation pipeline: extract, render, cache, copy and prune.

Sources the cache marks as unchanged are skipped; everything else is
extracted, merged across the run and rendered to one Markdown file per
construct in the extract directory. ``generate`` additionally copies the
rendered snippets into the configured output directory.
"""

import glob
import logging
import os
import shutil
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from core.doc_config import DocConfig
from core.structured_logging import phase_scope
from extraction.extractor import ExtractionStats, FileExtractionResult, discover_source_files, extract_files
from extraction.merger import merge_constructs
from extraction.models import Construct
from extraction.parser import LanguageRegistry
from rendering.cache import DocumentationCache
from rendering.markdown import MARKDOWN_SUFFIX, write_construct_files

logger = logging.getLogger(__name__)


class PipelineError(RuntimeError):
    """Raised when the pipeline cannot start (no usable grammar, bad paths)."""


@dataclass
class RunSummary:
    """Outcome of one pipeline command."""

    stats: ExtractionStats = field(default_factory=ExtractionStats)
    generated_files: List[str] = field(default_factory=list)
    copied_files: List[str] = field(default_factory=list)
    pruned_files: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stats": self.stats.to_dict(),
            "generated_files": len(self.generated_files),
            "copied_files": len(self.copied_files),
            "pruned_files": len(self.pruned_files),
        }


def _location_file(location: str) -> str:
    return location.rsplit(":", 1)[0]


def _construct_sources(construct: Construct) -> List[str]:
    sources = [construct.source_file]
    for location in construct.merge_state.source_locations:
        path = _location_file(location)
        if path not in sources:
            sources.append(path)
    return sources


class DocumentationPipeline:
    """Runs the extract / generate / prune commands for one configuration."""

    def __init__(self, config: DocConfig, registry: Optional[LanguageRegistry] = None):
        self.config = config
        self.registry = registry

    def initialize(self) -> LanguageRegistry:
        """Load configured grammars once.

        Raises:
            PipelineError: If no configured grammar could be loaded.
        """
        if self.registry is None:
            registry = LanguageRegistry()
            loaded = registry.load_from_specs(self.config.languages)
            if not loaded:
                raise PipelineError("No tree-sitter grammars could be loaded; check 'languages' in the config")
            self.registry = registry
        return self.registry

    def _discover(
        self,
        registry: LanguageRegistry,
        source_directories: Sequence[str],
    ) -> List[str]:
        files: List[str] = []
        for directory in source_directories:
            if not os.path.isdir(directory):
                logger.warning("Source directory not found: %s", directory)
                continue
            for path in discover_source_files(directory, registry.extensions(), self.config.exclude_patterns):
                if path not in files:
                    files.append(path)
        return files

    def extract(
        self,
        source_directories: Optional[Sequence[str]] = None,
        extract_directory: Optional[str] = None,
    ) -> RunSummary:
        """Extract changed sources and render their constructs.

        Args:
            source_directories: Overrides the configured source directories.
            extract_directory: Overrides the configured extract directory.

        Returns:
            RunSummary with stats and generated file paths.
        """
        registry = self.initialize()
        directories = list(source_directories or self.config.source_directories)
        extract_dir = extract_directory or self.config.extract_directory
        summary = RunSummary()
        stats = summary.stats

        with phase_scope("extract"):
            cache = DocumentationCache.for_directory(extract_dir)
            cache.load()

            pending = []
            for path in self._discover(registry, directories):
                if cache.needs_extraction(path):
                    pending.append(path)
                else:
                    stats.files_skipped += 1
            logger.info(
                "%d files to extract, %d unchanged",
                len(pending),
                stats.files_skipped,
            )

            results, _ = extract_files(pending, registry=registry, root=os.getcwd(), stats=stats)

        with phase_scope("merge"):
            raw = [construct for result in results for construct in result.constructs]
            merged = merge_constructs(raw)
            stats.constructs_merged = len(merged.constructs)
            stats.merge_conflicts = merged.conflict_count

        with phase_scope("render"):
            summary.generated_files = write_construct_files(merged.constructs, extract_dir)
            self._update_cache(cache, results, merged.constructs, summary.generated_files)
            cache.save()

        logger.info("Extraction finished: %s", stats.summary())
        return summary

    @staticmethod
    def _update_cache(
        cache: DocumentationCache,
        results: List[FileExtractionResult],
        constructs: List[Construct],
        generated_files: List[str],
    ) -> None:
        outputs_by_source: Dict[str, List[str]] = {result.file_path: [] for result in results}
        for construct, output in zip(constructs, generated_files):
            for source in _construct_sources(construct):
                if source in outputs_by_source:
                    outputs_by_source[source].append(output)

        for result in results:
            cache.update_file(
                os.path.abspath(result.file_path),
                outputs_by_source[result.file_path],
                construct_count=len(result.constructs),
                language=result.language,
            )

    def generate(self) -> RunSummary:
        """Extract, then copy every rendered snippet into the output directory."""
        summary = self.extract()
        extract_dir = self.config.extract_directory
        output_dir = self.config.output_directory

        with phase_scope("generate"):
            os.makedirs(output_dir, exist_ok=True)
            for path in sorted(glob.glob(os.path.join(extract_dir, f"*{MARKDOWN_SUFFIX}"))):
                target = os.path.join(output_dir, os.path.basename(path))
                shutil.copy2(path, target)
                summary.copied_files.append(target)
            logger.info("Copied %d snippets to %s", len(summary.copied_files), output_dir)
        return summary

    def prune(self, dry_run: bool = False, extract_directory: Optional[str] = None) -> RunSummary:
        """Remove generated files whose sources are gone and untracked snippets."""
        extract_dir = extract_directory or self.config.extract_directory
        summary = RunSummary()
        with phase_scope("prune"):
            cache = DocumentationCache.for_directory(extract_dir)
            cache.load()
            summary.pruned_files = cache.prune_orphaned_files(extract_dir, dry_run=dry_run)
            if not dry_run:
                cache.save()
        verb = "Would remove" if dry_run else "Removed"
        logger.info("%s %d orphaned files", verb, len(summary.pruned_files))
        return summary


def describe_languages(registry: LanguageRegistry) -> List[Tuple[str, str, str]]:
    """(name, module, extensions) rows for loaded grammars."""
    rows = []
    for name in registry.names():
        loaded = registry.get(name)
        rows.append((name, loaded.module, ", ".join(loaded.extensions)))
    return rows
