#!/usr/bin/env python3
"""
Command line entry point for C++ documentation extraction.

Extracts functions, methods, classes, structs, enums and namespaces with
their doc comments from C++ sources and renders one Markdown file per symbol.

Usage:
    python run_docgen.py extract --source src/ --extract-dir .cxxdoc/
    python run_docgen.py generate --config cxxdoc-config.yaml
    python run_docgen.py prune --dry-run
    python run_docgen.py list-parsers
    python run_docgen.py init-config cxxdoc-config.yaml
"""

import argparse
import logging
import sys
from typing import List, Optional

from core.doc_config import (
    DEFAULT_CONFIG_FILES,
    ConfigValidationError,
    DocConfig,
    load_doc_config,
    write_default_config,
)
from core.run_artifacts import write_run_report
from core.structured_logging import configure_structured_logging, set_run_id

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser.

    Returns:
        Configured ArgumentParser.
    """
    parser = argparse.ArgumentParser(
        description="C++ documentation extractor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python run_docgen.py extract --source src/\n"
            "  python run_docgen.py generate\n"
            "  python run_docgen.py prune --dry-run\n"
        ),
    )
    parser.add_argument(
        "--config",
        default=None,
        help=f"Configuration file. Default: first of {', '.join(DEFAULT_CONFIG_FILES)} found.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Enable debug logging.",
    )
    parser.add_argument(
        "--report-dir",
        default=None,
        help="Write a JSON run report into this directory.",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    extract = commands.add_parser("extract", aliases=["ext"], help="Extract documentation snippets.")
    extract.add_argument(
        "--source",
        action="append",
        default=None,
        help="Source directory (repeatable). Overrides source_directories.",
    )
    extract.add_argument("--extract-dir", default=None, help="Overrides extract_directory.")

    commands.add_parser("generate", aliases=["gen"], help="Extract, then copy snippets to output_directory.")

    prune = commands.add_parser("prune", help="Remove snippets whose sources are gone.")
    prune.add_argument("--dry-run", action="store_true", default=False, help="Only list what would be removed.")
    prune.add_argument("--extract-dir", default=None, help="Overrides extract_directory.")

    commands.add_parser("list-parsers", help="Show configured and installed tree-sitter grammars.")

    init = commands.add_parser("init-config", help="Write a default configuration file.")
    init.add_argument("filename", nargs="?", default=DEFAULT_CONFIG_FILES[0])
    init.add_argument("--force", action="store_true", default=False, help="Overwrite an existing file.")

    return parser


def _report(args: argparse.Namespace, run_id: str, payload: dict) -> None:
    if args.report_dir:
        path = write_run_report(payload, run_id=run_id, output_dir=args.report_dir)
        logger.info(f"Run report written to {path}")


def cmd_extract(args: argparse.Namespace, config: DocConfig, run_id: str) -> int:
    from rendering.pipeline import DocumentationPipeline

    pipeline = DocumentationPipeline(config)
    summary = pipeline.extract(source_directories=args.source, extract_directory=args.extract_dir)
    print(summary.stats.summary())
    _report(args, run_id, {"command": "extract", "status": "success", **summary.to_dict()})
    return 0


def cmd_generate(args: argparse.Namespace, config: DocConfig, run_id: str) -> int:
    from rendering.pipeline import DocumentationPipeline

    pipeline = DocumentationPipeline(config)
    summary = pipeline.generate()
    print(summary.stats.summary())
    print(f"{len(summary.copied_files)} snippets copied to {config.output_directory}")
    _report(args, run_id, {"command": "generate", "status": "success", **summary.to_dict()})
    return 0


def cmd_prune(args: argparse.Namespace, config: DocConfig, run_id: str) -> int:
    from rendering.pipeline import DocumentationPipeline

    summary = DocumentationPipeline(config).prune(dry_run=args.dry_run, extract_directory=args.extract_dir)
    verb = "Would remove" if args.dry_run else "Removed"
    for path in summary.pruned_files:
        print(f"{verb}: {path}")
    print(f"{verb} {len(summary.pruned_files)} orphaned files")
    _report(args, run_id, {"command": "prune", "status": "success", **summary.to_dict()})
    return 0


def cmd_list_parsers(args: argparse.Namespace, config: DocConfig, run_id: str) -> int:
    from extraction.parser import LanguageRegistry, discover_installed_grammars
    from rendering.pipeline import describe_languages

    registry = LanguageRegistry()
    registry.load_from_specs(config.languages)
    print("Configured grammars:")
    for spec in config.languages:
        status = "loaded" if spec.name in registry else "NOT AVAILABLE"
        print(f"  {spec.name:<12} {spec.module}.{spec.function} [{status}]")
    for name, module, extensions in describe_languages(registry):
        print(f"    {name}: {extensions}")

    print("Installed grammar modules:")
    installed = discover_installed_grammars()
    for module in installed:
        print(f"  {module}")
    if not installed:
        print("  (none)")
    return 0


def cmd_init_config(args: argparse.Namespace) -> int:
    try:
        path = write_default_config(args.filename, overwrite=args.force)
    except FileExistsError as e:
        logger.error(f"{e}; use --force to overwrite")
        return 1
    print(f"Created {path}")
    return 0


COMMANDS = {
    "extract": cmd_extract,
    "ext": cmd_extract,
    "generate": cmd_generate,
    "gen": cmd_generate,
    "prune": cmd_prune,
    "list-parsers": cmd_list_parsers,
}


def run(argv: Optional[List[str]] = None) -> int:
    """Run one command and return its exit status."""
    args = build_parser().parse_args(argv)

    if args.command == "init-config":
        configure_structured_logging(logging.DEBUG if args.verbose else logging.INFO)
        return cmd_init_config(args)

    try:
        config = load_doc_config(args.config)
    except ConfigValidationError as e:
        configure_structured_logging(logging.INFO)
        logger.error(f"Configuration error: {e}")
        return 1

    configure_structured_logging(
        logging.DEBUG if args.verbose else config.logging.level,
        log_file=config.logging.file,
    )
    run_id = set_run_id()

    try:
        return COMMANDS[args.command](args, config, run_id)
    except FileNotFoundError as e:
        logger.error(f"File error: {e}")
        return 1
    except RuntimeError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    except Exception as e:
        logger.error(f"{args.command} failed: {e}", exc_info=True)
        return 1


def main() -> None:
    """Main entry point."""
    sys.exit(run())


if __name__ == "__main__":
    main()
