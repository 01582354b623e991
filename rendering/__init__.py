"""
Layer 2: Rendering

Markdown output for extracted constructs, the incremental extraction cache
and the extract / generate / prune pipeline.
"""

from rendering.markdown import construct_filename, escape_filename, render_construct, write_construct_files
from rendering.cache import DocumentationCache
from rendering.pipeline import DocumentationPipeline, PipelineError, RunSummary

__all__ = [
    "construct_filename",
    "escape_filename",
    "render_construct",
    "write_construct_files",
    "DocumentationCache",
    "DocumentationPipeline",
    "PipelineError",
    "RunSummary",
]
