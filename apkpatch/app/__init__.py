"""Application layer: run context, input discovery and the patch pipeline."""

from .context import PatchContext
from .discovery import find_input_archive, find_patch_source
from .pipeline import PipelineReport, run_pipeline

__all__ = [
    "PatchContext",
    "find_input_archive",
    "find_patch_source",
    "PipelineReport",
    "run_pipeline",
]
