"""
ChisqFX: chi-squared k-mer feature extraction for categorized metagenomes

Coordinates an external k-mer engine through five steps to build a
samples x features table from group-specific de Bruijn graph components.
"""

from .classifier import BranchMode, CategoryGroup, CategorySet, SampleEntry, classify
from .config import ChisqConfig
from .errors import (
    PipelineError,
    InputValidationError,
    ManifestFormatError,
    InsufficientCategoriesError,
    SubprocessFailureError,
    PathResolutionError,
    AssemblyError,
)
from .pipeline import ChisqPipeline, PipelineResult, PipelineStatus, StageStatus, run_pipeline
from .assembler import assemble
from .utils import setup_logging

__version__ = "1.0.0"
__author__ = "ChisqFX Development Team"

__all__ = [
    "BranchMode",
    "CategoryGroup",
    "CategorySet",
    "SampleEntry",
    "classify",
    "ChisqConfig",
    "PipelineError",
    "InputValidationError",
    "ManifestFormatError",
    "InsufficientCategoriesError",
    "SubprocessFailureError",
    "PathResolutionError",
    "AssemblyError",
    "ChisqPipeline",
    "PipelineResult",
    "PipelineStatus",
    "StageStatus",
    "run_pipeline",
    "assemble",
    "setup_logging",
]
