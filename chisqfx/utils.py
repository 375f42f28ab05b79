"""
Utility functions for ChisqFX.

Shared helpers for logging setup, sample naming, command formatting and
run-summary persistence used across the package.
"""

import sys
import json
import shlex
import shutil
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Sequence, Union

SEQUENCE_EXTENSIONS = [".fastq", ".fq", ".fasta", ".fa", ".fna"]
COMPRESSION_EXTENSIONS = [".gz", ".bz2"]


def setup_logging(verbose: bool = False, log_file: Optional[Union[str, Path]] = "chisqfx.log"):
    """Set up logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=handlers,
        force=True,
    )


def sample_basename(sample_path: Union[str, Path]) -> str:
    """
    Return the name the k-mer engine gives a sample.

    Directories are dropped, then a recognised sequence extension is removed
    together with an optional compression suffix (``reads.fastq.gz`` ->
    ``reads``). Names with any other extension are kept whole.
    """
    name = Path(sample_path).name
    stripped = name
    for ext in COMPRESSION_EXTENSIONS:
        if stripped.endswith(ext):
            stripped = stripped[: -len(ext)]
            break
    for ext in SEQUENCE_EXTENSIONS:
        if stripped.endswith(ext) and len(stripped) > len(ext):
            return stripped[: -len(ext)]
    return name


def format_command(cmd: Sequence[str]) -> str:
    """Render an argument list as a copy-pasteable shell line."""
    return " ".join(shlex.quote(str(part)) for part in cmd)


def check_tool(command: str) -> bool:
    """Check whether an external executable can be found."""
    if Path(command).is_file():
        return True
    return shutil.which(command) is not None


def save_run_summary(summary: Dict, output_dir: Union[str, Path],
                     filename: str = "run_summary.json") -> Path:
    """Write a JSON summary of a pipeline run into the working directory."""
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)
    summary = dict(summary)
    summary.setdefault("timestamp", datetime.now().isoformat())

    summary_file = output_path / filename
    with open(summary_file, "w") as f:
        json.dump(summary, f, indent=2, default=str)

    logging.debug(f"Run summary saved to {summary_file}")
    return summary_file
