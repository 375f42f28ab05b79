"""
Configuration management for ChisqFX.

This module provides configuration classes for the chi-squared feature
extraction pipeline: run parameters passed to the external engine, input
locations, and output settings. Values can come from defaults, a JSON or YAML
file, environment variables and command-line flags, in increasing priority.
"""

import os
import re
import json
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional, Dict, Any

import yaml

from .errors import InputValidationError

MAX_K = 31
MEMORY_PATTERN = re.compile(r"^[1-9][0-9]*[MG]$")


@dataclass
class InputConfig:
    """Configuration for pipeline inputs."""
    reads_file: Optional[str] = None
    kmers_dir: Optional[str] = None

    def __post_init__(self):
        if self.reads_file is not None:
            self.reads_file = str(self.reads_file)
        if self.kmers_dir is not None:
            self.kmers_dir = str(self.kmers_dir)


@dataclass
class EngineConfig:
    """Configuration for the external k-mer engine."""
    k: Optional[int] = None
    threads: Optional[int] = None
    memory: Optional[str] = None
    engine: str = "metafast.sh"
    contigs_helper: str = "graph2contigs.py"

    def __post_init__(self):
        if self.k is not None and (self.k < 1 or self.k > MAX_K):
            raise InputValidationError(f"k must be between 1 and {MAX_K}, got {self.k}")
        if self.threads is not None and self.threads < 1:
            raise InputValidationError(f"threads must be positive, got {self.threads}")
        if self.memory is not None and not MEMORY_PATTERN.match(str(self.memory)):
            raise InputValidationError(
                f"memory must be a number with suffix M or G (e.g. 1500M, 4G), got {self.memory}"
            )
        if not self.engine:
            raise InputValidationError("engine command must not be empty")


@dataclass
class SelectionConfig:
    """Configuration for significant k-mer selection."""
    num_kmers: Optional[int] = None
    bad_frequency: int = 1

    def __post_init__(self):
        if self.num_kmers is not None and self.num_kmers < 1:
            raise InputValidationError(f"num_kmers must be positive, got {self.num_kmers}")
        if self.bad_frequency < 1:
            raise InputValidationError(f"bad_frequency must be positive, got {self.bad_frequency}")


@dataclass
class GraphConfig:
    """Configuration for graph traversal and export."""
    depth: int = 1
    skip_graph: bool = False

    def __post_init__(self):
        if self.depth < 1:
            raise InputValidationError(f"depth must be positive, got {self.depth}")


@dataclass
class ProcessingConfig:
    """Configuration for per-category fan-out."""
    unit_workers: int = 1

    def __post_init__(self):
        if self.unit_workers < 1:
            raise InputValidationError(f"unit_workers must be positive, got {self.unit_workers}")


@dataclass
class OutputConfig:
    """Configuration for output settings."""
    work_dir: str = "workDir"
    log_file: str = "chisqfx.log"
    verbose: bool = False

    def __post_init__(self):
        self.work_dir = str(self.work_dir)


class ChisqConfig:
    """Main configuration class for ChisqFX."""

    SECTIONS = {
        "input": InputConfig,
        "engine": EngineConfig,
        "selection": SelectionConfig,
        "graph": GraphConfig,
        "processing": ProcessingConfig,
        "output": OutputConfig,
    }

    def __init__(self, config_file: Optional[str] = None):
        self.input = InputConfig()
        self.engine = EngineConfig()
        self.selection = SelectionConfig()
        self.graph = GraphConfig()
        self.processing = ProcessingConfig()
        self.output = OutputConfig()

        if config_file:
            self.load_from_file(config_file)

    @property
    def work_dir(self) -> Path:
        return Path(self.output.work_dir)

    @property
    def log_path(self) -> Path:
        log_file = Path(self.output.log_file)
        if log_file.is_absolute():
            return log_file
        return self.work_dir / log_file

    def load_from_file(self, config_file: str):
        """Load configuration from a JSON or YAML file."""
        config_path = Path(config_file)
        if not config_path.exists():
            raise InputValidationError(f"Configuration file not found: {config_file}")

        try:
            with open(config_path, "r") as f:
                if config_path.suffix in (".yml", ".yaml"):
                    config_data = yaml.safe_load(f) or {}
                elif config_path.suffix == ".json":
                    config_data = json.load(f)
                else:
                    raise InputValidationError(f"Unsupported config format: {config_file}")
        except json.JSONDecodeError as e:
            raise InputValidationError(f"Invalid JSON in configuration file: {e}")
        except yaml.YAMLError as e:
            raise InputValidationError(f"Invalid YAML in configuration file: {e}")

        if not isinstance(config_data, dict):
            raise InputValidationError(f"Configuration file must hold a mapping: {config_file}")

        unknown = set(config_data) - set(self.SECTIONS)
        if unknown:
            raise InputValidationError(f"Unknown configuration sections: {sorted(unknown)}")

        for name, section_cls in self.SECTIONS.items():
            if name in config_data:
                values = asdict(getattr(self, name))
                values.update(config_data[name] or {})
                try:
                    setattr(self, name, section_cls(**values))
                except TypeError as e:
                    raise InputValidationError(f"Invalid configuration parameters in '{name}': {e}")

        logging.info(f"Configuration loaded from {config_file}")

    def save_to_file(self, config_file: str):
        """Save current configuration to a JSON or YAML file."""
        config_path = Path(config_file)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w") as f:
            if config_path.suffix in (".yml", ".yaml"):
                yaml.safe_dump(self.to_dict(), f, sort_keys=False)
            else:
                json.dump(self.to_dict(), f, indent=2)

        logging.info(f"Configuration saved to {config_file}")

    def update_from_args(self, args):
        """Update configuration from command-line arguments."""
        def given(name):
            return getattr(args, name, None) is not None

        if given("reads_file"):
            self.input.reads_file = str(args.reads_file)
        if given("kmers_dir"):
            self.input.kmers_dir = str(args.kmers_dir)

        if given("k"):
            self.engine.k = args.k
        if given("threads"):
            self.engine.threads = args.threads
        if given("memory"):
            self.engine.memory = args.memory
        if given("engine"):
            self.engine.engine = args.engine
        if given("contigs_helper"):
            self.engine.contigs_helper = args.contigs_helper

        if given("num_kmers"):
            self.selection.num_kmers = args.num_kmers
        if given("bad_frequency"):
            self.selection.bad_frequency = args.bad_frequency

        if given("depth"):
            self.graph.depth = args.depth
        if getattr(args, "skip_graph", False):
            self.graph.skip_graph = True

        if given("unit_workers"):
            self.processing.unit_workers = args.unit_workers

        if given("work_dir"):
            self.output.work_dir = str(args.work_dir)
        if getattr(args, "verbose", False):
            self.output.verbose = True

    def validate(self):
        """Validate all configuration parameters, including mandatory ones."""
        for name, section_cls in self.SECTIONS.items():
            # Re-run __post_init__ checks on values assigned after construction
            section_cls(**asdict(getattr(self, name)))

        missing = []
        if self.engine.k is None:
            missing.append("k-mer size (-k)")
        if self.input.reads_file is None:
            missing.append("reads file (-i)")
        if self.selection.num_kmers is None:
            missing.append("number of k-mers (-n)")
        if missing:
            raise InputValidationError(f"Missing mandatory parameters: {', '.join(missing)}")

        if not Path(self.input.reads_file).is_file():
            raise InputValidationError(f"Reads file does not exist: {self.input.reads_file}")
        if self.input.kmers_dir is not None and not Path(self.input.kmers_dir).is_dir():
            raise InputValidationError(f"K-mers directory does not exist: {self.input.kmers_dir}")

    def get_summary(self) -> str:
        """Get a human-readable summary of the configuration."""
        summary = []
        summary.append("ChisqFX Configuration Summary:")
        summary.append("=" * 40)

        summary.append("Input:")
        summary.append(f"  Reads file: {self.input.reads_file}")
        summary.append(f"  Pre-computed k-mers: {self.input.kmers_dir or 'no (will be counted)'}")

        summary.append("Engine:")
        summary.append(f"  K-mer size: {self.engine.k}")
        summary.append(f"  Threads: {self.engine.threads or 'engine default'}")
        summary.append(f"  Memory: {self.engine.memory or 'engine default'}")

        summary.append("Selection:")
        summary.append(f"  Top k-mers: {self.selection.num_kmers}")
        summary.append(f"  Bad frequency: {self.selection.bad_frequency}")

        summary.append("Graph:")
        summary.append(f"  Depth: {self.graph.depth}")
        summary.append(f"  Skip graph export: {self.graph.skip_graph}")

        summary.append("Output:")
        summary.append(f"  Working directory: {self.output.work_dir}")

        return "\n".join(summary)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {name: asdict(getattr(self, name)) for name in self.SECTIONS}


def load_config_from_env(config: Optional[ChisqConfig] = None) -> ChisqConfig:
    """Load configuration overrides from CHISQFX_* environment variables."""
    config = config or ChisqConfig()

    if "CHISQFX_K" in os.environ:
        config.engine.k = int(os.environ["CHISQFX_K"])
    if "CHISQFX_THREADS" in os.environ:
        config.engine.threads = int(os.environ["CHISQFX_THREADS"])
    if "CHISQFX_MEMORY" in os.environ:
        config.engine.memory = os.environ["CHISQFX_MEMORY"]
    if "CHISQFX_ENGINE" in os.environ:
        config.engine.engine = os.environ["CHISQFX_ENGINE"]
    if "CHISQFX_CONTIGS_HELPER" in os.environ:
        config.engine.contigs_helper = os.environ["CHISQFX_CONTIGS_HELPER"]
    if "CHISQFX_WORK_DIR" in os.environ:
        config.output.work_dir = os.environ["CHISQFX_WORK_DIR"]
    if "CHISQFX_VERBOSE" in os.environ:
        config.output.verbose = os.environ["CHISQFX_VERBOSE"].lower() == "true"

    return config
