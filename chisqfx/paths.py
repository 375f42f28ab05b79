"""
Artifact layout and command construction for ChisqFX.

Everything the pipeline writes lives under one working directory, partitioned
per comparison unit ("all" for two or three categories, the category label
otherwise). This module derives those paths and builds the argument lists for
the external engine. All functions are pure apart from existence checks on
prerequisite artifacts, so identical inputs always give identical commands.
"""

from pathlib import Path
from typing import List, Optional, Sequence, Union

from .classifier import BranchMode, CategorySet
from .config import ChisqConfig
from .errors import PathResolutionError
from .utils import sample_basename

PAIRED_UNIT = "all"
KMERS_SUFFIX = ".kmers.bin"
VECTOR_SUFFIX = ".breadth"

# Engine tool names
KMER_COUNTER = "kmer-counter-many"
TOP_STATS_KMERS = "top-stats-kmers"
COMPONENT_EXTRACTOR = "component-extractor"
FEATURES_CALCULATOR = "features-calculator"
COMP2GRAPH = "comp2graph"

# Options carrying the k-mer sets of the first, second and third compared group
GROUP_OPTIONS = ["--a-kmers", "--b-kmers", "--c-kmers"]


class ArtifactLayout:
    """Deterministic paths of every pipeline artifact."""

    def __init__(self, work_dir: Union[str, Path], kmers_dir: Optional[Union[str, Path]] = None):
        self.work_dir = Path(work_dir)
        self.precomputed_kmers = Path(kmers_dir) if kmers_dir is not None else None

    @classmethod
    def from_config(cls, config: ChisqConfig) -> "ArtifactLayout":
        return cls(config.output.work_dir, config.input.kmers_dir)

    @property
    def computes_kmers(self) -> bool:
        return self.precomputed_kmers is None

    @property
    def kmer_counter_dir(self) -> Path:
        return self.work_dir / "kmers"

    @property
    def kmers_dir(self) -> Path:
        if self.precomputed_kmers is not None:
            return self.precomputed_kmers
        return self.kmer_counter_dir / "kmers"

    @property
    def categories_table(self) -> Path:
        return self.work_dir / "categories_samples.tsv"

    @property
    def feature_table(self) -> Path:
        return self.work_dir / "feature_table.tsv"

    def kmer_path(self, sample_path: Union[str, Path]) -> Path:
        return self.kmers_dir / f"{sample_basename(sample_path)}{KMERS_SUFFIX}"

    def kmer_paths(self, sample_paths: Sequence[Union[str, Path]]) -> List[Path]:
        return [self.kmer_path(path) for path in sample_paths]

    def statistic_dir(self, unit: str) -> Path:
        return self.work_dir / f"statistic_kmers_{unit}"

    def pivot_path(self, unit: str, num_kmers: int) -> Path:
        return self.statistic_dir(unit) / "kmers" / f"top_{num_kmers}_chi_squared_specific{KMERS_SUFFIX}"

    def components_dir(self, unit: str) -> Path:
        return self.work_dir / f"components_{unit}"

    def components_path(self, unit: str) -> Path:
        return self.components_dir(unit) / "components.bin"

    def features_dir(self, unit: str) -> Path:
        return self.work_dir / f"features_{unit}"

    def vectors_dir(self, unit: str) -> Path:
        return self.features_dir(unit) / "vectors"

    def vector_path(self, unit: str, sample_name: str) -> Path:
        return self.vectors_dir(unit) / f"{sample_name}{VECTOR_SUFFIX}"

    def contigs_dir(self, unit: str) -> Path:
        return self.work_dir / f"contigs_{unit}"


def unit_labels(category_set: CategorySet, mode: BranchMode) -> List[str]:
    """Comparison units: the shared "all" unit, or one per category in manifest order."""
    if mode is BranchMode.PAIRED:
        return [PAIRED_UNIT]
    return category_set.labels


def unit_samples(category_set: CategorySet, mode: BranchMode, unit: str) -> List[str]:
    """Samples whose k-mers feed graph traversal for one unit."""
    if mode is BranchMode.PAIRED:
        return [path for group in category_set for path in group.samples]
    return list(category_set[unit].samples)


def require_artifact(path: Path, description: str) -> Path:
    if not path.exists():
        raise PathResolutionError(f"Missing {description}: {path}", path=path)
    return path


def _paths(paths: Sequence[Path]) -> List[str]:
    return [str(path) for path in paths]


def engine_prefix(config: ChisqConfig, include_k: bool = True) -> List[str]:
    """Engine command followed by the launch options that are set."""
    cmd = [config.engine.engine]
    if include_k and config.engine.k is not None:
        cmd += ["-k", str(config.engine.k)]
    if config.engine.memory:
        cmd += ["-m", str(config.engine.memory)]
    if config.engine.threads:
        cmd += ["-p", str(config.engine.threads)]
    return cmd


def kmer_counting_args(config: ChisqConfig, layout: ArtifactLayout,
                       sample_paths: Sequence[str]) -> List[str]:
    """Step 1: count k-mers of every manifest sample."""
    cmd = engine_prefix(config)
    cmd += ["-t", KMER_COUNTER]
    cmd += ["-b", str(config.selection.bad_frequency)]
    cmd += ["-i"] + [str(path) for path in sample_paths]
    cmd += ["-w", str(layout.kmer_counter_dir)]
    return cmd


def selection_args(config: ChisqConfig, layout: ArtifactLayout, category_set: CategorySet,
                   mode: BranchMode, unit: str) -> List[str]:
    """
    Step 2: rank k-mers by chi-squared test for one unit.

    Two or three categories are compared directly, one option per category.
    With four or more, the unit category is compared against all others.
    """
    if mode is BranchMode.PAIRED:
        groups = [list(group.samples) for group in category_set]
    else:
        groups = [list(category_set[unit].samples), category_set.rest_of(unit)]

    # Step 2 launches the engine without -k; k is read from the k-mer files
    cmd = engine_prefix(config, include_k=False)
    cmd += ["-t", TOP_STATS_KMERS]
    cmd += ["-b", str(config.selection.bad_frequency)]
    cmd += ["--num-kmers", str(config.selection.num_kmers)]
    for option, samples in zip(GROUP_OPTIONS, groups):
        kmer_files = [require_artifact(path, "k-mers file") for path in layout.kmer_paths(samples)]
        cmd += [option] + _paths(kmer_files)
    cmd += ["-w", str(layout.statistic_dir(unit))]
    return cmd


def component_args(config: ChisqConfig, layout: ArtifactLayout, category_set: CategorySet,
                   mode: BranchMode, unit: str) -> List[str]:
    """Step 3: extract graph components around the unit's pivot k-mers."""
    pivot = require_artifact(layout.pivot_path(unit, config.selection.num_kmers), "pivot k-mers")

    cmd = engine_prefix(config)
    cmd += ["-t", COMPONENT_EXTRACTOR]
    cmd += ["--depth", str(config.graph.depth)]
    cmd += ["--pivot", str(pivot)]
    cmd += ["-i"] + _paths(layout.kmer_paths(unit_samples(category_set, mode, unit)))
    cmd += ["-w", str(layout.components_dir(unit))]
    return cmd


def feature_args(config: ChisqConfig, layout: ArtifactLayout, category_set: CategorySet,
                 unit: str) -> List[str]:
    """Step 4: coverage of the unit's components by every sample."""
    components = require_artifact(layout.components_path(unit), "components file")

    cmd = engine_prefix(config)
    cmd += ["-t", FEATURES_CALCULATOR]
    cmd += ["-cm", str(components)]
    cmd += ["-ka"] + _paths(layout.kmer_paths(category_set.sample_paths))
    cmd += ["-w", str(layout.features_dir(unit))]
    return cmd


def graph_args(config: ChisqConfig, layout: ArtifactLayout, category_set: CategorySet,
               mode: BranchMode, unit: str) -> List[str]:
    """Step 5: coverage-annotated de Bruijn graph of the unit's components."""
    components = require_artifact(layout.components_path(unit), "components file")

    cmd = engine_prefix(config)
    cmd += ["-t", COMP2GRAPH]
    cmd += ["-cf", str(components)]
    cmd += ["-i"] + _paths(layout.kmer_paths(unit_samples(category_set, mode, unit)))
    cmd += ["-cov"]
    cmd += ["-w", str(layout.contigs_dir(unit))]
    return cmd


def contigs_helper_args(config: ChisqConfig, layout: ArtifactLayout, unit: str) -> List[str]:
    """Step 5: turn the exported graph into contig sequences."""
    return [config.engine.contigs_helper, str(layout.contigs_dir(unit))]
