"""
Five-step chi-squared feature extraction pipeline.

Step 1: count k-mers of every sample (skipped with pre-computed k-mers)
Step 2: select statistically significant k-mers per comparison unit
Step 3: extract de Bruijn graph components around the selected k-mers
Step 4: compute component coverage features and assemble the feature table
Step 5: export components as graphs and contigs (optional)

Steps run strictly in order. The first failing command aborts the run: its
step is marked FAILED, later steps are never started and nothing is retried.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

import pandas as pd

from .assembler import assemble, write_feature_table
from .classifier import BranchMode, CategorySet, classify, read_manifest, write_categories_table
from .config import ChisqConfig
from .errors import PipelineError, SubprocessFailureError
from .paths import (
    ArtifactLayout,
    component_args,
    contigs_helper_args,
    feature_args,
    graph_args,
    kmer_counting_args,
    selection_args,
    unit_labels,
)
from .runner import SubprocessRunner
from .utils import check_tool, format_command, save_run_summary

AMOUNTS = {2: "two", 3: "three"}


class StageStatus(Enum):
    PENDING = "pending"
    RUNNING = "running"
    SKIPPED = "skipped"
    DONE = "done"
    FAILED = "failed"


class PipelineStatus(Enum):
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class StageResult:
    """Outcome of one pipeline step."""
    number: int
    description: str
    status: StageStatus = StageStatus.PENDING
    invocations: int = 0
    error: Optional[PipelineError] = None

    def to_dict(self) -> Dict:
        return {
            "step": self.number,
            "description": self.description,
            "status": self.status.value,
            "invocations": self.invocations,
            "error": str(self.error) if self.error else None,
        }


@dataclass
class PipelineResult:
    """Outcome of a whole run."""
    status: PipelineStatus
    stages: List[StageResult]
    branch_mode: Optional[BranchMode] = None
    units: List[str] = field(default_factory=list)
    feature_table: Optional[pd.DataFrame] = None
    error: Optional[PipelineError] = None

    @property
    def ok(self) -> bool:
        return self.status is PipelineStatus.COMPLETED

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1

    def stage(self, number: int) -> StageResult:
        return self.stages[number - 1]


STEP_DESCRIPTIONS = [
    "counting k-mers for samples",
    "extracting statistically-significant k-mers and corresponding ranks",
    "extracting graph components around group-specific k-mers",
    "calculating features as coverage of components by samples",
    "transforming binary components to fasta sequences and de Bruijn graph",
]


class ChisqPipeline:
    """Coordinate the five steps of chi-squared feature extraction."""

    def __init__(self, config: ChisqConfig, runner=None):
        self.config = config
        self.runner = runner or SubprocessRunner()
        self.layout = ArtifactLayout.from_config(config)

        self.category_set: Optional[CategorySet] = None
        self.mode: Optional[BranchMode] = None
        self.units: List[str] = []
        self.feature_table: Optional[pd.DataFrame] = None
        self.stages = [StageResult(i, desc) for i, desc in enumerate(STEP_DESCRIPTIONS, 1)]
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------

    def run(self) -> PipelineResult:
        try:
            self.config.validate()
        except PipelineError as e:
            logging.error(f"Invalid parameters: {e}")
            return self._finish(PipelineStatus.ABORTED, e)

        self.layout.work_dir.mkdir(parents=True, exist_ok=True)
        self._check_tools()

        steps: List[Callable[[StageResult], None]] = [
            self.count_kmers,
            self.select_kmers,
            self.extract_components,
            self.calculate_features,
            self.export_graphs,
        ]
        for stage, step in zip(self.stages, steps):
            skip_reason = self._skip_reason(stage.number)
            if skip_reason:
                stage.status = StageStatus.SKIPPED
                logging.info(f"Skipping step {stage.number}: {skip_reason}")
                continue

            stage.status = StageStatus.RUNNING
            logging.info(f"Running step {stage.number}: {stage.description}")
            try:
                step(stage)
            except PipelineError as e:
                if e.stage is None:
                    e.stage = stage.number
                stage.status = StageStatus.FAILED
                stage.error = e
                logging.error(f"Error during step {stage.number}! {e}")
                return self._finish(PipelineStatus.ABORTED, e)

            stage.status = StageStatus.DONE
            logging.info(f"Step {stage.number} finished successfully!")

        logging.info("ChisqFX pipeline finished successfully!")
        return self._finish(PipelineStatus.COMPLETED)

    def _skip_reason(self, number: int) -> Optional[str]:
        if number == 1 and not self.layout.computes_kmers:
            return "will use provided k-mers"
        if number == 5 and self.config.graph.skip_graph:
            return "no de Bruijn graph and fasta sequences construction"
        return None

    def _check_tools(self):
        tools = [self.config.engine.engine]
        if not self.config.graph.skip_graph:
            tools.append(self.config.engine.contigs_helper)
        for tool in tools:
            if not check_tool(tool):
                logging.warning(f"{tool} not found on PATH")

    def _finish(self, status: PipelineStatus, error: Optional[PipelineError] = None) -> PipelineResult:
        result = PipelineResult(
            status=status,
            stages=list(self.stages),
            branch_mode=self.mode,
            units=list(self.units),
            feature_table=self.feature_table,
            error=error,
        )
        if self.layout.work_dir.is_dir():
            save_run_summary({
                "status": status.value,
                "error": str(error) if error else None,
                "branch_mode": self.mode.value if self.mode else None,
                "units": self.units,
                "steps": [stage.to_dict() for stage in self.stages],
                "config": self.config.to_dict(),
            }, self.layout.work_dir)
        return result

    def _invoke(self, stage: StageResult, cmd: List[str], unit: Optional[str] = None):
        logging.info(format_command(cmd))
        with self._lock:
            stage.invocations += 1

        result = self.runner.run_engine(cmd)
        if not result.ok:
            message = f"{cmd[0]} exited with status {result.exit_code}"
            tail = result.stderr_tail()
            if tail:
                message += f":\n{tail}"
            raise SubprocessFailureError(
                message, command=cmd, exit_code=result.exit_code, stderr=result.stderr,
                stage=stage.number, unit=unit,
            )

    def _run_unit(self, stage: StageResult, work: Callable[[str], None], unit: str):
        try:
            work(unit)
        except PipelineError as e:
            if e.unit is None:
                e.unit = unit
            if e.stage is None:
                e.stage = stage.number
            raise

    def _for_each_unit(self, stage: StageResult, work: Callable[[str], None], fan_out: bool = True):
        """
        Apply ``work`` to every comparison unit, stopping at the first failure.

        With several categories and ``unit_workers > 1`` units run on a thread
        pool; a failure prevents any unit that has not started yet from running.
        """
        if self.mode is BranchMode.PAIRED:
            labels = " ".join(self.category_set.labels)
            amount = AMOUNTS[self.category_set.n_cat]
            logging.info(f"Processing {amount} categories of samples: {labels}")
            self._run_unit(stage, work, self.units[0])
            logging.info(f"Processed {amount} categories of samples: {labels}")
            return

        workers = self.config.processing.unit_workers
        if not fan_out or workers <= 1:
            for unit in self.units:
                logging.info(f"Processing category {unit}")
                self._run_unit(stage, work, unit)
                logging.info(f"Processed category {unit}")
            return

        failed = threading.Event()
        errors: Dict[str, PipelineError] = {}

        def task(unit):
            if failed.is_set():
                logging.warning(f"Not starting category {unit} after an earlier failure")
                return
            logging.info(f"Processing category {unit}")
            try:
                self._run_unit(stage, work, unit)
            except PipelineError as e:
                failed.set()
                errors[unit] = e
                return
            logging.info(f"Processed category {unit}")

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(task, unit) for unit in self.units]
            for future in futures:
                future.result()

        for unit in self.units:
            if unit in errors:
                raise errors[unit]

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def count_kmers(self, stage: StageResult):
        entries = read_manifest(self.config.input.reads_file)
        cmd = kmer_counting_args(self.config, self.layout, [entry.sample_path for entry in entries])
        self._invoke(stage, cmd)

    def select_kmers(self, stage: StageResult):
        self.category_set = classify(self.config.input.reads_file)
        write_categories_table(self.category_set, self.layout.categories_table)

        self.mode = self.category_set.branch_mode
        self.units = unit_labels(self.category_set, self.mode)
        logging.info(f"Comparison mode: {self.mode.value} ({len(self.units)} comparison units)")

        def work(unit):
            cmd = selection_args(self.config, self.layout, self.category_set, self.mode, unit)
            self._invoke(stage, cmd, unit)

        self._for_each_unit(stage, work)

    def extract_components(self, stage: StageResult):
        def work(unit):
            cmd = component_args(self.config, self.layout, self.category_set, self.mode, unit)
            self._invoke(stage, cmd, unit)

        self._for_each_unit(stage, work)

    def calculate_features(self, stage: StageResult):
        def work(unit):
            cmd = feature_args(self.config, self.layout, self.category_set, unit)
            self._invoke(stage, cmd, unit)

        self._for_each_unit(stage, work, fan_out=False)

        self.feature_table = assemble(self.layout, self.units, self.category_set.sample_names)
        output_file = write_feature_table(self.feature_table, self.layout)
        logging.info(f"Feature table saved to {output_file}")

    def export_graphs(self, stage: StageResult):
        def work(unit):
            cmd = graph_args(self.config, self.layout, self.category_set, self.mode, unit)
            self._invoke(stage, cmd, unit)
            self._invoke(stage, contigs_helper_args(self.config, self.layout, unit), unit)

        self._for_each_unit(stage, work)


def run_pipeline(config: ChisqConfig, runner=None) -> PipelineResult:
    """Run the full pipeline with the given configuration."""
    return ChisqPipeline(config, runner=runner).run()
