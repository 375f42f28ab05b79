"""
Feature table assembly for ChisqFX.

The engine's features-calculator writes one vector file per sample into
``features_<unit>/vectors/``, holding one coverage value per graph component.
This module joins those vectors across comparison units into a single
samples x components table.
"""

import logging
from pathlib import Path
from typing import List, Sequence, Union

import numpy as np
import pandas as pd

from .errors import AssemblyError
from .paths import ArtifactLayout


def read_unit_features(layout: ArtifactLayout, unit: str, sample_names: Sequence[str]) -> pd.DataFrame:
    """Load the feature vectors of one unit as a samples x components frame."""
    vectors_dir = layout.vectors_dir(unit)
    if not vectors_dir.is_dir():
        raise AssemblyError(f"Feature vectors for '{unit}' not found: {vectors_dir}", unit=unit)

    vectors = {}
    for name in sample_names:
        vector_file = layout.vector_path(unit, name)
        if not vector_file.is_file():
            raise AssemblyError(f"Missing feature vector of sample {name}: {vector_file}", unit=unit)
        try:
            values = np.loadtxt(vector_file, dtype=float, ndmin=1)
        except ValueError as e:
            raise AssemblyError(f"Malformed feature vector {vector_file}: {e}", unit=unit)
        vectors[name] = values

    lengths = {len(values) for values in vectors.values()}
    if len(lengths) > 1:
        raise AssemblyError(
            f"Feature vectors of '{unit}' differ in length: {sorted(lengths)}", unit=unit
        )

    n_components = lengths.pop() if lengths else 0
    columns = [f"{unit}_{i}" for i in range(n_components)]
    frame = pd.DataFrame.from_dict(vectors, orient="index", columns=columns)
    logging.debug(f"Loaded {n_components} features of '{unit}' for {len(frame)} samples")
    return frame


def assemble(working_dir: Union[str, Path, ArtifactLayout], unit_labels: Sequence[str],
             sample_names: Sequence[str]) -> pd.DataFrame:
    """
    Merge per-unit feature vectors into the final feature table.

    Rows follow ``sample_names``; columns are ``<unit>_<i>`` for every
    component, units in the given order. Units may contribute different numbers
    of components.
    """
    layout = working_dir if isinstance(working_dir, ArtifactLayout) else ArtifactLayout(working_dir)
    if not unit_labels:
        raise AssemblyError("No comparison units to assemble")
    if not sample_names:
        raise AssemblyError("No samples to assemble")

    frames: List[pd.DataFrame] = [read_unit_features(layout, unit, sample_names) for unit in unit_labels]

    table = pd.concat(frames, axis=1, join="outer")
    table = table.reindex(list(sample_names)).fillna(0.0)
    table.index.name = "sample"

    logging.info(f"Feature table: {table.shape[0]} samples x {table.shape[1]} features")
    return table


def write_feature_table(table: pd.DataFrame, working_dir: Union[str, Path, ArtifactLayout]) -> Path:
    """Save the feature table as ``feature_table.tsv``."""
    layout = working_dir if isinstance(working_dir, ArtifactLayout) else ArtifactLayout(working_dir)
    output_file = layout.feature_table
    output_file.parent.mkdir(parents=True, exist_ok=True)
    table.to_csv(output_file, sep="\t")
    return output_file
