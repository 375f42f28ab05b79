"""
Sample classification for ChisqFX.

This module reads the tab-separated reads manifest, groups samples by category
label and decides how categories are compared against each other.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Tuple, Union

from .errors import InputValidationError, ManifestFormatError, InsufficientCategoriesError
from .utils import sample_basename

MIN_CATEGORIES = 2
MAX_PAIRED_CATEGORIES = 3


class BranchMode(Enum):
    """Comparison strategy selected from the number of categories."""

    PAIRED = "paired"
    ONE_VS_REST = "one_vs_rest"

    @classmethod
    def for_count(cls, n_cat: int) -> "BranchMode":
        if n_cat < MIN_CATEGORIES:
            raise InsufficientCategoriesError(
                f"Found only {n_cat} categories. Provide at least {MIN_CATEGORIES} categories of input samples!"
            )
        if n_cat <= MAX_PAIRED_CATEGORIES:
            return cls.PAIRED
        return cls.ONE_VS_REST


@dataclass(frozen=True)
class SampleEntry:
    """One manifest row."""
    sample_path: str
    category_label: str

    @property
    def name(self) -> str:
        return sample_basename(self.sample_path)


@dataclass(frozen=True)
class CategoryGroup:
    """Samples sharing one category label, in manifest order."""
    label: str
    samples: Tuple[str, ...]

    def __post_init__(self):
        if not self.samples:
            raise InputValidationError(f"Category '{self.label}' has no samples")

    @property
    def sample_names(self) -> List[str]:
        return [sample_basename(path) for path in self.samples]


class CategorySet:
    """Read-only grouping of all manifest samples by category."""

    def __init__(self, entries: List[SampleEntry]):
        self.entries = tuple(entries)

        grouped: Dict[str, List[str]] = {}
        for entry in self.entries:
            grouped.setdefault(entry.category_label, []).append(entry.sample_path)
        self._groups = {
            label: CategoryGroup(label, tuple(samples)) for label, samples in grouped.items()
        }

    def __len__(self):
        return len(self._groups)

    def __iter__(self):
        return iter(self._groups.values())

    def __getitem__(self, label: str) -> CategoryGroup:
        return self._groups[label]

    def __contains__(self, label):
        return label in self._groups

    @property
    def n_cat(self) -> int:
        return len(self._groups)

    @property
    def labels(self) -> List[str]:
        return list(self._groups)

    @property
    def groups(self) -> List[CategoryGroup]:
        return list(self._groups.values())

    @property
    def sample_paths(self) -> List[str]:
        return [entry.sample_path for entry in self.entries]

    @property
    def sample_names(self) -> List[str]:
        """Sample basenames in manifest row order."""
        return [entry.name for entry in self.entries]

    @property
    def branch_mode(self) -> BranchMode:
        return BranchMode.for_count(self.n_cat)

    def rest_of(self, label: str) -> List[str]:
        """Samples of every category other than ``label``, in manifest order."""
        if label not in self._groups:
            raise KeyError(label)
        return [entry.sample_path for entry in self.entries if entry.category_label != label]


def read_manifest(manifest_path: Union[str, Path]) -> List[SampleEntry]:
    """Parse the reads manifest into sample entries."""
    manifest_path = Path(manifest_path)
    if not manifest_path.is_file():
        raise InputValidationError(f"Reads file does not exist: {manifest_path}")

    entries = []
    seen: Dict[str, int] = {}
    with open(manifest_path, "r") as f:
        for line_num, line in enumerate(f, 1):
            line = line.rstrip("\r\n")
            if not line:
                continue

            fields = line.split("\t")
            if len(fields) != 2 or not all(field.strip() for field in fields):
                raise ManifestFormatError(
                    f"Line {line_num} of {manifest_path} must contain exactly two non-empty "
                    f"tab-separated values (<path_to_file>\\t<category>), got {len(fields)}: {line[:80]!r}"
                )
            entry = SampleEntry(fields[0].strip(), fields[1].strip())
            # One k-mer file per sample name
            if entry.name in seen:
                raise ManifestFormatError(
                    f"Lines {seen[entry.name]} and {line_num} of {manifest_path} both name "
                    f"sample '{entry.name}'; sample file names must be unique"
                )
            seen[entry.name] = line_num
            entries.append(entry)

    if not entries:
        raise ManifestFormatError(f"Reads file {manifest_path} contains no samples")

    return entries


def classify(manifest_path: Union[str, Path]) -> CategorySet:
    """
    Group manifest samples by category.

    Labels keep the order in which they first appear, and so do samples within
    a label. Raises InsufficientCategoriesError when fewer than two categories
    are present.
    """
    entries = read_manifest(manifest_path)
    category_set = CategorySet(entries)

    if category_set.n_cat < MIN_CATEGORIES:
        raise InsufficientCategoriesError(
            f"Found only {category_set.n_cat} categories in {manifest_path} file. "
            f"Provide at least {MIN_CATEGORIES} categories of input samples!"
        )

    for group in category_set:
        logging.debug(f"Category {group.label}: {len(group.samples)} samples")
    logging.info(f"Found {len(entries)} samples in {category_set.n_cat} categories")
    return category_set


def write_categories_table(category_set: CategorySet, output_file: Union[str, Path]) -> Path:
    """
    Save the category grouping as a three-column TSV.

    Columns: label, the category's sample names, the sample names of all other
    categories. Names are space-separated.
    """
    output_file = Path(output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)

    with open(output_file, "w") as f:
        for group in category_set:
            rest = [sample_basename(path) for path in category_set.rest_of(group.label)]
            f.write(f"{group.label}\t{' '.join(group.sample_names)}\t{' '.join(rest)}\n")

    logging.debug(f"Category table saved to {output_file}")
    return output_file
