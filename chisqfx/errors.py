"""
Error taxonomy for ChisqFX.

Every failure that aborts a pipeline run derives from PipelineError. The
coordinator fills in ``stage`` and ``unit`` before reporting, so the message
always points at the offending step.
"""

from typing import Optional


class PipelineError(Exception):
    """Base class for all pipeline failures."""

    def __init__(self, message: str, stage: Optional[int] = None, unit: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.unit = unit

    def __str__(self):
        location = []
        if self.stage is not None:
            location.append(f"step {self.stage}")
        if self.unit is not None:
            location.append(f"category '{self.unit}'")
        if location:
            return f"[{', '.join(location)}] {self.message}"
        return self.message


class InputValidationError(PipelineError, ValueError):
    """Missing or invalid parameter, or unusable input file."""


class ManifestFormatError(InputValidationError):
    """A manifest row does not hold exactly two non-empty fields."""


class InsufficientCategoriesError(InputValidationError):
    """The manifest describes fewer than two categories."""


class SubprocessFailureError(PipelineError):
    """An external engine or helper command exited with a non-zero status."""

    def __init__(self, message: str, command=None, exit_code: Optional[int] = None,
                 stderr: str = "", stage: Optional[int] = None, unit: Optional[str] = None):
        super().__init__(message, stage=stage, unit=unit)
        self.command = list(command) if command else []
        self.exit_code = exit_code
        self.stderr = stderr


class PathResolutionError(PipelineError):
    """A prerequisite artifact is absent when building a stage invocation."""

    def __init__(self, message: str, path=None, stage: Optional[int] = None, unit: Optional[str] = None):
        super().__init__(message, stage=stage, unit=unit)
        self.path = path


class AssemblyError(PipelineError):
    """Per-unit feature outputs are missing or malformed."""
