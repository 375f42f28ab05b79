"""
External command execution for ChisqFX.

The pipeline only ever talks to the k-mer engine and its helpers through
``run_engine(args) -> CommandResult``. SubprocessRunner is the real
implementation; tests substitute a fake with the same method.
"""

import logging
import subprocess
from dataclasses import dataclass
from typing import Sequence

STDERR_TAIL_LINES = 20


@dataclass(frozen=True)
class CommandResult:
    """Exit status and captured output of one external invocation."""
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def stderr_tail(self, lines: int = STDERR_TAIL_LINES) -> str:
        return "\n".join(self.stderr.strip().splitlines()[-lines:])


class SubprocessRunner:
    """Run external commands as blocking subprocesses."""

    def run_engine(self, args: Sequence[str]) -> CommandResult:
        cmd = [str(arg) for arg in args]

        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except FileNotFoundError:
            logging.error(f"Executable not found: {cmd[0]}")
            return CommandResult(127, "", f"{cmd[0]}: command not found")
        except PermissionError:
            logging.error(f"Executable not runnable: {cmd[0]}")
            return CommandResult(126, "", f"{cmd[0]}: permission denied")
        except OSError as e:
            logging.error(f"Cannot execute {cmd[0]}: {e}")
            return CommandResult(126, "", f"{cmd[0]}: {e}")

        if result.stdout:
            logging.debug(f"{cmd[0]} stdout:\n{result.stdout.strip()}")
        if result.stderr:
            logging.debug(f"{cmd[0]} stderr:\n{result.stderr.strip()}")
        return CommandResult(result.returncode, result.stdout, result.stderr)
