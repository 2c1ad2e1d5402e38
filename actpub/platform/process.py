"""Subprocess execution with Result-based error handling.

Every external collaborator (git, gh, the build command) is driven through
these two functions, so tests can replace a single `run_process` symbol per
module.

Usage:
    result = run(["git", "rev-parse", "HEAD"], cwd=repo_root)
    match result:
        case Ok(stdout):
            print(stdout.strip())
        case Err(error):
            print(f"failed: {error.stderr}")
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path

from actpub.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run", "run_silent"]


@dataclass(frozen=True, slots=True)
class ProcessError:
    """Error from a failed subprocess execution.

    Attributes:
        command: The command that was executed.
        returncode: Exit code, -1 if the process could not run or timed out.
        stdout: Standard output (may be empty).
        stderr: Standard error (contains error details).
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    def __str__(self) -> str:
        cmd_str = " ".join(self.command[:3])
        if len(self.command) > 3:
            cmd_str += " ..."
        return f"{cmd_str} failed (exit {self.returncode})"

    @property
    def detail(self) -> str:
        """Most useful single line of diagnostics."""
        text = self.stderr.strip() or self.stdout.strip()
        return text.splitlines()[-1] if text else str(self)


def run(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
    input_text: str | None = None,
) -> Result[str, ProcessError]:
    """Execute a command and return its stdout.

    Output is decoded as UTF-8 with `surrogateescape`, so undecodable bytes
    (non-UTF-8 file names from git) round-trip unchanged through `input_text`.

    Args:
        cmd: Command and arguments.
        cwd: Working directory.
        env: Full environment (inherits the current one if None).
        timeout: Maximum seconds to wait (None for no limit).
        input_text: Text written to the process stdin.

    Returns:
        Ok(stdout) on success, Err(ProcessError) on failure.
    """
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=env,
            input=input_text,
            capture_output=True,
            encoding="utf-8",
            errors="surrogateescape",
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=-1,
                stdout=e.stdout if isinstance(e.stdout, str) else "",
                stderr=f"Command timed out after {timeout}s",
            )
        )
    except OSError as e:
        return Err(ProcessError(command=tuple(cmd), returncode=-1, stdout="", stderr=str(e)))
    except UnicodeError as e:
        return Err(ProcessError(command=tuple(cmd), returncode=-1, stdout="", stderr=str(e)))

    if proc.returncode != 0:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=proc.returncode,
                stdout=proc.stdout,
                stderr=proc.stderr,
            )
        )

    return Ok(proc.stdout)


def run_silent(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
) -> Result[None, ProcessError]:
    """Execute a command with output streamed to the terminal.

    Used for build and install commands whose logs belong in the run output.
    """
    try:
        proc = subprocess.run(cmd, cwd=str(cwd), env=env, check=False)
    except OSError as e:
        return Err(ProcessError(command=tuple(cmd), returncode=-1, stdout="", stderr=str(e)))

    if proc.returncode != 0:
        return Err(
            ProcessError(command=tuple(cmd), returncode=proc.returncode, stdout="", stderr="")
        )

    return Ok(None)
