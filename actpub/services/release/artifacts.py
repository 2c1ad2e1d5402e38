from __future__ import annotations

import os
import shlex
from collections.abc import Mapping
from pathlib import Path

from actpub.core.result import Err, Ok, Result
from actpub.output.console import ConsoleProtocol, Style
from actpub.platform.process import run_silent
from actpub.services.release.errors import ReleaseError, transport_error
from actpub.services.release.model import ArtifactSizeClass, LocalArtifact, LocalArtifactSet

# Above this, a tree creation request risks the hosting API's payload limit.
API_PAYLOAD_BUDGET_BYTES = 25 * 1024 * 1024


def detect_install_command(root: Path) -> str:
    """Production-only dependency install matching the project's lockfile."""
    if (root / "pnpm-lock.yaml").exists():
        return "pnpm install --prod"
    if (root / "yarn.lock").exists():
        return "yarn install --production"
    return "npm ci --production"


def run_build_command(
    command: str,
    *,
    cwd: Path,
    console: ConsoleProtocol,
    env: Mapping[str, str] | None = None,
) -> Result[None, ReleaseError]:
    """Run an external build or install command, output streamed."""
    try:
        argv = shlex.split(command)
    except ValueError as e:
        return Err(ReleaseError(kind="config", message=f"invalid command {command!r}: {e}"))
    if not argv:
        return Err(ReleaseError(kind="config", message="empty build command"))

    console.print(command, Style.DIM)
    result = run_silent(argv, cwd=cwd, env=dict(env) if env is not None else None)
    if isinstance(result, Err):
        return Err(transport_error(f"command failed: {command}", result.error))
    return Ok(None)


def collect_artifacts(root: Path) -> Result[LocalArtifactSet, ReleaseError]:
    """Read every file under `root`, sorted, with posix relative paths."""
    if not root.is_dir():
        return Err(
            ReleaseError(
                kind="transport",
                message=f"artifact directory not found: {root}",
                hint="Check the build command output directory.",
            )
        )

    artifacts: list[LocalArtifact] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        base = Path(dirpath)
        for filename in sorted(filenames):
            path = base / filename
            try:
                content = path.read_bytes()
            except OSError as e:
                return Err(ReleaseError(kind="transport", message=f"failed to read {path}: {e}"))
            artifacts.append(
                LocalArtifact(path=path.relative_to(root).as_posix(), content=content)
            )

    return Ok(LocalArtifactSet(root=root, artifacts=tuple(artifacts)))


def classify_artifacts(
    artifacts: LocalArtifactSet,
    *,
    include_dependencies: bool,
    budget_bytes: int = API_PAYLOAD_BUDGET_BYTES,
) -> ArtifactSizeClass:
    """Decide whether the release tree fits through the hosting API.

    A committed dependency tree is always too large.
    """
    if include_dependencies:
        return "large"
    if artifacts.total_bytes > budget_bytes:
        return "large"
    return "small"
