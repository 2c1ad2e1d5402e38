from __future__ import annotations

from pathlib import Path

import pytest

from actpub.core.result import Err, Ok, Result
from actpub.output.console import MockConsole, Style
from actpub.platform.process import ProcessError
from actpub.services.release import artifacts as artifacts_mod
from actpub.services.release.artifacts import (
    classify_artifacts,
    collect_artifacts,
    detect_install_command,
    run_build_command,
)
from actpub.services.release.model import LocalArtifact, LocalArtifactSet


def test_collect_walks_sorted_with_posix_paths(tmp_path: Path) -> None:
    dist = tmp_path / "dist"
    (dist / "lib" / "nested").mkdir(parents=True)
    (dist / "index.js").write_bytes(b"main")
    (dist / "lib" / "b.js").write_bytes(b"b")
    (dist / "lib" / "a.js").write_bytes(b"a")
    (dist / "lib" / "nested" / "c.map").write_bytes(b"\x00\xff")

    result = collect_artifacts(dist)
    assert isinstance(result, Ok)
    assert [a.path for a in result.value.artifacts] == [
        "index.js",
        "lib/a.js",
        "lib/b.js",
        "lib/nested/c.map",
    ]
    assert result.value.artifacts[-1].content == b"\x00\xff"
    assert result.value.total_bytes == 8


def test_collect_empty_directory(tmp_path: Path) -> None:
    (tmp_path / "dist").mkdir()

    result = collect_artifacts(tmp_path / "dist")
    assert isinstance(result, Ok)
    assert len(result.value) == 0


def test_collect_missing_directory(tmp_path: Path) -> None:
    result = collect_artifacts(tmp_path / "dist")
    assert isinstance(result, Err)
    assert result.error.kind == "transport"
    assert "artifact directory not found" in result.error.message


def _set(size: int) -> LocalArtifactSet:
    return LocalArtifactSet(root=Path("dist"), artifacts=(LocalArtifact("a.js", b"x" * size),))


def test_classify_small_and_large() -> None:
    assert classify_artifacts(_set(10), include_dependencies=False, budget_bytes=10) == "small"
    assert classify_artifacts(_set(11), include_dependencies=False, budget_bytes=10) == "large"


def test_dependencies_always_large() -> None:
    assert classify_artifacts(_set(0), include_dependencies=True) == "large"


@pytest.mark.parametrize(
    ("lockfile", "expected"),
    [
        ("pnpm-lock.yaml", "pnpm install --prod"),
        ("yarn.lock", "yarn install --production"),
        ("package-lock.json", "npm ci --production"),
    ],
)
def test_detect_install_command(tmp_path: Path, lockfile: str, expected: str) -> None:
    (tmp_path / lockfile).write_text("", encoding="utf-8")
    assert detect_install_command(tmp_path) == expected


def test_build_command_is_split_and_echoed(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    seen: dict[str, object] = {}

    def fake_run_silent(
        cmd: list[str],
        cwd: Path,
        env: dict[str, str] | None = None,
    ) -> Result[None, ProcessError]:
        seen["cmd"] = cmd
        seen["cwd"] = cwd
        return Ok(None)

    monkeypatch.setattr(artifacts_mod, "run_silent", fake_run_silent)
    console = MockConsole()

    result = run_build_command(
        "npm run build -- --mode 'prod build'", cwd=tmp_path, console=console
    )

    assert isinstance(result, Ok)
    assert seen["cmd"] == ["npm", "run", "build", "--", "--mode", "prod build"]
    assert seen["cwd"] == tmp_path
    assert console.outputs[0].style == Style.DIM


def test_build_command_failure_is_transport_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    def fake_run_silent(
        cmd: list[str],
        cwd: Path,
        env: dict[str, str] | None = None,
    ) -> Result[None, ProcessError]:
        return Err(ProcessError(command=tuple(cmd), returncode=2, stdout="", stderr=""))

    monkeypatch.setattr(artifacts_mod, "run_silent", fake_run_silent)

    result = run_build_command("npm run build", cwd=tmp_path, console=MockConsole())

    assert isinstance(result, Err)
    assert result.error.kind == "transport"
    assert result.error.message.startswith("command failed: npm run build")


def test_unbalanced_quotes_are_config_errors(tmp_path: Path) -> None:
    result = run_build_command("npm run 'build", cwd=tmp_path, console=MockConsole())
    assert isinstance(result, Err)
    assert result.error.kind == "config"
