"""Tests for git/repository.py."""

from __future__ import annotations

import base64
import os
import shutil
import subprocess
import sys
from pathlib import Path

import pytest

from actpub.core.result import Err, Ok, Result
from actpub.git import repository as repo_mod
from actpub.git.repository import BOT_EMAIL, BOT_NAME, Repository
from actpub.platform.process import ProcessError


class _Git:
    """Fake `run_process` recording git invocations."""

    def __init__(self, *outputs: Result[str, ProcessError]) -> None:
        self.outputs = list(outputs)
        self.cmds: list[list[str]] = []
        self.inputs: list[str | None] = []

    def __call__(
        self,
        cmd: list[str],
        *,
        cwd: Path,
        timeout: float | None = None,
        input_text: str | None = None,
    ) -> Result[str, ProcessError]:
        del cwd
        del timeout
        self.cmds.append(cmd)
        self.inputs.append(input_text)
        if self.outputs:
            return self.outputs.pop(0)
        return Ok("")

    def args(self, index: int = -1) -> list[str]:
        """Git arguments after the global options."""
        cmd = self.cmds[index]
        i = 0
        while cmd[i] in {"git", "--literal-pathspecs"} or cmd[i] == "-c":
            i += 2 if cmd[i] == "-c" else 1
        return cmd[i:]


@pytest.fixture
def git(monkeypatch: pytest.MonkeyPatch) -> _Git:
    fake = _Git()
    monkeypatch.setattr(repo_mod, "run_process", fake)
    return fake


def test_identity_and_literal_pathspecs(tmp_path: Path, git: _Git) -> None:
    Repository(tmp_path).create_branch("releases/v1.0.0")

    cmd = git.cmds[0]
    assert cmd[:2] == ["git", "--literal-pathspecs"]
    assert f"user.name={BOT_NAME}" in cmd
    assert f"user.email={BOT_EMAIL}" in cmd
    assert git.args() == ["checkout", "-b", "releases/v1.0.0"]


def test_auth_header_only_for_network_commands(tmp_path: Path, git: _Git) -> None:
    repo = Repository(tmp_path, token="t0ken", host="ghe.example.com")
    repo.tag("v1", "abc", message="v1")
    repo.push(["refs/tags/v1"], force=True, atomic=True)

    assert not any("extraheader" in part for part in git.cmds[0])
    basic = base64.b64encode(b"x-access-token:t0ken").decode("ascii")
    assert (
        f"http.https://ghe.example.com/.extraheader=AUTHORIZATION: basic {basic}" in git.cmds[1]
    )
    assert git.args() == ["push", "--force", "--atomic", "origin", "refs/tags/v1"]


def test_tag_annotated_and_lightweight(tmp_path: Path, git: _Git) -> None:
    repo = Repository(tmp_path)
    repo.tag("v1.2.3", "abc", message="v1.2.3")
    repo.tag("v1.2", "abc", message=None)

    assert git.args(0) == ["tag", "-f", "-a", "-m", "v1.2.3", "v1.2.3", "abc"]
    assert git.args(1) == ["tag", "-f", "v1.2", "abc"]


def test_head_sha_strips(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    fake = _Git(Ok("abc123\n"))
    monkeypatch.setattr(repo_mod, "run_process", fake)

    assert Repository(tmp_path).head_sha() == Ok("abc123")


def test_commit_returns_new_head(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    fake = _Git(Ok("[releases/v1.0.0 def456] chore"), Ok("def456\n"))
    monkeypatch.setattr(repo_mod, "run_process", fake)

    result = Repository(tmp_path).commit("chore: prepare v1.0.0 release")

    assert result == Ok("def456")
    assert fake.args(0) == [
        "commit",
        "--allow-empty",
        "--no-verify",
        "-m",
        "chore: prepare v1.0.0 release",
    ]


def test_paths_sent_nul_separated(tmp_path: Path, git: _Git) -> None:
    repo = Repository(tmp_path)
    repo.remove_cached(["dist/a b.js", ".github/workflows/ci.yml"])
    repo.add_force(["dist/new.js"])
    repo.add_force([])

    assert git.args(0)[:3] == ["rm", "-r", "--cached"]
    assert git.inputs[0] == "dist/a b.js\0.github/workflows/ci.yml"
    assert git.args(1) == ["add", "-f", "--pathspec-from-file=-", "--pathspec-file-nul"]
    assert git.inputs[1] == "dist/new.js"
    assert len(git.cmds) == 2


def test_ls_tree_parses_nul_records(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    out = (
        "100644 blob aaa\tdist/index.js\0"
        "100644 blob bbb\tdir with space/file\twith tab\0"
        "160000 commit ccc\tvendor/sub\0"
    )
    fake = _Git(Ok(out))
    monkeypatch.setattr(repo_mod, "run_process", fake)

    result = Repository(tmp_path).ls_tree("HEAD")

    assert isinstance(result, Ok)
    assert [(e.type, e.path) for e in result.value] == [
        ("blob", "dist/index.js"),
        ("blob", "dir with space/file\twith tab"),
        ("commit", "vendor/sub"),
    ]
    assert fake.args() == ["ls-tree", "-r", "-z", "--full-tree", "HEAD"]


def test_failure_maps_to_git_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    fake = _Git(
        Err(
            ProcessError(
                command=("git", "push"),
                returncode=128,
                stdout="",
                stderr="fatal: unable to access\n",
            )
        )
    )
    monkeypatch.setattr(repo_mod, "run_process", fake)

    result = Repository(tmp_path).push(["refs/tags/v1"])

    assert isinstance(result, Err)
    assert result.error.command == "push"
    assert result.error.message == "fatal: unable to access"
    assert result.error.returncode == 128



requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def _init_repo(path: Path) -> None:
    subprocess.run(["git", "init", "-q", str(path)], check=True, capture_output=True)


@requires_git
def test_token_header_replaces_checkout_header(tmp_path: Path) -> None:
    _init_repo(tmp_path)
    key = "http.https://github.com/.extraheader"
    checkout = "AUTHORIZATION: basic Y2hlY2tvdXQ="
    subprocess.run(
        ["git", "config", "--local", key, checkout], cwd=tmp_path, check=True, capture_output=True
    )

    result = Repository(tmp_path, token="t0ken")._git(["config", "--get-all", key], network=True)

    assert isinstance(result, Ok)
    basic = base64.b64encode(b"x-access-token:t0ken").decode("ascii")
    # Values apply in order; the empty one resets the list before ours.
    assert result.value.splitlines() == [checkout, "", f"AUTHORIZATION: basic {basic}"]


@requires_git
@pytest.mark.skipif(sys.platform != "linux", reason="needs byte file names")
def test_non_utf8_file_name_round_trips(tmp_path: Path) -> None:
    _init_repo(tmp_path)
    (tmp_path / "dist").mkdir()
    raw = os.path.join(os.fsencode(tmp_path), b"dist", b"caf\xe9.js")
    with open(raw, "wb") as fh:
        fh.write(b"module.exports = 1;\n")
    repo = Repository(tmp_path)
    name = "dist/caf\udce9.js"

    assert repo.add_force([name]) == Ok(None)
    assert isinstance(repo.commit("initial"), Ok)
    listed = repo.ls_tree("HEAD")

    assert isinstance(listed, Ok)
    assert [e.path for e in listed.value] == [name]
    assert repo.remove_cached([name]) == Ok(None)
    staged = subprocess.run(
        ["git", "ls-files", "-z"], cwd=tmp_path, check=True, capture_output=True
    )
    assert staged.stdout == b""
