"""Git working copy abstraction.

`Repository` is the local version-control transport of a release run: it
creates the release branch, lists the committed tree, stages reconciled paths,
commits, tags and pushes. All operations return Result types.

Usage:
    repo = Repository(Path("."), token=token)
    match repo.head_sha():
        case Ok(sha):
            print(sha)
        case Err(e):
            print(f"git failed: {e.message}")
"""

from __future__ import annotations

import base64
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from actpub.core.result import Err, Ok, Result
from actpub.platform.process import ProcessError
from actpub.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 60.0
_GIT_NETWORK_TIMEOUT_SECONDS = 5 * 60.0

BOT_NAME = "github-actions[bot]"
BOT_EMAIL = "github-actions[bot]@users.noreply.github.com"

__all__ = [
    "BOT_EMAIL",
    "BOT_NAME",
    "GitError",
    "LsTreeEntry",
    "Repository",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed
        message: Error message (stderr when available)
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class LsTreeEntry:
    """One line of `git ls-tree -r`."""

    mode: str
    type: str
    sha: str
    path: str


def _parse_ls_tree(stdout: str) -> list[LsTreeEntry]:
    entries: list[LsTreeEntry] = []
    for record in stdout.split("\0"):
        if not record:
            continue
        meta, _, path = record.partition("\t")
        parts = meta.split()
        if len(parts) != 3 or not path:
            continue
        mode, kind, sha = parts
        entries.append(LsTreeEntry(mode=mode, type=kind, sha=sha, path=path))
    return entries


class Repository:
    """A local checkout driven through the git CLI.

    Attributes:
        path: Repository root
    """

    def __init__(
        self,
        path: Path,
        *,
        token: str | None = None,
        host: str = "github.com",
        user_name: str = BOT_NAME,
        user_email: str = BOT_EMAIL,
        remote: str = "origin",
    ) -> None:
        self.path = path
        self.remote = remote
        self._token = token
        self._host = host
        self._identity = (f"user.name={user_name}", f"user.email={user_email}")

    def _auth_config(self) -> list[str]:
        if not self._token:
            return []
        basic = base64.b64encode(f"x-access-token:{self._token}".encode()).decode("ascii")
        key = f"http.https://{self._host}/.extraheader"
        # An empty value clears headers already configured for the host (actions/checkout).
        return ["-c", f"{key}=", "-c", f"{key}=AUTHORIZATION: basic {basic}"]

    def _run(
        self,
        args: list[str],
        *,
        network: bool = False,
        input_text: str | None = None,
    ) -> Result[str, ProcessError]:
        cmd = ["git", "--literal-pathspecs"]
        for item in self._identity:
            cmd += ["-c", item]
        if network:
            cmd += self._auth_config()
        cmd += args
        timeout = _GIT_NETWORK_TIMEOUT_SECONDS if network else _GIT_TIMEOUT_SECONDS
        return run_process(cmd, cwd=self.path, timeout=timeout, input_text=input_text)

    def _git(
        self,
        args: list[str],
        *,
        network: bool = False,
        input_text: str | None = None,
    ) -> Result[str, GitError]:
        result = self._run(args, network=network, input_text=input_text)
        if isinstance(result, Err):
            e = result.error
            return Err(
                GitError(
                    command=args[0],
                    message=e.stderr.strip() or f"git {args[0]} failed",
                    returncode=e.returncode,
                )
            )
        return result

    def head_sha(self) -> Result[str, GitError]:
        result = self._git(["rev-parse", "HEAD"])
        if isinstance(result, Err):
            return result
        return Ok(result.value.strip())

    def create_branch(self, name: str) -> Result[None, GitError]:
        """Create `name` from HEAD and switch to it."""
        result = self._git(["checkout", "-b", name])
        if isinstance(result, Err):
            return result
        return Ok(None)

    def ls_tree(self, ref: str) -> Result[list[LsTreeEntry], GitError]:
        """List every file of `ref` recursively, repository-relative."""
        result = self._git(["ls-tree", "-r", "-z", "--full-tree", ref])
        if isinstance(result, Err):
            return result
        return Ok(_parse_ls_tree(result.value))

    def remove_cached(self, paths: Sequence[str]) -> Result[None, GitError]:
        """Unstage `paths` from the index, leaving the working tree alone."""
        if not paths:
            return Ok(None)
        result = self._git(
            [
                "rm",
                "-r",
                "--cached",
                "--quiet",
                "--ignore-unmatch",
                "--pathspec-from-file=-",
                "--pathspec-file-nul",
            ],
            input_text="\0".join(paths),
        )
        if isinstance(result, Err):
            return result
        return Ok(None)

    def add_force(self, paths: Sequence[str]) -> Result[None, GitError]:
        """Stage `paths` even when they are ignored."""
        if not paths:
            return Ok(None)
        result = self._git(
            ["add", "-f", "--pathspec-from-file=-", "--pathspec-file-nul"],
            input_text="\0".join(paths),
        )
        if isinstance(result, Err):
            return result
        return Ok(None)

    def commit(self, message: str) -> Result[str, GitError]:
        """Commit the index and return the new HEAD sha.

        Empty commits are allowed: a re-run with identical artifacts still
        produces exactly one release commit.
        """
        result = self._git(["commit", "--allow-empty", "--no-verify", "-m", message])
        if isinstance(result, Err):
            return result
        return self.head_sha()

    def tag(self, name: str, target: str, *, message: str | None) -> Result[None, GitError]:
        """Force-create a tag; annotated when `message` is given."""
        args = ["tag", "-f"]
        if message is not None:
            args += ["-a", "-m", message]
        args += [name, target]
        result = self._git(args)
        if isinstance(result, Err):
            return result
        return Ok(None)

    def push(
        self,
        refspecs: Sequence[str],
        *,
        force: bool = False,
        atomic: bool = False,
    ) -> Result[None, GitError]:
        args = ["push"]
        if force:
            args.append("--force")
        if atomic:
            args.append("--atomic")
        args += [self.remote, *refspecs]
        result = self._git(args, network=True)
        if isinstance(result, Err):
            return result
        return Ok(None)
