from __future__ import annotations

import base64
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from time import sleep

from actpub.core.config import RunConfig
from actpub.core.result import Err, Ok, Result
from actpub.core.structured import as_obj_list, as_str_dict, get_bool, get_str, get_table
from actpub.platform.process import ProcessError
from actpub.platform.process import run as run_process
from actpub.services.release.errors import ReleaseError
from actpub.services.release.model import RemoteTreeEntry
from actpub.services.release.timeouts import (
    GH_READ_RETRY_ATTEMPTS,
    GH_READ_RETRY_DELAY_SECONDS,
    GH_TIMEOUT_SECONDS,
    GH_UPLOAD_TIMEOUT_SECONDS,
)


@dataclass(frozen=True, slots=True)
class GhSession:
    """Everything needed to address one repository through `gh api`."""

    workspace_root: Path
    repo: str  # owner/name
    token: str = field(repr=False)
    hostname: str | None = None
    base_env: Mapping[str, str] = field(default_factory=dict[str, str], repr=False)

    @classmethod
    def from_config(cls, config: RunConfig, *, base_env: Mapping[str, str]) -> GhSession:
        return cls(
            workspace_root=config.workspace_root,
            repo=config.repository,
            token=config.token,
            hostname=config.api_hostname,
            base_env=dict(base_env),
        )

    def env(self) -> dict[str, str]:
        env = dict(self.base_env)
        env["GH_TOKEN"] = self.token
        env["GH_PROMPT_DISABLED"] = "1"
        if self.hostname is not None:
            # gh reads only the enterprise token for non-github.com hosts.
            env["GH_HOST"] = self.hostname
            env["GH_ENTERPRISE_TOKEN"] = self.token
        return env

    def api_cmd(self, *args: str) -> list[str]:
        cmd = ["gh", "api"]
        if self.hostname is not None:
            cmd += ["--hostname", self.hostname]
        cmd += list(args)
        return cmd


def _is_transient_gh_error(error: ProcessError) -> bool:
    text = f"{error.stderr}\n{error.stdout}".lower()
    markers = (
        "timed out",
        "timeout",
        "connection reset",
        "connection refused",
        "temporarily unavailable",
        "service unavailable",
        "bad gateway",
        "gateway timeout",
        "network is unreachable",
        "http 429",
        "http 500",
        "http 502",
        "http 503",
        "http 504",
    )
    return any(marker in text for marker in markers)


def _api_error(action: str, error: ProcessError) -> ReleaseError:
    return ReleaseError(
        kind="remote_api",
        message=f"{action} failed: {error.detail}",
        hint=" ".join(error.command[:4]),
    )


def run_gh_read(
    *,
    session: GhSession,
    args: list[str],
    action: str,
    retry_attempts: int = GH_READ_RETRY_ATTEMPTS,
) -> Result[str, ReleaseError]:
    """Run an idempotent `gh api` read, retrying transient failures."""
    cmd = session.api_cmd(*args)
    attempts = max(1, retry_attempts)
    for attempt in range(attempts):
        result = run_process(
            cmd, cwd=session.workspace_root, env=session.env(), timeout=GH_TIMEOUT_SECONDS
        )
        if isinstance(result, Ok):
            return result

        error = result.error
        if attempt < attempts - 1 and _is_transient_gh_error(error):
            sleep(GH_READ_RETRY_DELAY_SECONDS * (attempt + 1))
            continue

        return Err(_api_error(action, error))

    return Err(ReleaseError(kind="remote_api", message=f"{action} failed"))


def gh_api_json(
    *,
    session: GhSession,
    endpoint: str,
    method: str = "GET",
    payload: Mapping[str, object] | None = None,
) -> Result[object, ReleaseError]:
    """Call one REST endpoint and decode its JSON response.

    Only GET requests are retried; writes run exactly once.
    """
    action = f"{method} {endpoint}"
    if method == "GET" and payload is None:
        raw = run_gh_read(session=session, args=[endpoint], action=action)
    else:
        args = ["--method", method, endpoint]
        body: str | None = None
        if payload is not None:
            args += ["--input", "-"]
            body = json.dumps(payload)
        result = run_process(
            session.api_cmd(*args),
            cwd=session.workspace_root,
            env=session.env(),
            timeout=GH_UPLOAD_TIMEOUT_SECONDS,
            input_text=body,
        )
        raw = result.map_err(lambda e: _api_error(action, e))
    if isinstance(raw, Err):
        return raw

    text = raw.value.strip()
    if not text:
        return Ok(None)
    try:
        obj: object = json.loads(text)
    except json.JSONDecodeError as e:
        return Err(
            ReleaseError(
                kind="remote_api",
                message=f"{action} returned invalid JSON: {e}",
            )
        )
    return Ok(obj)


def gh_api_lines(*, session: GhSession, endpoint: str, jq: str) -> Result[list[str], ReleaseError]:
    """Read every page of a list endpoint, projected to one string per item."""
    raw = run_gh_read(
        session=session,
        args=["--paginate", endpoint, "--jq", jq],
        action=f"GET {endpoint}",
    )
    if isinstance(raw, Err):
        return raw
    return Ok([line.strip() for line in raw.value.splitlines() if line.strip()])


def _expect_field(obj: object, key: str, *, action: str) -> Result[str, ReleaseError]:
    data = as_str_dict(obj)
    value = get_str(data, key) if data is not None else None
    if value is None:
        return Err(ReleaseError(kind="remote_api", message=f"{action}: missing {key} in response"))
    return Ok(value)


def _repo(session: GhSession, path: str) -> str:
    return f"repos/{session.repo}/{path}"


def list_tag_names(*, session: GhSession) -> Result[list[str], ReleaseError]:
    return gh_api_lines(
        session=session,
        endpoint=_repo(session, "tags?per_page=100"),
        jq=".[].name",
    )


def list_release_tags(*, session: GhSession) -> Result[list[str], ReleaseError]:
    """Release tag names, newest first as returned by the host."""
    return gh_api_lines(
        session=session,
        endpoint=_repo(session, "releases?per_page=100"),
        jq=".[].tag_name",
    )


def get_branch_tip(*, session: GhSession, branch: str) -> Result[str, ReleaseError]:
    endpoint = _repo(session, f"git/ref/heads/{branch}")
    obj = gh_api_json(session=session, endpoint=endpoint)
    if isinstance(obj, Err):
        return obj
    data = as_str_dict(obj.value)
    target = get_table(data, "object") if data is not None else None
    return _expect_field(target, "sha", action=f"GET {endpoint}")


def get_commit_tree(*, session: GhSession, commit_sha: str) -> Result[str, ReleaseError]:
    endpoint = _repo(session, f"git/commits/{commit_sha}")
    obj = gh_api_json(session=session, endpoint=endpoint)
    if isinstance(obj, Err):
        return obj
    data = as_str_dict(obj.value)
    tree = get_table(data, "tree") if data is not None else None
    return _expect_field(tree, "sha", action=f"GET {endpoint}")


@dataclass(frozen=True, slots=True)
class GhTree:
    entries: list[RemoteTreeEntry]
    truncated: bool


def get_tree(
    *, session: GhSession, tree_sha: str, recursive: bool = True
) -> Result[GhTree, ReleaseError]:
    suffix = "?recursive=1" if recursive else ""
    endpoint = _repo(session, f"git/trees/{tree_sha}{suffix}")
    obj = gh_api_json(session=session, endpoint=endpoint)
    if isinstance(obj, Err):
        return obj

    data = as_str_dict(obj.value)
    items = as_obj_list(data.get("tree")) if data is not None else None
    if data is None or items is None:
        return Err(ReleaseError(kind="remote_api", message=f"unexpected tree payload: {tree_sha}"))

    entries: list[RemoteTreeEntry] = []
    for item in items:
        d = as_str_dict(item)
        if d is None:
            continue
        path = get_str(d, "path")
        mode = get_str(d, "mode")
        kind = get_str(d, "type")
        sha = get_str(d, "sha")
        if path is None or mode is None or kind is None or sha is None:
            continue
        entries.append(RemoteTreeEntry(path=path, mode=mode, type=kind, sha=sha))

    return Ok(GhTree(entries=entries, truncated=get_bool(data, "truncated") or False))


def create_blob(*, session: GhSession, content: bytes) -> Result[str, ReleaseError]:
    endpoint = _repo(session, "git/blobs")
    obj = gh_api_json(
        session=session,
        endpoint=endpoint,
        method="POST",
        payload={"content": base64.b64encode(content).decode("ascii"), "encoding": "base64"},
    )
    if isinstance(obj, Err):
        return obj
    return _expect_field(obj.value, "sha", action=f"POST {endpoint}")


def create_tree(
    *,
    session: GhSession,
    base_tree: str,
    entries: list[dict[str, object]],
) -> Result[str, ReleaseError]:
    endpoint = _repo(session, "git/trees")
    obj = gh_api_json(
        session=session,
        endpoint=endpoint,
        method="POST",
        payload={"base_tree": base_tree, "tree": entries},
    )
    if isinstance(obj, Err):
        return obj
    return _expect_field(obj.value, "sha", action=f"POST {endpoint}")


def create_commit(
    *,
    session: GhSession,
    message: str,
    tree: str,
    parents: list[str],
) -> Result[str, ReleaseError]:
    endpoint = _repo(session, "git/commits")
    obj = gh_api_json(
        session=session,
        endpoint=endpoint,
        method="POST",
        payload={"message": message, "tree": tree, "parents": parents},
    )
    if isinstance(obj, Err):
        return obj
    return _expect_field(obj.value, "sha", action=f"POST {endpoint}")


def create_ref(*, session: GhSession, ref: str, sha: str) -> Result[None, ReleaseError]:
    """Create `ref` (e.g. `tags/v1`), failing if it already exists."""
    obj = gh_api_json(
        session=session,
        endpoint=_repo(session, "git/refs"),
        method="POST",
        payload={"ref": f"refs/{ref}", "sha": sha},
    )
    if isinstance(obj, Err):
        return obj
    return Ok(None)


def update_ref(
    *, session: GhSession, ref: str, sha: str, force: bool
) -> Result[None, ReleaseError]:
    obj = gh_api_json(
        session=session,
        endpoint=_repo(session, f"git/refs/{ref}"),
        method="PATCH",
        payload={"sha": sha, "force": force},
    )
    if isinstance(obj, Err):
        return obj
    return Ok(None)


def delete_ref(*, session: GhSession, ref: str) -> Result[None, ReleaseError]:
    obj = gh_api_json(session=session, endpoint=_repo(session, f"git/refs/{ref}"), method="DELETE")
    if isinstance(obj, Err):
        return obj
    return Ok(None)


def create_tag_object(
    *, session: GhSession, tag: str, message: str, commit_sha: str
) -> Result[str, ReleaseError]:
    endpoint = _repo(session, "git/tags")
    obj = gh_api_json(
        session=session,
        endpoint=endpoint,
        method="POST",
        payload={"tag": tag, "message": message, "object": commit_sha, "type": "commit"},
    )
    if isinstance(obj, Err):
        return obj
    return _expect_field(obj.value, "sha", action=f"POST {endpoint}")


def generate_release_notes(
    *, session: GhSession, tag: str, previous_tag: str | None
) -> Result[str, ReleaseError]:
    payload: dict[str, object] = {"tag_name": tag}
    if previous_tag is not None:
        payload["previous_tag_name"] = previous_tag

    endpoint = _repo(session, "releases/generate-notes")
    obj = gh_api_json(session=session, endpoint=endpoint, method="POST", payload=payload)
    if isinstance(obj, Err):
        return obj

    data = as_str_dict(obj.value)
    body = data.get("body") if data is not None else None
    if not isinstance(body, str):
        return Err(ReleaseError(kind="remote_api", message=f"POST {endpoint}: missing body"))
    return Ok(body)


def create_release(
    *,
    session: GhSession,
    tag: str,
    name: str,
    body: str,
    draft: bool,
) -> Result[str, ReleaseError]:
    """Create a release record and return its html url."""
    endpoint = _repo(session, "releases")
    obj = gh_api_json(
        session=session,
        endpoint=endpoint,
        method="POST",
        payload={"tag_name": tag, "name": name, "body": body, "draft": draft},
    )
    if isinstance(obj, Err):
        return obj
    return _expect_field(obj.value, "html_url", action=f"POST {endpoint}")
