"""Hosting API seen by the release flow.

`HostingApi` is the only view of the remote repository that the commit
builder, tag publisher, notes and orchestrator get. `GitHubRemote` implements
it on top of `gh api`; tests use an in-memory implementation.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from actpub.core.result import Err, Ok, Result
from actpub.services.release import gh
from actpub.services.release.errors import ReleaseError
from actpub.services.release.gh import GhSession, GhTree
from actpub.services.release.model import REGULAR_FILE_MODE, Delete, TreeOperation, Upsert


class HostingApi(Protocol):
    def list_tag_names(self) -> Result[list[str], ReleaseError]: ...

    def list_release_tags(self) -> Result[list[str], ReleaseError]: ...

    def get_branch_tip(self, branch: str) -> Result[str, ReleaseError]: ...

    def get_commit_tree(self, commit_sha: str) -> Result[str, ReleaseError]: ...

    def get_tree(self, tree_sha: str, *, recursive: bool) -> Result[GhTree, ReleaseError]: ...

    def create_tree(
        self, base_tree: str, operations: Sequence[TreeOperation]
    ) -> Result[str, ReleaseError]: ...

    def create_commit(
        self, message: str, tree: str, parents: list[str]
    ) -> Result[str, ReleaseError]: ...

    def create_ref(self, ref: str, sha: str) -> Result[None, ReleaseError]: ...

    def update_ref(self, ref: str, sha: str, *, force: bool) -> Result[None, ReleaseError]: ...

    def delete_ref(self, ref: str) -> Result[None, ReleaseError]: ...

    def create_tag_object(
        self, tag: str, message: str, commit_sha: str
    ) -> Result[str, ReleaseError]: ...

    def generate_release_notes(
        self, tag: str, previous_tag: str | None
    ) -> Result[str, ReleaseError]: ...

    def create_release(
        self, tag: str, name: str, body: str, *, draft: bool
    ) -> Result[str, ReleaseError]: ...


class GitHubRemote:
    """HostingApi backed by the GitHub REST API through the gh CLI."""

    def __init__(self, session: GhSession) -> None:
        self.session = session

    def list_tag_names(self) -> Result[list[str], ReleaseError]:
        return gh.list_tag_names(session=self.session)

    def list_release_tags(self) -> Result[list[str], ReleaseError]:
        return gh.list_release_tags(session=self.session)

    def get_branch_tip(self, branch: str) -> Result[str, ReleaseError]:
        return gh.get_branch_tip(session=self.session, branch=branch)

    def get_commit_tree(self, commit_sha: str) -> Result[str, ReleaseError]:
        return gh.get_commit_tree(session=self.session, commit_sha=commit_sha)

    def get_tree(self, tree_sha: str, *, recursive: bool) -> Result[GhTree, ReleaseError]:
        return gh.get_tree(session=self.session, tree_sha=tree_sha, recursive=recursive)

    def _tree_entry(self, op: TreeOperation) -> Result[dict[str, object], ReleaseError]:
        match op:
            case Delete(path=path):
                # A null sha removes a path that exists in the base tree.
                return Ok({"path": path, "mode": REGULAR_FILE_MODE, "type": "blob", "sha": None})
            case Upsert(path=path, content=content, mode=mode):
                try:
                    text = content.decode("utf-8")
                except UnicodeDecodeError:
                    blob = gh.create_blob(session=self.session, content=content)
                    if isinstance(blob, Err):
                        return blob
                    return Ok({"path": path, "mode": mode, "type": "blob", "sha": blob.value})
                return Ok({"path": path, "mode": mode, "type": "blob", "content": text})

    def create_tree(
        self, base_tree: str, operations: Sequence[TreeOperation]
    ) -> Result[str, ReleaseError]:
        entries: list[dict[str, object]] = []
        for op in operations:
            entry = self._tree_entry(op)
            if isinstance(entry, Err):
                return entry
            entries.append(entry.value)
        return gh.create_tree(session=self.session, base_tree=base_tree, entries=entries)

    def create_commit(
        self, message: str, tree: str, parents: list[str]
    ) -> Result[str, ReleaseError]:
        return gh.create_commit(session=self.session, message=message, tree=tree, parents=parents)

    def create_ref(self, ref: str, sha: str) -> Result[None, ReleaseError]:
        return gh.create_ref(session=self.session, ref=ref, sha=sha)

    def update_ref(self, ref: str, sha: str, *, force: bool) -> Result[None, ReleaseError]:
        return gh.update_ref(session=self.session, ref=ref, sha=sha, force=force)

    def delete_ref(self, ref: str) -> Result[None, ReleaseError]:
        return gh.delete_ref(session=self.session, ref=ref)

    def create_tag_object(
        self, tag: str, message: str, commit_sha: str
    ) -> Result[str, ReleaseError]:
        return gh.create_tag_object(
            session=self.session, tag=tag, message=message, commit_sha=commit_sha
        )

    def generate_release_notes(
        self, tag: str, previous_tag: str | None
    ) -> Result[str, ReleaseError]:
        return gh.generate_release_notes(session=self.session, tag=tag, previous_tag=previous_tag)

    def create_release(
        self, tag: str, name: str, body: str, *, draft: bool
    ) -> Result[str, ReleaseError]:
        return gh.create_release(session=self.session, tag=tag, name=name, body=body, draft=draft)
