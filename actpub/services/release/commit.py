"""Release commit synthesis.

A release commit is built on top of the release branch tip through one of two
strategies that share the same contract:

- ApiCommitStrategy: tree surgery through the hosting API. The resulting
  commit is created server side (and signed by the host).
- CheckoutCommitStrategy: staging in the local working copy plus a native
  commit. Used when the release tree is too large for API payloads, e.g. when
  a dependency directory is committed.

Both strategies consume the same TreePatch from `reconcile_tree`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from actpub.core.result import Err, Ok, Result
from actpub.git.repository import Repository
from actpub.output.console import ConsoleProtocol, Style
from actpub.services.release.errors import Degraded, ReleaseError, transport_error
from actpub.services.release.model import (
    ArtifactSizeClass,
    LocalArtifactSet,
    ReleaseIdentity,
    RemoteTreeEntry,
    RemoteTreeSnapshot,
    TreePatch,
)
from actpub.services.release.reconcile import TreeLayout, reconcile_tree
from actpub.services.release.remote import HostingApi
from actpub.services.release.tags import ApiTagWriter, GitTagWriter, TagWriter


class CommitStrategy(Protocol):
    name: str

    def prepare_branch(self, identity: ReleaseIdentity) -> Result[str, ReleaseError]:
        """Make the release branch visible to this strategy; return its tip."""
        ...

    def load_snapshot(self, tip: str) -> Result[RemoteTreeSnapshot, Degraded]: ...

    def apply(
        self, *, identity: ReleaseIdentity, tip: str, patch: TreePatch
    ) -> Result[str, ReleaseError]:
        """Create the release commit with `tip` as its only parent."""
        ...

    def retain_branch(
        self, identity: ReleaseIdentity, commit_sha: str
    ) -> Result[None, ReleaseError]: ...

    def discard_branch(self, identity: ReleaseIdentity) -> Result[None, Degraded]: ...

    def tag_writer(self) -> TagWriter: ...


def _branch_ref(identity: ReleaseIdentity) -> str:
    return f"heads/{identity.branch_name}"


class ApiCommitStrategy:
    name = "api"

    def __init__(self, remote: HostingApi, repository: Repository) -> None:
        self._remote = remote
        self._repository = repository

    def prepare_branch(self, identity: ReleaseIdentity) -> Result[str, ReleaseError]:
        ref = f"refs/heads/{identity.branch_name}"
        pushed = self._repository.push([f"{identity.base_commit_id}:{ref}"], force=True)
        if isinstance(pushed, Err):
            return Err(transport_error(f"failed to push {identity.branch_name}", pushed.error))
        return self._remote.get_branch_tip(identity.branch_name)

    def load_snapshot(self, tip: str) -> Result[RemoteTreeSnapshot, Degraded]:
        tree = self._remote.get_commit_tree(tip)
        if isinstance(tree, Err):
            return Err(Degraded(step="remote tree", reason=tree.error.message))
        listing = self._remote.get_tree(tree.value, recursive=True)
        if isinstance(listing, Err):
            return Err(Degraded(step="remote tree", reason=listing.error.message))
        return Ok(
            RemoteTreeSnapshot.from_entries(
                tip, listing.value.entries, truncated=listing.value.truncated
            )
        )

    def apply(
        self, *, identity: ReleaseIdentity, tip: str, patch: TreePatch
    ) -> Result[str, ReleaseError]:
        base_tree = self._remote.get_commit_tree(tip)
        if isinstance(base_tree, Err):
            return base_tree
        tree = self._remote.create_tree(base_tree.value, patch.operations)
        if isinstance(tree, Err):
            return tree
        return self._remote.create_commit(identity.commit_message, tree.value, [tip])

    def retain_branch(
        self, identity: ReleaseIdentity, commit_sha: str
    ) -> Result[None, ReleaseError]:
        return self._remote.update_ref(_branch_ref(identity), commit_sha, force=False)

    def discard_branch(self, identity: ReleaseIdentity) -> Result[None, Degraded]:
        deleted = self._remote.delete_ref(_branch_ref(identity))
        if isinstance(deleted, Err):
            return Err(Degraded(step="branch cleanup", reason=deleted.error.message))
        return Ok(None)

    def tag_writer(self) -> TagWriter:
        return ApiTagWriter(self._remote)


class CheckoutCommitStrategy:
    name = "checkout"

    def __init__(
        self,
        repository: Repository,
        *,
        layout: TreeLayout,
        include_dependencies: bool,
    ) -> None:
        self._repository = repository
        self._layout = layout
        self._include_dependencies = include_dependencies

    def prepare_branch(self, identity: ReleaseIdentity) -> Result[str, ReleaseError]:
        # The release branch is the current local checkout.
        head = self._repository.head_sha()
        if isinstance(head, Err):
            return Err(transport_error("failed to read HEAD", head.error))
        return Ok(head.value)

    def load_snapshot(self, tip: str) -> Result[RemoteTreeSnapshot, Degraded]:
        listing = self._repository.ls_tree(tip)
        if isinstance(listing, Err):
            return Err(Degraded(step="checkout tree", reason=listing.error.message))
        entries = [
            RemoteTreeEntry(path=e.path, mode=e.mode, type=e.type, sha=e.sha)
            for e in listing.value
        ]
        return Ok(RemoteTreeSnapshot.from_entries(tip, entries))

    def apply(
        self, *, identity: ReleaseIdentity, tip: str, patch: TreePatch
    ) -> Result[str, ReleaseError]:
        removed = self._repository.remove_cached([op.path for op in patch.deletes])
        if isinstance(removed, Err):
            return Err(transport_error("git rm failed", removed.error))

        paths = [op.path for op in patch.upserts]
        if self._include_dependencies and (
            self._repository.path / self._layout.dependency_prefix
        ).is_dir():
            paths.append(self._layout.dependency_prefix)
        added = self._repository.add_force(paths)
        if isinstance(added, Err):
            return Err(transport_error("git add failed", added.error))

        committed = self._repository.commit(identity.commit_message)
        if isinstance(committed, Err):
            return Err(transport_error("git commit failed", committed.error))
        return Ok(committed.value)

    def retain_branch(
        self, identity: ReleaseIdentity, commit_sha: str
    ) -> Result[None, ReleaseError]:
        ref = f"refs/heads/{identity.branch_name}"
        pushed = self._repository.push([f"{commit_sha}:{ref}"])
        if isinstance(pushed, Err):
            return Err(transport_error(f"failed to push {identity.branch_name}", pushed.error))
        return Ok(None)

    def discard_branch(self, identity: ReleaseIdentity) -> Result[None, Degraded]:
        # Never pushed; nothing to clean up remotely.
        return Ok(None)

    def tag_writer(self) -> TagWriter:
        return GitTagWriter(self._repository)


def select_commit_strategy(
    size_class: ArtifactSizeClass,
    *,
    remote: HostingApi,
    repository: Repository,
    layout: TreeLayout,
    include_dependencies: bool,
) -> CommitStrategy:
    match size_class:
        case "small":
            return ApiCommitStrategy(remote, repository)
        case "large":
            return CheckoutCommitStrategy(
                repository, layout=layout, include_dependencies=include_dependencies
            )


@dataclass(frozen=True, slots=True)
class BuiltCommit:
    sha: str
    patch: TreePatch
    degraded: Degraded | None = None


def build_release_commit(
    *,
    strategy: CommitStrategy,
    identity: ReleaseIdentity,
    artifacts: LocalArtifactSet,
    layout: TreeLayout,
    include_artifacts: bool,
    console: ConsoleProtocol,
) -> Result[BuiltCommit, ReleaseError]:
    """Reconcile the branch tree against the artifacts and commit the result.

    A snapshot that cannot be loaded is treated as empty: nothing can be
    deleted, but the release still gets every artifact.
    """
    console.info(f"Creating release commit ({strategy.name})")
    tip = strategy.prepare_branch(identity)
    if isinstance(tip, Err):
        return tip
    console.print(f"branch {identity.branch_name} at {tip.value}", Style.DIM)

    degraded: Degraded | None = None
    loaded = strategy.load_snapshot(tip.value)
    if isinstance(loaded, Err):
        degraded = loaded.error
        console.warning(f"Could not read base tree, assuming empty: {degraded.reason}")
        snapshot = RemoteTreeSnapshot.empty(tip.value)
    else:
        snapshot = loaded.value
        if snapshot.truncated:
            console.warning("Base tree listing was truncated; stale files may remain")

    patch = reconcile_tree(
        snapshot, artifacts, layout=layout, include_artifacts=include_artifacts
    )
    console.print(
        f"tree patch: {len(patch.deletes)} delete(s), {len(patch.upserts)} upsert(s)",
        Style.DIM,
    )

    sha = strategy.apply(identity=identity, tip=tip.value, patch=patch)
    if isinstance(sha, Err):
        return sha
    console.info(f"Created release commit {sha.value}")
    return Ok(BuiltCommit(sha=sha.value, patch=patch, degraded=degraded))
