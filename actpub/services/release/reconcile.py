"""Tree reconciliation.

Computes the operations that turn a base tree into the release tree:

- everything under the metadata prefix (CI configuration) is always removed
- when artifacts are included, every file under the managed prefix is removed
  and every local artifact is written back, so renamed or deleted artifacts
  never linger in the release commit
- every other path is left untouched

Deletes always come before upserts. A tree API merges same-path entries with
last-write-wins semantics, so a delete placed after an upsert of the same path
would drop the new file.
"""

from __future__ import annotations

from dataclasses import dataclass

from actpub.services.release.model import (
    Delete,
    LocalArtifactSet,
    RemoteTreeSnapshot,
    TreeOperation,
    TreePatch,
    Upsert,
)


@dataclass(frozen=True, slots=True)
class TreeLayout:
    managed_prefix: str = "dist"
    metadata_prefix: str = ".github"
    dependency_prefix: str = "node_modules"

    def __post_init__(self) -> None:
        for value in (self.managed_prefix, self.metadata_prefix, self.dependency_prefix):
            if not value or value.startswith("/") or value.endswith("/"):
                raise ValueError(f"invalid tree prefix: {value!r}")

    def managed_path(self, relative: str) -> str:
        return f"{self.managed_prefix}/{relative}"


def under_prefix(path: str, prefix: str) -> bool:
    """True if `path` is `prefix` itself or lies below it."""
    return path == prefix or path.startswith(prefix + "/")


@dataclass(frozen=True, slots=True)
class _Partition:
    metadata: tuple[str, ...]
    managed: tuple[str, ...]


def _partition(snapshot: RemoteTreeSnapshot, layout: TreeLayout) -> _Partition:
    metadata: list[str] = []
    managed: list[str] = []
    for path, entry in snapshot.entries.items():
        # Directories are implied by their files; deleting both is redundant.
        if entry.is_directory:
            continue
        if under_prefix(path, layout.metadata_prefix):
            metadata.append(path)
        elif under_prefix(path, layout.managed_prefix):
            managed.append(path)
    return _Partition(metadata=tuple(sorted(metadata)), managed=tuple(sorted(managed)))


def reconcile_tree(
    snapshot: RemoteTreeSnapshot,
    artifacts: LocalArtifactSet,
    *,
    layout: TreeLayout,
    include_artifacts: bool,
) -> TreePatch:
    """Compute the release tree patch.

    Args:
        snapshot: Flattened tree of the base commit (may be empty).
        artifacts: Files produced by the build, relative to the managed root.
        layout: Managed and metadata prefixes.
        include_artifacts: When False the managed prefix is left as-is.

    Returns:
        A TreePatch: metadata deletes, managed deletes, then upserts.
    """
    parts = _partition(snapshot, layout)

    deletes: list[TreeOperation] = [Delete(path) for path in parts.metadata]
    upserts: list[TreeOperation] = []

    if include_artifacts:
        deletes.extend(Delete(path) for path in parts.managed)
        seen: set[str] = set()
        for artifact in artifacts.artifacts:
            path = layout.managed_path(artifact.path)
            if path in seen:
                continue
            seen.add(path)
            upserts.append(Upsert(path=path, content=artifact.content))

    return TreePatch(operations=(*deletes, *upserts))
