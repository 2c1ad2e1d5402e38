from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Literal

from actpub.services.release.errors import Degraded
from actpub.services.release.semver import ManifestVersion

REGULAR_FILE_MODE = "100644"

ArtifactSizeClass = Literal["small", "large"]


@dataclass(frozen=True, slots=True)
class RemoteTreeEntry:
    path: str
    mode: str
    type: str  # blob | tree | commit
    sha: str

    @property
    def is_directory(self) -> bool:
        return self.type == "tree"


def _no_entries() -> Mapping[str, RemoteTreeEntry]:
    return MappingProxyType({})


@dataclass(frozen=True, slots=True)
class RemoteTreeSnapshot:
    """Flattened tree of one base commit. Read-only."""

    base_commit: str | None
    entries: Mapping[str, RemoteTreeEntry] = field(default_factory=_no_entries)
    # Set when the host returned a partial listing.
    truncated: bool = False

    @classmethod
    def from_entries(
        cls,
        base_commit: str,
        entries: list[RemoteTreeEntry],
        *,
        truncated: bool = False,
    ) -> RemoteTreeSnapshot:
        return cls(
            base_commit=base_commit,
            entries=MappingProxyType({e.path: e for e in entries}),
            truncated=truncated,
        )

    @classmethod
    def empty(cls, base_commit: str | None = None) -> RemoteTreeSnapshot:
        return cls(base_commit=base_commit)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True, slots=True)
class LocalArtifact:
    path: str  # posix, relative to the artifact root
    content: bytes


@dataclass(frozen=True, slots=True)
class LocalArtifactSet:
    root: Path
    artifacts: tuple[LocalArtifact, ...] = ()

    @property
    def total_bytes(self) -> int:
        return sum(len(a.content) for a in self.artifacts)

    def __len__(self) -> int:
        return len(self.artifacts)


@dataclass(frozen=True, slots=True)
class Delete:
    path: str


@dataclass(frozen=True, slots=True)
class Upsert:
    path: str
    content: bytes
    mode: str = REGULAR_FILE_MODE


type TreeOperation = Delete | Upsert


@dataclass(frozen=True, slots=True)
class TreePatch:
    """Ordered tree operations; every Delete precedes every Upsert."""

    operations: tuple[TreeOperation, ...] = ()

    @property
    def deletes(self) -> tuple[Delete, ...]:
        return tuple(op for op in self.operations if isinstance(op, Delete))

    @property
    def upserts(self) -> tuple[Upsert, ...]:
        return tuple(op for op in self.operations if isinstance(op, Upsert))

    @property
    def is_empty(self) -> bool:
        return not self.operations


@dataclass(frozen=True, slots=True)
class ReleaseIdentity:
    version_tag: str
    minor_tag: str
    major_tag: str
    branch_name: str
    base_commit_id: str

    @classmethod
    def create(cls, version: ManifestVersion, *, base_commit_id: str) -> ReleaseIdentity:
        tags = version.tags
        return cls(
            version_tag=tags.exact,
            minor_tag=tags.minor,
            major_tag=tags.major,
            branch_name=release_branch_name(tags.exact),
            base_commit_id=base_commit_id,
        )

    @property
    def commit_message(self) -> str:
        return f"chore: prepare {self.version_tag} release"


def release_branch_name(version_tag: str) -> str:
    return f"releases/{version_tag}"


@dataclass(frozen=True, slots=True)
class ReleaseOutcome:
    skipped: bool
    version_tag: str
    commit_sha: str | None = None
    tags: tuple[str, ...] = ()
    previous_tag: str | None = None
    release_url: str | None = None
    degraded: tuple[Degraded, ...] = ()
