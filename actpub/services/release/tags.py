"""Release tag publishing.

Tags are floating pointers: every tag is force-created, so re-running with the
same commit and name overwrites instead of failing. All tags are created
first and published in one step afterwards, so nobody observes a moved major
alias without the matching exact tag.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from actpub.core.result import Err, Ok, Result
from actpub.git.repository import Repository
from actpub.output.console import ConsoleProtocol, Style
from actpub.services.release.errors import ReleaseError, transport_error
from actpub.services.release.remote import HostingApi
from actpub.services.release.semver import ReleaseTags


@dataclass(frozen=True, slots=True)
class TagSpec:
    name: str
    annotated: bool

    @property
    def message(self) -> str | None:
        return self.name if self.annotated else None


def plan_tags(
    tags: ReleaseTags, *, publish_minor: bool, annotate_minor: bool
) -> tuple[TagSpec, ...]:
    """Exact tag, optional minor alias, major alias, in publication order."""
    planned = [TagSpec(tags.exact, annotated=True)]
    if publish_minor:
        planned.append(TagSpec(tags.minor, annotated=annotate_minor))
    planned.append(TagSpec(tags.major, annotated=True))
    return tuple(planned)


class TagWriter(Protocol):
    def create(self, spec: TagSpec, commit_sha: str) -> Result[None, ReleaseError]: ...

    def publish(self, names: Sequence[str]) -> Result[None, ReleaseError]: ...


class GitTagWriter:
    """Local `git tag -f`, then a single atomic force push."""

    def __init__(self, repository: Repository) -> None:
        self._repository = repository

    def create(self, spec: TagSpec, commit_sha: str) -> Result[None, ReleaseError]:
        created = self._repository.tag(spec.name, commit_sha, message=spec.message)
        if isinstance(created, Err):
            return Err(transport_error(f"failed to create tag {spec.name}", created.error))
        return Ok(None)

    def publish(self, names: Sequence[str]) -> Result[None, ReleaseError]:
        pushed = self._repository.push(
            [f"refs/tags/{name}" for name in names], force=True, atomic=True
        )
        if isinstance(pushed, Err):
            return Err(transport_error("failed to push tags", pushed.error))
        return Ok(None)


class ApiTagWriter:
    """Tag objects created through the hosting API, refs moved on publish."""

    def __init__(self, remote: HostingApi) -> None:
        self._remote = remote
        self._targets: dict[str, str] = {}

    def create(self, spec: TagSpec, commit_sha: str) -> Result[None, ReleaseError]:
        if spec.message is None:
            self._targets[spec.name] = commit_sha
            return Ok(None)
        tag_object = self._remote.create_tag_object(spec.name, spec.message, commit_sha)
        if isinstance(tag_object, Err):
            return tag_object
        self._targets[spec.name] = tag_object.value
        return Ok(None)

    def publish(self, names: Sequence[str]) -> Result[None, ReleaseError]:
        for name in names:
            target = self._targets.get(name)
            if target is None:
                return Err(ReleaseError(kind="remote_api", message=f"tag not created: {name}"))
            ref = f"tags/{name}"
            created = self._remote.create_ref(ref, target)
            if isinstance(created, Ok):
                continue
            # Ref already exists: move it.
            moved = self._remote.update_ref(ref, target, force=True)
            if isinstance(moved, Err):
                return moved
        return Ok(None)


def publish_tags(
    *,
    writer: TagWriter,
    specs: Sequence[TagSpec],
    commit_sha: str,
    console: ConsoleProtocol,
) -> Result[tuple[str, ...], ReleaseError]:
    for spec in specs:
        created = writer.create(spec, commit_sha)
        if isinstance(created, Err):
            return created
        kind = "annotated tag" if spec.annotated else "tag"
        console.info(f"Created {kind} {spec.name}")

    names = tuple(spec.name for spec in specs)
    published = writer.publish(names)
    if isinstance(published, Err):
        return published
    console.print(f"pushed {' '.join(names)} -> {commit_sha}", Style.DIM)
    return Ok(names)
