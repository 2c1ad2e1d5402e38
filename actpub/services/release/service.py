from __future__ import annotations

from actpub.core.config import RunConfig
from actpub.core.result import Err, Ok, Result
from actpub.git.repository import Repository
from actpub.output.console import ConsoleProtocol, Style
from actpub.services.release.artifacts import (
    classify_artifacts,
    collect_artifacts,
    detect_install_command,
    run_build_command,
)
from actpub.services.release.commit import build_release_commit, select_commit_strategy
from actpub.services.release.errors import Degraded, ReleaseError, transport_error
from actpub.services.release.history import locate_previous_release
from actpub.services.release.model import (
    LocalArtifactSet,
    ReleaseIdentity,
    ReleaseOutcome,
    release_branch_name,
)
from actpub.services.release.notes import generate_notes
from actpub.services.release.reconcile import TreeLayout
from actpub.services.release.remote import HostingApi
from actpub.services.release.semver import resolve_version
from actpub.services.release.tags import plan_tags, publish_tags


def make_layout(artifact_dir: str) -> Result[TreeLayout, ReleaseError]:
    prefix = artifact_dir.strip().removeprefix("./").strip("/")
    try:
        return Ok(TreeLayout(managed_prefix=prefix))
    except ValueError as e:
        return Err(ReleaseError(kind="config", message=f"invalid artifact_dir: {e}"))


def _prepare_artifacts(
    *,
    config: RunConfig,
    layout: TreeLayout,
    console: ConsoleProtocol,
) -> Result[LocalArtifactSet, ReleaseError]:
    opts = config.options
    root = config.workspace_root

    if opts.include_dependencies:
        installed = run_build_command(detect_install_command(root), cwd=root, console=console)
        if isinstance(installed, Err):
            return installed

    if opts.package_command:
        built = run_build_command(opts.package_command, cwd=root, console=console)
        if isinstance(built, Err):
            return built

    if not opts.include_artifacts:
        return Ok(LocalArtifactSet(root=root / layout.managed_prefix))

    collected = collect_artifacts(root / layout.managed_prefix)
    if isinstance(collected, Err):
        return collected
    console.info(f"Collected {len(collected.value)} file(s) from {layout.managed_prefix}")
    return collected


def publish_release(
    *,
    config: RunConfig,
    console: ConsoleProtocol,
    remote: HostingApi,
    repository: Repository,
) -> Result[ReleaseOutcome, ReleaseError]:
    """Run one release end to end.

    Steps run strictly in order; each needs the previous step's output.
    Fatal errors are returned as-is and nothing already created is rolled
    back. Tolerated failures are reported on the outcome.
    """
    opts = config.options

    version = resolve_version(config.manifest_path)
    if isinstance(version, Err):
        return version
    tags = version.value.tags

    layout = make_layout(opts.artifact_dir)
    if isinstance(layout, Err):
        return layout

    existing = remote.list_tag_names()
    if isinstance(existing, Err):
        return existing
    if tags.exact in existing.value:
        console.info(f"Tag {tags.exact} already exists")
        return Ok(ReleaseOutcome(skipped=True, version_tag=tags.exact))

    console.header(f"Release {tags.exact}")
    branch = release_branch_name(tags.exact)
    created = repository.create_branch(branch)
    if isinstance(created, Err):
        return Err(transport_error(f"failed to create branch {branch}", created.error))
    head = repository.head_sha()
    if isinstance(head, Err):
        return Err(transport_error("failed to read HEAD", head.error))
    identity = ReleaseIdentity.create(version.value, base_commit_id=head.value)

    artifacts = _prepare_artifacts(config=config, layout=layout.value, console=console)
    if isinstance(artifacts, Err):
        return artifacts

    size_class = classify_artifacts(
        artifacts.value, include_dependencies=opts.include_dependencies
    )
    strategy = select_commit_strategy(
        size_class,
        remote=remote,
        repository=repository,
        layout=layout.value,
        include_dependencies=opts.include_dependencies,
    )
    built = build_release_commit(
        strategy=strategy,
        identity=identity,
        artifacts=artifacts.value,
        layout=layout.value,
        include_artifacts=opts.include_artifacts,
        console=console,
    )
    if isinstance(built, Err):
        return built
    commit_sha = built.value.sha

    degraded: list[Degraded] = []
    if built.value.degraded is not None:
        degraded.append(built.value.degraded)

    if opts.retain_branch:
        retained = strategy.retain_branch(identity, commit_sha)
        if isinstance(retained, Err):
            return retained
        console.info(f"Updated branch {identity.branch_name} to {commit_sha}")
    else:
        discarded = strategy.discard_branch(identity)
        if isinstance(discarded, Err):
            degraded.append(discarded.error)
            console.warning(f"Could not delete branch {identity.branch_name}")

    specs = plan_tags(tags, publish_minor=opts.publish_minor, annotate_minor=opts.annotate_minor)
    published = publish_tags(
        writer=strategy.tag_writer(), specs=specs, commit_sha=commit_sha, console=console
    )
    if isinstance(published, Err):
        return published

    previous = locate_previous_release(remote, exclude=tags.exact)
    previous_tag: str | None = None
    if isinstance(previous, Err):
        degraded.append(previous.error)
        console.warning(previous.error.reason)
    else:
        previous_tag = previous.value

    notes = generate_notes(remote, tag=tags.exact, previous_tag=previous_tag, console=console)
    body = ""
    if isinstance(notes, Err):
        degraded.append(notes.error)
        console.warning(notes.error.reason)
    else:
        body = notes.value

    release_url = remote.create_release(tags.exact, tags.exact, body, draft=opts.draft)
    if isinstance(release_url, Err):
        return release_url
    console.print(release_url.value, Style.DIM)

    console.success(f"Published {tags.exact}")
    return Ok(
        ReleaseOutcome(
            skipped=False,
            version_tag=tags.exact,
            commit_sha=commit_sha,
            tags=published.value,
            previous_tag=previous_tag,
            release_url=release_url.value,
            degraded=tuple(degraded),
        )
    )
