from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import typer

from actpub.cli.context import build_context
from actpub.core.config import resolve_run_config
from actpub.core.errors import ErrorCode
from actpub.core.result import Err
from actpub.output.console import ConsoleProtocol
from actpub.services.release.errors import ReleaseErrorKind
from actpub.services.release.service import publish_release


def release_error_code(kind: ReleaseErrorKind) -> ErrorCode:
    match kind:
        case "config":
            return ErrorCode.CONFIG_ERROR
        case "remote_api":
            return ErrorCode.REMOTE_ERROR
        case "transport":
            return ErrorCode.TRANSPORT_ERROR


def exit_publish(
    message: str, *, code: ErrorCode, console: ConsoleProtocol | None = None
) -> NoReturn:
    if console is None:
        typer.echo(f"error: {message}", err=True)
    else:
        console.error(message)
    raise typer.Exit(code=int(code))


def publish(
    workspace: Path = typer.Option(
        Path("."), "--workspace", help="Checkout to release (contains the manifest)."
    ),
    github_token: str | None = typer.Option(
        None,
        "--github-token",
        envvar=["INPUT_GITHUB_TOKEN", "GITHUB_TOKEN", "GH_TOKEN"],
        show_envvar=False,
        help="API token with contents:write.",
    ),
    repository: str | None = typer.Option(
        None, "--repository", envvar="GITHUB_REPOSITORY", help="owner/name"
    ),
    config_file: Path | None = typer.Option(
        None, "--config", help="TOML file with a [publish] table (default: .actpub.toml)."
    ),
    package_command: str | None = typer.Option(
        None,
        "--package-command",
        envvar="INPUT_NPM_PACKAGE_COMMAND",
        help="Build command producing the artifact directory.",
    ),
    include_artifacts: bool | None = typer.Option(
        None,
        "--include-artifacts/--no-include-artifacts",
        envvar="INPUT_COMMIT_DIST_FOLDER",
        help="Reconcile the artifact directory into the release commit.",
    ),
    include_dependencies: bool | None = typer.Option(
        None,
        "--include-dependencies/--no-include-dependencies",
        envvar="INPUT_COMMIT_NODE_MODULES",
        help="Install production dependencies and commit them (local commit).",
    ),
    publish_minor: bool | None = typer.Option(
        None,
        "--publish-minor/--no-publish-minor",
        envvar="INPUT_PUBLISH_MINOR_VERSION",
        help="Also move the vX.Y alias tag.",
    ),
    annotate_minor: bool | None = typer.Option(
        None,
        "--annotate-minor/--lightweight-minor",
        envvar="INPUT_ANNOTATE_MINOR_VERSION",
        help="Create the vX.Y alias as an annotated tag.",
    ),
    retain_branch: bool | None = typer.Option(
        None,
        "--retain-branch/--no-retain-branch",
        envvar="INPUT_PUBLISH_RELEASE_BRANCH",
        help="Keep the releases/vX.Y.Z branch on the remote.",
    ),
    draft: bool | None = typer.Option(
        None, "--draft/--no-draft", envvar="INPUT_DRAFT_RELEASE", help="Create a draft release."
    ),
    artifact_dir: str | None = typer.Option(
        None, "--artifact-dir", envvar="INPUT_ARTIFACT_DIR", help="Managed artifact directory."
    ),
    manifest: str | None = typer.Option(
        None, "--manifest", envvar="INPUT_MANIFEST", help="Package manifest with the version."
    ),
    api_url: str | None = typer.Option(
        None,
        "--api-url",
        envvar=["INPUT_API_URL", "GITHUB_API_URL"],
        help="Custom API base endpoint (GitHub Enterprise).",
    ),
) -> None:
    """Commit artifacts, move version tags and create a release."""
    try:
        root = workspace.expanduser().resolve()
    except OSError as e:
        exit_publish(f"invalid --workspace: {e}", code=ErrorCode.CONFIG_ERROR)

    config = resolve_run_config(
        workspace_root=root,
        repository=repository,
        token=github_token,
        config_file=config_file,
        overrides={
            "package_command": package_command,
            "include_artifacts": include_artifacts,
            "include_dependencies": include_dependencies,
            "publish_minor": publish_minor,
            "annotate_minor": annotate_minor,
            "retain_branch": retain_branch,
            "draft": draft,
            "artifact_dir": artifact_dir,
            "manifest": manifest,
            "api_url": api_url,
        },
    )
    if isinstance(config, Err):
        exit_publish(config.error.message, code=ErrorCode.CONFIG_ERROR)

    ctx = build_context(config.value)
    outcome = publish_release(
        config=ctx.config,
        console=ctx.console,
        remote=ctx.remote,
        repository=ctx.repository,
    )
    if isinstance(outcome, Err):
        e = outcome.error
        exit_publish(e.message, code=release_error_code(e.kind), console=ctx.console)

    for item in outcome.value.degraded:
        ctx.console.print(f"degraded: {item.describe()}")
