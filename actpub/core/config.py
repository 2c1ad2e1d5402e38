"""Typed run configuration.

A `RunConfig` is built exactly once at the start of a run and handed to every
component by reference. Components never read the environment themselves.

Sources, lowest precedence first:
- built-in defaults
- the optional `[publish]` table of `.actpub.toml` in the workspace root
- explicit overrides (CLI options and their environment variables)
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from urllib.parse import urlsplit

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_str, get_table

__all__ = [
    "CONFIG_FILE_NAME",
    "ConfigError",
    "PublishOptions",
    "RunConfig",
    "load_publish_options",
    "resolve_run_config",
]

CONFIG_FILE_NAME = ".actpub.toml"

_REPO_SLUG_RE = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")
_PUBLIC_API_HOSTS = {"api.github.com", "github.com"}


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when run configuration is missing or invalid."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class PublishOptions:
    """Switches that shape a release run.

    Every switch defaults to disabled except `annotate_minor`.
    """

    include_artifacts: bool = False
    include_dependencies: bool = False
    publish_minor: bool = False
    retain_branch: bool = False
    draft: bool = False
    # Whether the vX.Y alias is an annotated tag (message = tag name) or a
    # lightweight ref to the commit.
    annotate_minor: bool = True
    package_command: str | None = None
    artifact_dir: str = "dist"
    manifest: str = "package.json"
    api_url: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> PublishOptions:
        """Create options from a parsed `[publish]` table."""
        defaults = cls()
        return cls(
            include_artifacts=_bool_or(data, "include_artifacts", defaults.include_artifacts),
            include_dependencies=_bool_or(
                data, "include_dependencies", defaults.include_dependencies
            ),
            publish_minor=_bool_or(data, "publish_minor", defaults.publish_minor),
            retain_branch=_bool_or(data, "retain_branch", defaults.retain_branch),
            draft=_bool_or(data, "draft", defaults.draft),
            annotate_minor=_bool_or(data, "annotate_minor", defaults.annotate_minor),
            package_command=get_str(data, "package_command"),
            artifact_dir=get_str(data, "artifact_dir") or defaults.artifact_dir,
            manifest=get_str(data, "manifest") or defaults.manifest,
            api_url=get_str(data, "api_url"),
        )


def _bool_or(data: Mapping[str, object], key: str, default: bool) -> bool:
    value = get_bool(data, key)
    return default if value is None else value


@dataclass(frozen=True, slots=True)
class RunConfig:
    """Immutable configuration for one release run."""

    workspace_root: Path
    repository: str  # owner/name
    token: str = field(repr=False)
    options: PublishOptions = field(default_factory=PublishOptions)

    @property
    def api_hostname(self) -> str | None:
        """Hostname for `gh --hostname`, None for the public GitHub API."""
        if self.options.api_url is None:
            return None
        host = urlsplit(self.options.api_url).hostname
        if host is None or host in _PUBLIC_API_HOSTS:
            return None
        return host

    @property
    def manifest_path(self) -> Path:
        return self.workspace_root / self.options.manifest


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def load_publish_options(path: Path) -> Result[PublishOptions, ConfigError]:
    """Load the `[publish]` table of a TOML file.

    A file without a `[publish]` table yields the defaults.
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    table = get_table(result.value, "publish")
    if table is None:
        return Ok(PublishOptions())
    return Ok(PublishOptions.from_dict(table))


def _validate_api_url(api_url: str) -> ConfigError | None:
    parts = urlsplit(api_url)
    if parts.scheme not in {"http", "https"} or not parts.hostname:
        return ConfigError(f"Invalid API url: {api_url}")
    return None


def resolve_run_config(
    *,
    workspace_root: Path,
    repository: str | None,
    token: str | None,
    overrides: Mapping[str, object | None],
    config_file: Path | None = None,
) -> Result[RunConfig, ConfigError]:
    """Build the run configuration from all sources.

    Args:
        workspace_root: Root of the checkout being released.
        repository: `owner/name` of the hosting repository.
        token: API credential; required.
        overrides: Option values from the command line; None means unset.
        config_file: Explicit TOML file. When None, `.actpub.toml` in the
            workspace root is used if it exists.

    Returns:
        Ok(RunConfig) on success, Err(ConfigError) on failure.
    """
    if not token or not token.strip():
        return Err(ConfigError("Input required and not supplied: github_token"))
    if not repository or not _REPO_SLUG_RE.match(repository.strip()):
        return Err(ConfigError(f"Invalid repository (expected owner/name): {repository or ''}"))

    options = PublishOptions()
    path = config_file or workspace_root / CONFIG_FILE_NAME
    if config_file is not None or path.is_file():
        loaded = load_publish_options(path)
        if isinstance(loaded, Err):
            return loaded
        options = loaded.value

    known = {f.name for f in fields(PublishOptions)}
    changes: dict[str, object] = {}
    for key, value in overrides.items():
        if key not in known:
            return Err(ConfigError(f"Unknown option: {key}"))
        if value is not None:
            changes[key] = value
    options = replace(options, **changes)  # pyright: ignore[reportArgumentType]

    if options.api_url is not None:
        invalid = _validate_api_url(options.api_url)
        if invalid is not None:
            return Err(invalid)

    return Ok(
        RunConfig(
            workspace_root=workspace_root,
            repository=repository.strip(),
            token=token.strip(),
            options=options,
        )
    )
