from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path

from actpub.core.result import Err, Ok, Result
from actpub.core.structured import as_str_dict, get_str
from actpub.services.release.errors import ReleaseError

_NUM = r"(0|[1-9]\d*)"
_IDENT = r"[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*"
_VERSION_RE = re.compile(rf"^{_NUM}\.{_NUM}\.{_NUM}(?:-{_IDENT})?(?:\+{_IDENT})?$")

# Previous-release baselines must be plain vX.Y.Z tags.
STABLE_TAG_RE = re.compile(r"^v\d+\.\d+\.\d+$")


@dataclass(frozen=True, slots=True)
class ReleaseTags:
    exact: str
    minor: str
    major: str


@dataclass(frozen=True, slots=True)
class ManifestVersion:
    major: int
    minor: int
    patch: int
    raw: str  # as written in the manifest, suffixes included

    @property
    def tags(self) -> ReleaseTags:
        # All three names come from one value so they can never drift apart.
        return ReleaseTags(
            exact=f"v{self.raw}",
            minor=f"v{self.major}.{self.minor}",
            major=f"v{self.major}",
        )


def parse_manifest_version(raw: str) -> Result[ManifestVersion, ReleaseError]:
    text = raw.strip()
    m = _VERSION_RE.match(text)
    if m is None:
        return Err(
            ReleaseError(
                kind="config",
                message=f"invalid semantic version: {raw!r}",
                hint="Expected MAJOR.MINOR.PATCH, e.g. 1.2.3",
            )
        )
    return Ok(
        ManifestVersion(
            major=int(m.group(1)),
            minor=int(m.group(2)),
            patch=int(m.group(3)),
            raw=text,
        )
    )


def is_stable_tag(tag: str) -> bool:
    return STABLE_TAG_RE.match(tag) is not None


def read_manifest_version(path: Path) -> Result[str, ReleaseError]:
    """Read the `version` field of a package manifest."""
    try:
        obj: object = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return Err(ReleaseError(kind="config", message=f"manifest not found: {path}"))
    except (OSError, UnicodeDecodeError) as e:
        return Err(ReleaseError(kind="config", message=f"failed to read manifest: {e}"))
    except json.JSONDecodeError as e:
        return Err(ReleaseError(kind="config", message=f"invalid JSON in {path.name}: {e}"))

    data = as_str_dict(obj)
    if data is None:
        return Err(ReleaseError(kind="config", message=f"{path.name} must be a JSON object"))

    version = get_str(data, "version")
    if version is None:
        return Err(ReleaseError(kind="config", message=f"missing version in {path.name}"))
    return Ok(version)


def resolve_version(path: Path) -> Result[ManifestVersion, ReleaseError]:
    raw = read_manifest_version(path)
    if isinstance(raw, Err):
        return raw
    return parse_manifest_version(raw.value)
