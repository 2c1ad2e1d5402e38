from __future__ import annotations

from collections.abc import Iterable

from actpub.core.result import Err, Ok, Result
from actpub.services.release.errors import Degraded
from actpub.services.release.remote import HostingApi
from actpub.services.release.semver import is_stable_tag


def find_previous_release(tags: Iterable[str], *, exclude: str) -> str | None:
    """First stable vX.Y.Z tag in iteration order, other than `exclude`.

    No ordering is assumed beyond that: hosts usually list releases newest
    first, which makes the first match the latest release.
    """
    for tag in tags:
        if tag != exclude and is_stable_tag(tag):
            return tag
    return None


def locate_previous_release(remote: HostingApi, *, exclude: str) -> Result[str | None, Degraded]:
    """Baseline tag for release notes; a listing failure degrades to no baseline."""
    releases = remote.list_release_tags()
    if isinstance(releases, Err):
        return Err(
            Degraded(
                step="previous release lookup",
                reason=f"Could not fetch previous releases: {releases.error.message}",
            )
        )
    return Ok(find_previous_release(releases.value, exclude=exclude))
