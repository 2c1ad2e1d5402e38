from __future__ import annotations

from actpub.core.result import Err, Ok, Result
from actpub.output.console import ConsoleProtocol
from actpub.services.release.errors import Degraded
from actpub.services.release.remote import HostingApi


def generate_notes(
    remote: HostingApi,
    *,
    tag: str,
    previous_tag: str | None,
    console: ConsoleProtocol,
) -> Result[str, Degraded]:
    """Ask the host for generated release notes.

    The previous tag bounds the change list; without one the host summarizes
    the whole history up to `tag`. Any failure degrades to an empty body.
    """
    if previous_tag is not None:
        console.info(f"Generating release notes from {previous_tag} to {tag}")
    else:
        console.info(f"Generating release notes for first release {tag}")

    notes = remote.generate_release_notes(tag, previous_tag)
    if isinstance(notes, Err):
        return Err(
            Degraded(
                step="release notes",
                reason=f"Could not generate release notes: {notes.error.message}",
            )
        )
    return Ok(notes.value)
