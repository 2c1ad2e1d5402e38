from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from actpub.git.repository import GitError
from actpub.platform.process import ProcessError

ReleaseErrorKind = Literal["config", "transport", "remote_api"]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """A fatal release failure.

    - config: required input missing or unparsable; raised before any mutation
    - transport: build command, git branch/commit/tag/push failures
    - remote_api: hosting API call failures
    """

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class Degraded:
    """A tolerated failure; the run continues with a fallback value."""

    step: str
    reason: str

    def describe(self) -> str:
        return f"{self.step}: {self.reason}"


def transport_error(action: str, error: GitError | ProcessError) -> ReleaseError:
    if isinstance(error, GitError):
        detail = error.message
    else:
        detail = error.detail
    return ReleaseError(kind="transport", message=f"{action}: {detail}")
