"""Exit codes for the publish command.

A run ends in exactly one of these states. Skipped runs (the release tag
already exists) exit with OK.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Process exit codes.

    - 0: Success (including a skipped, already-published version)
    - 1: Configuration error (missing token, unparsable version)
    - 4: Remote API error (hosting API call failed)
    - 5: Transport error (build command, git commit, tag or push failed)
    """

    OK = 0
    CONFIG_ERROR = 1
    REMOTE_ERROR = 4
    TRANSPORT_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
