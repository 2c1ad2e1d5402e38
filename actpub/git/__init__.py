"""Git transport."""

from .repository import BOT_EMAIL, BOT_NAME, GitError, LsTreeEntry, Repository

__all__ = [
    "BOT_EMAIL",
    "BOT_NAME",
    "GitError",
    "LsTreeEntry",
    "Repository",
]
