"""Result type for explicit error handling.

Every fallible step of a release run returns a Result instead of raising,
so the orchestrator can decide which failures abort the run and which ones
only degrade it.

Usage:
    def parse(raw: str) -> Result[int, str]:
        if not raw.isdigit():
            return Err(f"not a number: {raw}")
        return Ok(int(raw))

    match parse("42"):
        case Ok(value):
            print(value)
        case Err(error):
            print(f"error: {error}")
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeGuard, TypeVar

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")
F = TypeVar("F")


@dataclass(frozen=True, slots=True)
class Ok[T]:
    """Successful result carrying a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Return the contained value; `default` is ignored."""
        return self.value

    def map(self, f: Callable[[T], U]) -> Ok[U]:
        return Ok(f(self.value))

    def map_err(self, f: Callable[[E], F]) -> Ok[T]:
        return self

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err[E]:
    """Failed result carrying an error payload."""

    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> None:
        """Raise ValueError; an Err has no value to hand out.

        Raises:
            ValueError: Always, with the error in the message.
        """
        raise ValueError(f"called unwrap on Err: {self.error}")

    def unwrap_or(self, default: T) -> T:
        """Return `default`, the fallback used by degraded release steps."""
        return default

    def map(self, f: Callable[[T], U]) -> Err[E]:
        return self

    def map_err(self, f: Callable[[E], F]) -> Err[F]:
        """Convert the error payload, e.g. a process error into a release error."""
        return Err(f(self.error))

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


type Result[T, E] = Ok[T] | Err[E]


def is_ok[T, E](result: Result[T, E]) -> TypeGuard[Ok[T]]:
    """Narrow a Result to Ok for static type checkers."""
    return isinstance(result, Ok)


def is_err[T, E](result: Result[T, E]) -> TypeGuard[Err[E]]:
    """Narrow a Result to Err for static type checkers."""
    return isinstance(result, Err)
