"""Exception hierarchy for proteomiss.

All errors raised by the library derive from :class:`ProteomissError`, so a
caller can catch the whole family with a single ``except`` clause. The more
specific classes also inherit from the matching builtin (``ValueError``,
``IndexError``) for code that already handles those.
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "ProteomissError",
    "InvalidInputError",
    "InvalidConfigError",
    "InsufficientDataError",
    "IndexOutOfRangeError",
]


class ProteomissError(Exception):
    """Base class for exceptions in proteomiss.

    Parameters
    ----------
    message : str
        Human readable description of the failure.
    hint : str | None
        Optional suggestion appended to the message.
    """

    def __init__(self, message: str, hint: str | None = None) -> None:
        self.hint = hint
        if hint:
            message = f"{message} Hint: {hint}"
        super().__init__(message)


class InvalidInputError(ProteomissError, ValueError):
    """Malformed matrix or arguments that do not describe the same data."""

    pass


class InvalidConfigError(ProteomissError, ValueError):
    """Out-of-range or unknown configuration value."""

    def __init__(
        self,
        message: str,
        parameter: str | None = None,
        value: Any = None,
        hint: str | None = None,
    ) -> None:
        self.parameter = parameter
        self.value = value
        super().__init__(message, hint=hint)


class InsufficientDataError(ProteomissError):
    """Not enough observed data to fit a model or run a test."""

    pass


class IndexOutOfRangeError(ProteomissError, IndexError):
    """Selection index outside the ensemble."""

    def __init__(self, index: int, size: int) -> None:
        self.index = index
        self.size = size
        super().__init__(
            f"Index {index} is out of range for an ensemble of {size} member(s).",
            hint=f"Valid indices are 0 to {size - 1}." if size > 0 else None,
        )
