"""I/O module exception hierarchy."""

from proteomiss.core.exceptions import ProteomissError


class IOFormatError(ProteomissError):
    """File format corruption or version incompatibility."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        if path:
            message = f"{message}: {path}"
        super().__init__(message)
