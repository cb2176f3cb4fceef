from __future__ import annotations

from dataclasses import dataclass


class ChapterkitError(Exception):
    pass


class ArchiveOpenError(ChapterkitError):
    pass


class PackageNotFoundError(ChapterkitError):
    pass


class PackageParseError(ChapterkitError):
    pass


class InitializationError(ChapterkitError):
    """Raised by ``EpubExtractor.initialize`` when a fatal step fails.

    The underlying error is kept on ``__cause__`` and ``reason``.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class NotReadyError(ChapterkitError, RuntimeError):
    pass


class ChapterIndexError(ChapterkitError, IndexError):
    def __init__(self, index: int, count: int) -> None:
        if count:
            message = f"Chapter index {index} out of range (valid: 0-{count - 1})."
        else:
            message = f"Chapter index {index} out of range (book has no chapters)."
        super().__init__(message)
        self.index = index
        self.count = count


class ChapterNotFoundError(ChapterkitError, LookupError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Chapter document missing from archive: {path}")
        self.path = path


@dataclass(frozen=True)
class Diagnostic:
    stage: str
    message: str
    path: str = ""

    def __str__(self) -> str:
        if self.path:
            return f"[{self.stage}] {self.path}: {self.message}"
        return f"[{self.stage}] {self.message}"
