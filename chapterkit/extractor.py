from __future__ import annotations

import enum
import logging
import threading
from typing import Callable, List, Optional

from .archive import ArchiveSource, ZipArchive, open_archive
from .config import ExtractorConfig
from .container import locate_package
from .errors import (
    ChapterIndexError,
    ChapterkitError,
    ChapterNotFoundError,
    Diagnostic,
    InitializationError,
    NotReadyError,
)
from .navigation import (
    apply_navigation_titles,
    resolve_nav_document_titles,
    resolve_ncx_titles,
)
from .package import Chapter, parse_package
from .titles import resolve_fallback_titles

logger = logging.getLogger(__name__)

CHAPTER_MEDIA_TYPE = "application/xhtml+xml"


class ExtractorState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


class EpubExtractor:
    """Chapter list, titles and documents of a single EPUB.

    Call :meth:`initialize` once before querying. The chapter list is built
    during initialization and never changes afterwards.
    """

    def __init__(
        self,
        source: ArchiveSource,
        *,
        config: Optional[ExtractorConfig] = None,
        archive_opener: Callable[[ArchiveSource], ZipArchive] = open_archive,
    ) -> None:
        if source is None:
            raise ValueError("An EPUB source is required.")
        self._source = source
        self._config = config or ExtractorConfig()
        self._open = archive_opener
        self._lock = threading.Lock()
        self._state = ExtractorState.UNINITIALIZED
        self._archive: Optional[ZipArchive] = None
        self._chapters: tuple[Chapter, ...] = ()
        self._metadata: dict = {}
        self._package_path = ""
        self._failure: Optional[InitializationError] = None
        self.diagnostics: List[Diagnostic] = []

    @property
    def state(self) -> ExtractorState:
        return self._state

    @property
    def package_path(self) -> str:
        return self._package_path

    def initialize(self) -> ExtractorState:
        with self._lock:
            if self._state is ExtractorState.READY:
                return self._state
            if self._state is ExtractorState.FAILED and self._failure is not None:
                raise self._failure
            self._state = ExtractorState.INITIALIZING
            try:
                self._run_pipeline()
            except Exception as exc:
                if isinstance(exc, ChapterkitError):
                    reason = str(exc)
                else:
                    reason = f"Unexpected error while reading EPUB: {exc}"
                self._state = ExtractorState.FAILED
                self._chapters = ()
                self._release_archive()
                self._failure = InitializationError(reason)
                logger.error("EPUB initialization failed: %s", reason)
                raise self._failure from exc
            self._state = ExtractorState.READY
            logger.info("EPUB ready: %d chapters", len(self._chapters))
            return self._state

    def _run_pipeline(self) -> None:
        diagnostics: List[Diagnostic] = []
        archive = self._open(self._source)
        self._archive = archive

        package_path = locate_package(archive, self._config, diagnostics)
        info = parse_package(archive, package_path, self._config)
        diagnostics.extend(info.diagnostics)
        chapters = info.chapters

        if info.nav_path:
            titles, nav_diagnostics = resolve_ncx_titles(archive, info.nav_path)
            diagnostics.extend(nav_diagnostics)
            chapters = apply_navigation_titles(chapters, titles)
        if info.nav_document_path and info.nav_document_path != info.nav_path:
            titles, nav_diagnostics = resolve_nav_document_titles(
                archive, info.nav_document_path
            )
            diagnostics.extend(nav_diagnostics)
            chapters = apply_navigation_titles(chapters, titles)

        chapters, title_diagnostics = resolve_fallback_titles(archive, chapters, self._config)
        diagnostics.extend(title_diagnostics)

        self._package_path = package_path
        self._metadata = info.metadata
        self._chapters = tuple(chapters)
        self.diagnostics = diagnostics

    def _require_ready(self) -> None:
        if self._state is not ExtractorState.READY:
            raise NotReadyError(
                f"EPUB is not initialized (state: {self._state.value}); call initialize() first."
            )

    def _chapter(self, index: int) -> Chapter:
        self._require_ready()
        count = len(self._chapters)
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < count:
            raise ChapterIndexError(index, count)
        return self._chapters[index]

    @property
    def metadata(self) -> dict:
        self._require_ready()
        return dict(self._metadata)

    def chapter_count(self) -> int:
        self._require_ready()
        return len(self._chapters)

    def chapter_titles(self) -> List[str]:
        self._require_ready()
        return [chapter.title for chapter in self._chapters]

    def chapter_title(self, index: int) -> str:
        return self._chapter(index).title

    def _chapter_entry(self, index: int) -> tuple[ZipArchive, str]:
        chapter = self._chapter(index)
        archive = self._archive
        if archive is None:
            raise NotReadyError("EPUB archive has been closed.")
        if not archive.has_entry(chapter.archive_path):
            raise ChapterNotFoundError(chapter.archive_path)
        return archive, chapter.archive_path

    def chapter_document(self, index: int) -> bytes:
        """Raw bytes of chapter ``index``, declared as ``CHAPTER_MEDIA_TYPE``."""
        archive, path = self._chapter_entry(index)
        return archive.read_bytes(path)

    def chapter_markup(self, index: int) -> str:
        archive, path = self._chapter_entry(index)
        return archive.read_text(path)

    def _release_archive(self) -> None:
        archive, self._archive = self._archive, None
        if archive is not None:
            archive.close()

    def close(self) -> None:
        self._release_archive()

    def __enter__(self) -> "EpubExtractor":
        self.initialize()
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()
