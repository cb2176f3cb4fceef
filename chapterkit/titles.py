from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import List, Optional, Sequence

from .archive import ZipArchive
from .config import ExtractorConfig
from .errors import Diagnostic
from .markup import node_text, parse_html
from .package import Chapter, TitleSource

logger = logging.getLogger(__name__)


def title_from_html(html: bytes | str, config: Optional[ExtractorConfig] = None) -> Optional[str]:
    """Pick a heading-like title out of a chapter document.

    Selectors are tried in priority order. Only the first element each
    selector matches is considered, and texts shorter than
    ``min_title_length`` are rejected as noise.
    """
    config = config or ExtractorConfig()
    soup = parse_html(html)
    for selector in config.title_selectors:
        node = soup.select_one(selector)
        if node is None:
            continue
        text = node_text(node)
        if len(text) >= config.min_title_length:
            return text
    return None


def extract_title(
    archive: ZipArchive, chapter_path: str, config: Optional[ExtractorConfig] = None
) -> tuple[Optional[str], Optional[Diagnostic]]:
    try:
        return title_from_html(archive.read_bytes(chapter_path), config), None
    except KeyError:
        return None, Diagnostic(
            stage="title", message="chapter document missing", path=chapter_path
        )
    except Exception as exc:
        return None, Diagnostic(
            stage="title", message=f"title extraction failed: {exc}", path=chapter_path
        )


def resolve_fallback_titles(
    archive: ZipArchive,
    chapters: Sequence[Chapter],
    config: Optional[ExtractorConfig] = None,
) -> tuple[List[Chapter], List[Diagnostic]]:
    config = config or ExtractorConfig()
    pending = [
        idx
        for idx, chapter in enumerate(chapters)
        if chapter.title_source == TitleSource.PLACEHOLDER
    ]
    out = list(chapters)
    if not pending:
        return out, []

    workers = max(1, min(config.max_workers, len(pending)))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        results = list(
            executor.map(
                lambda idx: extract_title(archive, chapters[idx].archive_path, config),
                pending,
            )
        )

    diagnostics: List[Diagnostic] = []
    for idx, (title, diagnostic) in zip(pending, results):
        if diagnostic is not None:
            logger.warning("%s", diagnostic)
            diagnostics.append(diagnostic)
        if title:
            out[idx] = replace(out[idx], title=title, title_source=TitleSource.DOCUMENT)
    logger.debug(
        "Heading fallback resolved %d of %d untitled chapters",
        sum(1 for title, _diagnostic in results if title),
        len(pending),
    )
    return out, diagnostics
