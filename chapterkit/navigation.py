from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Sequence

from .archive import ZipArchive
from .errors import Diagnostic
from .markup import normalize_whitespace, parse_xml_tree
from .package import Chapter, TitleSource
from .paths import decoded_path, package_dir, resolve_path, strip_fragment

logger = logging.getLogger(__name__)

NCX_NS = "http://www.daisy.org/z3986/2005/ncx/"
NCX_NSMAP = {"ncx": NCX_NS}

_NAV_TOC_ANCHORS = (
    "//*[local-name()='nav']"
    "[contains(concat(' ', normalize-space(@*[local-name()='type']), ' '), ' toc ')]"
    "//*[local-name()='a'][@href]"
)
_NAV_ANY_ANCHORS = "//*[local-name()='nav']//*[local-name()='a'][@href]"


@dataclass(frozen=True)
class NavigationEntry:
    referenced_path: str
    archive_path: str
    title: str


class NavigationTitles:
    """Title lookup built from navigation entries.

    Chapters are matched on their declared manifest href first, then on their
    resolved archive path. Archive paths are compared percent-decoded. The
    first entry in document order wins per key.
    """

    def __init__(self, entries: Iterable[NavigationEntry] = ()) -> None:
        self.by_href: dict[str, str] = {}
        self.by_path: dict[str, str] = {}
        self._count = 0
        for entry in entries:
            added = False
            if entry.referenced_path and entry.referenced_path not in self.by_href:
                self.by_href[entry.referenced_path] = entry.title
                added = True
            path = decoded_path(entry.archive_path)
            if path and path not in self.by_path:
                self.by_path[path] = entry.title
                added = True
            if added:
                self._count += 1

    def __len__(self) -> int:
        # Entries that contributed at least one new key.
        return self._count

    def title_for(self, chapter: Chapter) -> Optional[str]:
        title = self.by_href.get(strip_fragment(chapter.source_href))
        if title:
            return title
        return self.by_path.get(decoded_path(chapter.archive_path)) or None


def _text_of(nodes: Sequence[object]) -> str:
    if not nodes:
        return ""
    return normalize_whitespace("".join(nodes[0].itertext()))


def _ncx_nav_points(root: object) -> tuple[list, bool]:
    points = root.xpath("//ncx:navPoint", namespaces=NCX_NSMAP)
    if points:
        return points, True
    return root.xpath("//*[local-name()='navPoint']"), False


def _ncx_entry(point: object, nav_dir: str, namespaced: bool) -> Optional[NavigationEntry]:
    if namespaced:
        labels = point.xpath("./ncx:navLabel/ncx:text", namespaces=NCX_NSMAP)
        contents = point.xpath("./ncx:content", namespaces=NCX_NSMAP)
    else:
        labels = point.xpath(
            "./*[local-name()='navLabel']/*[local-name()='text']"
        )
        contents = point.xpath("./*[local-name()='content']")
    title = _text_of(labels)
    if not title or not contents:
        return None
    src = strip_fragment(str(contents[0].get("src") or ""))
    if not src:
        return None
    return NavigationEntry(
        referenced_path=src,
        archive_path=resolve_path(nav_dir, src),
        title=title,
    )


def _load_tree(
    archive: ZipArchive, nav_path: str, stage: str
) -> tuple[Optional[object], Optional[Diagnostic]]:
    if not archive.has_entry(nav_path):
        return None, Diagnostic(stage=stage, message="navigation document missing", path=nav_path)
    try:
        return parse_xml_tree(archive.read_bytes(nav_path)), None
    except Exception as exc:
        return None, Diagnostic(
            stage=stage, message=f"navigation document unparsable: {exc}", path=nav_path
        )


def _report(diagnostic: Diagnostic) -> List[Diagnostic]:
    logger.warning("%s", diagnostic)
    return [diagnostic]


def resolve_ncx_titles(
    archive: ZipArchive, nav_path: str
) -> tuple[NavigationTitles, List[Diagnostic]]:
    """Read chapter titles from a legacy NCX navigation document.

    Never raises: a missing or unparsable document yields an empty lookup and
    a diagnostic describing what went wrong.
    """
    root, diagnostic = _load_tree(archive, nav_path, "ncx")
    if diagnostic is not None:
        return NavigationTitles(), _report(diagnostic)

    try:
        points, namespaced = _ncx_nav_points(root)
        nav_dir = package_dir(nav_path)
        entries = [
            entry
            for entry in (_ncx_entry(point, nav_dir, namespaced) for point in points)
            if entry is not None
        ]
    except Exception as exc:
        return NavigationTitles(), _report(
            Diagnostic(stage="ncx", message=f"navigation query failed: {exc}", path=nav_path)
        )

    titles = NavigationTitles(entries)
    logger.info("NCX yielded %d navigation entries from %s", len(titles), nav_path)
    return titles, []


def resolve_nav_document_titles(
    archive: ZipArchive, nav_path: str
) -> tuple[NavigationTitles, List[Diagnostic]]:
    """Read chapter titles from an EPUB 3 navigation document."""
    root, diagnostic = _load_tree(archive, nav_path, "nav")
    if diagnostic is not None:
        return NavigationTitles(), _report(diagnostic)

    try:
        anchors = root.xpath(_NAV_TOC_ANCHORS) or root.xpath(_NAV_ANY_ANCHORS)
        nav_dir = package_dir(nav_path)
        entries: List[NavigationEntry] = []
        for anchor in anchors:
            title = normalize_whitespace("".join(anchor.itertext()))
            href = strip_fragment(str(anchor.get("href") or ""))
            if not title or not href or "://" in href:
                continue
            # Nav document hrefs are relative to the nav document, not the
            # package, so only the resolved path is a reliable key.
            entries.append(
                NavigationEntry(
                    referenced_path="",
                    archive_path=resolve_path(nav_dir, href),
                    title=title,
                )
            )
    except Exception as exc:
        return NavigationTitles(), _report(
            Diagnostic(stage="nav", message=f"navigation query failed: {exc}", path=nav_path)
        )

    titles = NavigationTitles(entries)
    logger.info("Nav document yielded %d navigation entries from %s", len(titles), nav_path)
    return titles, []


def apply_navigation_titles(
    chapters: Sequence[Chapter], titles: NavigationTitles
) -> List[Chapter]:
    if not len(titles):
        return list(chapters)
    out: List[Chapter] = []
    for chapter in chapters:
        if chapter.title_source < TitleSource.NAVIGATION:
            title = titles.title_for(chapter)
            if title:
                chapter = replace(chapter, title=title, title_source=TitleSource.NAVIGATION)
        out.append(chapter)
    return out
