from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from .archive import ZipArchive
from .config import ExtractorConfig
from .errors import Diagnostic, PackageNotFoundError, PackageParseError
from .markup import normalize_whitespace, parse_xml
from .paths import decoded_path, package_dir, resolve_path

logger = logging.getLogger(__name__)

NCX_MEDIA_TYPE = "application/x-dtbncx+xml"


class TitleSource(enum.IntEnum):
    """Where a chapter title came from; higher values take precedence."""

    PLACEHOLDER = 0
    DOCUMENT = 1
    MANIFEST = 2
    NAVIGATION = 3


@dataclass(frozen=True)
class Chapter:
    id: str
    archive_path: str
    source_href: str
    title: str
    title_source: TitleSource = TitleSource.PLACEHOLDER
    media_type: str = ""


@dataclass(frozen=True)
class PackageInfo:
    chapters: List[Chapter]
    nav_path: Optional[str] = None
    nav_document_path: Optional[str] = None
    metadata: dict = field(default_factory=dict)
    diagnostics: List[Diagnostic] = field(default_factory=list)


def _first_dc_text(soup: BeautifulSoup, name: str) -> str:
    node = soup.find(name)
    if node is None:
        return ""
    return normalize_whitespace(node.get_text())


def _all_dc_text(soup: BeautifulSoup, name: str) -> List[str]:
    values: List[str] = []
    for node in soup.find_all(name):
        value = normalize_whitespace(node.get_text())
        if value:
            values.append(value)
    return values


def parse_metadata(soup: BeautifulSoup) -> dict:
    metadata = soup.find("metadata")
    scope = metadata if metadata is not None else soup
    dates = _all_dc_text(scope, "date")
    year = ""
    for value in dates:
        match = re.search(r"(19|20)\d{2}", value)
        if match:
            year = match.group(0)
            break
    return {
        "title": _first_dc_text(scope, "title"),
        "authors": _all_dc_text(scope, "creator"),
        "language": _first_dc_text(scope, "language"),
        "publisher": _first_dc_text(scope, "publisher"),
        "dates": dates,
        "year": year,
        "description": _first_dc_text(scope, "description"),
        "identifier": _first_dc_text(scope, "identifier"),
    }


def _manifest_items(soup: BeautifulSoup) -> dict[str, Tag]:
    manifest = soup.find("manifest")
    scope = manifest if manifest is not None else soup
    items: dict[str, Tag] = {}
    for item in scope.find_all("item"):
        item_id = str(item.get("id") or "")
        if item_id and item_id not in items:
            items[item_id] = item
    return items


def _item_href(item: Tag) -> str:
    return str(item.get("href") or "").strip()


def _find_ncx_item(
    soup: BeautifulSoup, items: dict[str, Tag], config: ExtractorConfig
) -> Optional[Tag]:
    item = items.get(config.ncx_item_id)
    if item is not None:
        return item
    spine = soup.find("spine")
    toc_id = str(spine.get("toc") or "") if spine is not None else ""
    if toc_id and toc_id in items:
        return items[toc_id]
    for candidate in items.values():
        if str(candidate.get("media-type") or "").strip() == NCX_MEDIA_TYPE:
            return candidate
    return None


def _find_nav_document_item(items: dict[str, Tag]) -> Optional[Tag]:
    for item in items.values():
        props = str(item.get("properties") or "").split()
        if "nav" in props:
            return item
    return None


def _chapter_archive_path(archive: ZipArchive, base: str, href: str) -> str:
    path = resolve_path(base, href)
    if archive.has_entry(path):
        return path
    decoded = decoded_path(path)
    if decoded != path and archive.has_entry(decoded):
        return decoded
    return path


def parse_package(
    archive: ZipArchive,
    package_path: str,
    config: Optional[ExtractorConfig] = None,
) -> PackageInfo:
    config = config or ExtractorConfig()
    if not archive.has_entry(package_path):
        raise PackageNotFoundError(f"Package document missing from archive: {package_path}")
    try:
        soup = parse_xml(archive.read_bytes(package_path))
    except Exception as exc:
        raise PackageParseError(f"Cannot parse package document {package_path}: {exc}") from exc
    if soup.find("package") is None and soup.find("spine") is None:
        raise PackageParseError(f"Not a package document: {package_path}")

    base = package_dir(package_path)
    items = _manifest_items(soup)
    diagnostics: List[Diagnostic] = []

    nav_path = None
    ncx_item = _find_ncx_item(soup, items, config)
    if ncx_item is not None and _item_href(ncx_item):
        nav_path = resolve_path(base, _item_href(ncx_item))

    nav_document_path = None
    nav_item = _find_nav_document_item(items)
    if nav_item is not None and _item_href(nav_item):
        nav_document_path = resolve_path(base, _item_href(nav_item))

    spine = soup.find("spine")
    itemrefs = spine.find_all("itemref") if spine is not None else []
    chapters: List[Chapter] = []
    for itemref in itemrefs:
        idref = str(itemref.get("idref") or "")
        item = items.get(idref)
        if item is None or not _item_href(item):
            diagnostic = Diagnostic(
                stage="package",
                message=f"spine references unknown manifest item {idref!r}",
                path=package_path,
            )
            logger.warning("%s", diagnostic)
            diagnostics.append(diagnostic)
            continue
        href = _item_href(item)
        declared_title = normalize_whitespace(str(item.get("title") or ""))
        if declared_title:
            title, source = declared_title, TitleSource.MANIFEST
        else:
            title, source = config.placeholder_title(len(chapters)), TitleSource.PLACEHOLDER
        chapters.append(
            Chapter(
                id=idref,
                archive_path=_chapter_archive_path(archive, base, href),
                source_href=href,
                title=title,
                title_source=source,
                media_type=str(item.get("media-type") or ""),
            )
        )

    logger.info("Parsed %d chapters from %s", len(chapters), package_path)
    return PackageInfo(
        chapters=chapters,
        nav_path=nav_path,
        nav_document_path=nav_document_path,
        metadata=parse_metadata(soup),
        diagnostics=diagnostics,
    )
