from __future__ import annotations

import logging
from typing import List, Optional

from .archive import ZipArchive
from .config import ExtractorConfig
from .errors import Diagnostic, PackageNotFoundError
from .markup import parse_xml

logger = logging.getLogger(__name__)

CONTAINER_PATH = "META-INF/container.xml"


def _rootfile_from_container(archive: ZipArchive) -> str:
    soup = parse_xml(archive.read_bytes(CONTAINER_PATH))
    rootfile = soup.find("rootfile")
    if rootfile is None:
        return ""
    return str(rootfile.get("full-path") or "").strip()


def locate_package(
    archive: ZipArchive,
    config: Optional[ExtractorConfig] = None,
    diagnostics: Optional[List[Diagnostic]] = None,
) -> str:
    """Return the archive path of the package document (content.opf)."""
    config = config or ExtractorConfig()
    if archive.has_entry(CONTAINER_PATH):
        try:
            full_path = _rootfile_from_container(archive)
        except Exception as exc:
            full_path = ""
            diagnostic = Diagnostic(
                stage="container",
                message=f"unreadable container descriptor: {exc}",
                path=CONTAINER_PATH,
            )
            logger.warning("%s", diagnostic)
            if diagnostics is not None:
                diagnostics.append(diagnostic)
        if full_path:
            logger.debug("Package document declared at %s", full_path)
            return full_path

    for candidate in config.package_paths:
        if archive.has_entry(candidate):
            logger.debug("Package document found by convention at %s", candidate)
            return candidate

    raise PackageNotFoundError("No content.opf found; not a valid EPUB.")
