from __future__ import annotations

from typing import Optional
from urllib.parse import unquote


def resolve_path(base: Optional[str], ref: Optional[str]) -> str:
    """Join ``ref`` onto the archive directory ``base``.

    Archive paths never start with a separator, so an absolute ``ref`` is
    returned with its leading ``/`` removed. ``.`` segments are dropped and
    ``..`` segments pop from ``base``, stopping at the archive root.
    """
    base = base or ""
    ref = ref or ""
    if ref.startswith("/"):
        return ref.lstrip("/")
    parts = [part for part in base.split("/") if part and part != "."]
    for part in ref.split("/"):
        if not part or part == ".":
            continue
        if part == "..":
            if parts:
                parts.pop()
            continue
        parts.append(part)
    return "/".join(parts)


def package_dir(path: Optional[str]) -> str:
    path = path or ""
    idx = path.rfind("/")
    if idx == -1:
        return ""
    return path[: idx + 1]


def strip_fragment(href: Optional[str]) -> str:
    href = (href or "").strip()
    return href.split("#", 1)[0]


def decoded_path(path: str) -> str:
    # Some EPUBs percent-encode filenames in manifest and TOC hrefs.
    return unquote(path)
