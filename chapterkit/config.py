from __future__ import annotations

import json
from dataclasses import dataclass, fields, replace
from pathlib import Path

DEFAULT_PACKAGE_PATHS = ("OEBPS/content.opf", "content.opf", "EPUB/content.opf")
DEFAULT_TITLE_SELECTORS = ("h1", "h2", '[class*="title"]', '[class*="Title"]', "h3")
DEFAULT_NCX_ITEM_ID = "ncx"
DEFAULT_PLACEHOLDER_PREFIX = "Chapter"
DEFAULT_MIN_TITLE_LENGTH = 2
DEFAULT_MAX_WORKERS = 4


@dataclass(frozen=True)
class ExtractorConfig:
    package_paths: tuple[str, ...] = DEFAULT_PACKAGE_PATHS
    ncx_item_id: str = DEFAULT_NCX_ITEM_ID
    title_selectors: tuple[str, ...] = DEFAULT_TITLE_SELECTORS
    min_title_length: int = DEFAULT_MIN_TITLE_LENGTH
    placeholder_prefix: str = DEFAULT_PLACEHOLDER_PREFIX
    max_workers: int = DEFAULT_MAX_WORKERS

    def placeholder_title(self, index: int) -> str:
        """Title for the chapter at 0-based ``index`` when nothing else resolves."""
        return f"{self.placeholder_prefix} {index + 1}"


def _load_json(path: Path) -> dict:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Extractor config must be a JSON object: {path}")
    return data


def _string_tuple(value: object, key: str, path: Path) -> tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, list):
        raise ValueError(f"{key} must be a list of strings: {path}")
    cleaned = tuple(str(item).strip() for item in value if str(item).strip())
    if not cleaned:
        raise ValueError(f"{key} must not be empty: {path}")
    return cleaned


def _positive_int(value: object, key: str, path: Path) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{key} must be an integer: {path}")
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{key} must be an integer: {path}") from exc
    if number < 1:
        raise ValueError(f"{key} must be >= 1: {path}")
    return number


def load_extractor_config(path: Path) -> ExtractorConfig:
    data = _load_json(path)
    known = {field.name for field in fields(ExtractorConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown extractor config keys {unknown}: {path}")

    config = ExtractorConfig()
    overrides: dict = {}
    if "package_paths" in data:
        overrides["package_paths"] = _string_tuple(data["package_paths"], "package_paths", path)
    if "title_selectors" in data:
        overrides["title_selectors"] = _string_tuple(
            data["title_selectors"], "title_selectors", path
        )
    if "ncx_item_id" in data:
        ncx_item_id = str(data["ncx_item_id"] or "").strip()
        if not ncx_item_id:
            raise ValueError(f"ncx_item_id must not be empty: {path}")
        overrides["ncx_item_id"] = ncx_item_id
    if "placeholder_prefix" in data:
        prefix = str(data["placeholder_prefix"] or "").strip()
        overrides["placeholder_prefix"] = prefix or DEFAULT_PLACEHOLDER_PREFIX
    if "min_title_length" in data:
        overrides["min_title_length"] = _positive_int(
            data["min_title_length"], "min_title_length", path
        )
    if "max_workers" in data:
        overrides["max_workers"] = _positive_int(data["max_workers"], "max_workers", path)
    return replace(config, **overrides)
