from __future__ import annotations

import argparse
import json
import logging
import re
import sys
import time
import unicodedata
from pathlib import Path
from typing import Optional

from .config import ExtractorConfig, load_extractor_config
from .errors import ChapterkitError
from .extractor import CHAPTER_MEDIA_TYPE, EpubExtractor


def slugify(text: str) -> str:
    text = unicodedata.normalize("NFKD", text)
    text = text.encode("ascii", "ignore").decode("ascii")
    text = text.lower()
    text = re.sub(r"[^a-z0-9]+", "-", text)
    text = text.strip("-")
    return text[:60] or "chapter"


def _load_config(args: argparse.Namespace) -> Optional[ExtractorConfig]:
    if not getattr(args, "config", None):
        return None
    return load_extractor_config(Path(args.config))


def _open_extractor(args: argparse.Namespace, path: Path) -> EpubExtractor:
    if not path.exists():
        raise FileNotFoundError(f"EPUB not found: {path}")
    extractor = EpubExtractor(path, config=_load_config(args))
    extractor.initialize()
    return extractor


def _titles(args: argparse.Namespace) -> int:
    with _open_extractor(args, Path(args.epub)) as extractor:
        for idx, title in enumerate(extractor.chapter_titles()):
            print(f"{idx}\t{title}")
    return 0


def _show(args: argparse.Namespace) -> int:
    with _open_extractor(args, Path(args.epub)) as extractor:
        data = extractor.chapter_document(args.index)
    if args.output:
        out_path = Path(args.output)
        out_path.write_bytes(data)
        print(f"Wrote {len(data)} bytes ({CHAPTER_MEDIA_TYPE}) to {out_path}")
        return 0
    sys.stdout.buffer.write(data)
    sys.stdout.flush()
    return 0


def _info(args: argparse.Namespace) -> int:
    with _open_extractor(args, Path(args.epub)) as extractor:
        payload = {
            "source_epub": str(args.epub),
            "package": extractor.package_path,
            "metadata": extractor.metadata,
            "chapter_count": extractor.chapter_count(),
            "diagnostics": [str(diagnostic) for diagnostic in extractor.diagnostics],
        }
    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


def _ingest(args: argparse.Namespace) -> int:
    input_path = Path(args.input)
    out_dir = Path(args.out)
    chapters_dir = out_dir / "chapters"
    if chapters_dir.exists() and any(chapters_dir.iterdir()) and not args.overwrite:
        sys.stderr.write(
            f"Chapters already exist in {chapters_dir}. Use --overwrite to replace them.\n"
        )
        return 2

    with _open_extractor(args, input_path) as extractor:
        if not extractor.chapter_count():
            sys.stderr.write("No chapters found in EPUB.\n")
            return 2
        chapters_dir.mkdir(parents=True, exist_ok=True)
        if args.overwrite:
            for stale in chapters_dir.glob("*.xhtml"):
                stale.unlink()

        toc_items = []
        for idx, title in enumerate(extractor.chapter_titles()):
            filename = f"{idx + 1:04d}-{slugify(title)}.xhtml"
            out_path = chapters_dir / filename
            out_path.write_bytes(extractor.chapter_document(idx))
            toc_items.append(
                {
                    "index": idx,
                    "title": title,
                    "path": out_path.relative_to(out_dir).as_posix(),
                    "media_type": CHAPTER_MEDIA_TYPE,
                }
            )
        toc_data = {
            "created_unix": int(time.time()),
            "source_epub": str(input_path),
            "metadata": extractor.metadata,
            "chapters": toc_items,
        }

    toc_path = out_dir / "toc.json"
    toc_path.write_text(
        json.dumps(toc_data, ensure_ascii=False, indent=2) + "\n",
        encoding="utf-8",
    )
    print(f"Wrote {len(toc_items)} chapters to {chapters_dir}")
    print(f"TOC metadata saved to {toc_path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chapterkit")
    parser.add_argument("--config", help="Path to a JSON extractor config")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="Log more (repeatable)"
    )
    subparsers = parser.add_subparsers(dest="command")

    titles = subparsers.add_parser("titles", help="List chapter titles in reading order")
    titles.add_argument("epub", help="Path to an .epub file")
    titles.set_defaults(func=_titles)

    show = subparsers.add_parser("show", help="Write one chapter document")
    show.add_argument("epub", help="Path to an .epub file")
    show.add_argument("index", type=int, help="0-based chapter index")
    show.add_argument("--output", "-o", help="Write to this file instead of stdout")
    show.set_defaults(func=_show)

    info = subparsers.add_parser("info", help="Print book metadata as JSON")
    info.add_argument("epub", help="Path to an .epub file")
    info.set_defaults(func=_info)

    ingest = subparsers.add_parser(
        "ingest", help="Extract every chapter document plus toc.json"
    )
    ingest.add_argument("--input", required=True, help="Path to input .epub")
    ingest.add_argument(
        "--out",
        "--output",
        required=True,
        dest="out",
        help="Output book directory (e.g., out/book)",
    )
    ingest.add_argument(
        "--overwrite", action="store_true", help="Overwrite existing chapter files"
    )
    ingest.set_defaults(func=_ingest)

    return parser


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    _configure_logging(args.verbose)
    try:
        return int(args.func(args))
    except (ChapterkitError, FileNotFoundError, ValueError) as exc:
        sys.stderr.write(f"{exc}\n")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
