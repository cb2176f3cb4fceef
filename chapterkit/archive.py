from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import IO, Union

from bs4.dammit import UnicodeDammit

from .errors import ArchiveOpenError

ArchiveSource = Union[bytes, bytearray, str, Path, IO[bytes]]


class ZipArchive:
    """Read-only view over the entries of an EPUB zip container."""

    def __init__(self, zf: zipfile.ZipFile) -> None:
        self._zf = zf
        self._names = {info.filename for info in zf.infolist() if not info.is_dir()}

    @property
    def names(self) -> list[str]:
        return sorted(self._names)

    def has_entry(self, path: str) -> bool:
        return bool(path) and path in self._names

    def read_bytes(self, path: str) -> bytes:
        if not self.has_entry(path):
            raise KeyError(path)
        return self._zf.read(path)

    def read_text(self, path: str) -> str:
        return decode_text(self.read_bytes(path))

    def close(self) -> None:
        self._zf.close()

    def __enter__(self) -> "ZipArchive":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()


def decode_text(data: bytes) -> str:
    """Decode a chapter document.

    A byte order mark wins, then the XML or meta charset declaration, then
    UTF-8, then whatever an installed charset detector guesses. Undecodable
    input falls back to UTF-8 with replacement characters.
    """
    dammit = UnicodeDammit(
        data, is_html=True, user_encodings=["utf-8"], exclude_encodings=["windows-1252"]
    )
    if dammit.unicode_markup is None:
        return data.decode("utf-8", errors="replace")
    return dammit.unicode_markup


def open_archive(source: ArchiveSource) -> ZipArchive:
    if isinstance(source, (bytes, bytearray)):
        handle: Union[str, IO[bytes]] = io.BytesIO(bytes(source))
    elif isinstance(source, (str, Path)):
        handle = str(source)
    else:
        handle = source
    try:
        zf = zipfile.ZipFile(handle)
    except (zipfile.BadZipFile, OSError) as exc:
        raise ArchiveOpenError(f"Cannot open EPUB archive: {exc}") from exc
    return ZipArchive(zf)
