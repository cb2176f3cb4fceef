from pathlib import Path
from typing import Callable, Union

import pytest

from epub_samples import write_epub


@pytest.fixture
def make_epub(tmp_path: Path) -> Callable[..., Path]:
    counter = {"n": 0}

    def _make(files: dict[str, Union[str, bytes]], name: str = "") -> Path:
        counter["n"] += 1
        return write_epub(tmp_path / (name or f"book-{counter['n']}.epub"), files)

    return _make
