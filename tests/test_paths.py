import pytest

from chapterkit import paths


@pytest.mark.parametrize(
    ("base", "ref", "expected"),
    [
        ("a/b/", "../c", "a/c"),
        ("a/b", "/x/y", "x/y"),
        ("", "../x", "x"),
        ("a", "", "a"),
        ("OEBPS/", "Text/ch1.xhtml", "OEBPS/Text/ch1.xhtml"),
        ("OEBPS/Text/", "../../../../img.png", "img.png"),
        ("a//b/", "c//d", "a/b/c/d"),
        ("OEBPS/", "./Text/ch1.xhtml", "OEBPS/Text/ch1.xhtml"),
        ("OEBPS/./Text/", ".././img.png", "OEBPS/img.png"),
        ("", "", ""),
    ],
)
def test_resolve_path(base: str, ref: str, expected: str) -> None:
    assert paths.resolve_path(base, ref) == expected


def test_resolve_path_accepts_none() -> None:
    assert paths.resolve_path(None, None) == ""
    assert paths.resolve_path("OEBPS/", None) == "OEBPS"


def test_resolve_path_strips_every_leading_separator() -> None:
    assert paths.resolve_path("OEBPS/", "//EPUB/nav.xhtml") == "EPUB/nav.xhtml"


def test_package_dir() -> None:
    assert paths.package_dir("OEBPS/content.opf") == "OEBPS/"
    assert paths.package_dir("a/b/content.opf") == "a/b/"
    assert paths.package_dir("content.opf") == ""
    assert paths.package_dir("") == ""


def test_strip_fragment() -> None:
    assert paths.strip_fragment("ch1.xhtml#sec2") == "ch1.xhtml"
    assert paths.strip_fragment(" ch1.xhtml ") == "ch1.xhtml"
    assert paths.strip_fragment("#top") == ""
    assert paths.strip_fragment(None) == ""
