import pytest

from chapterkit import archive as archive_util
from chapterkit import package as package_util
from chapterkit.errors import PackageNotFoundError, PackageParseError
from chapterkit.package import TitleSource
from epub_samples import package_xml, xhtml

METADATA = """
    <dc:title>The  Sample
      Book</dc:title>
    <dc:creator>Ada Writer</dc:creator>
    <dc:creator>Bo Editor</dc:creator>
    <dc:language>en</dc:language>
    <dc:publisher>Small Press</dc:publisher>
    <dc:date>2019-04-01</dc:date>
    <dc:identifier id="bookid">urn:uuid:1234</dc:identifier>
"""


def _parse(make_epub, files: dict, package_path: str = "OEBPS/content.opf"):
    path = make_epub(files)
    zipped = archive_util.open_archive(path)
    return package_util.parse_package(zipped, package_path)


def test_parse_package_resolves_paths_and_preserves_spine_order(make_epub) -> None:
    items = [
        {"id": "ncx", "href": "toc.ncx", "media-type": "application/x-dtbncx+xml"},
        {"id": "c2", "href": "Text/ch2.xhtml"},
        {"id": "c1", "href": "Text/ch1.xhtml"},
        {"id": "art", "href": "../shared/art.xhtml"},
    ]
    info = _parse(
        make_epub,
        {
            "OEBPS/content.opf": package_xml(items, ["c1", "c2", "art"]),
            "OEBPS/Text/ch1.xhtml": xhtml("<p>1</p>"),
            "OEBPS/Text/ch2.xhtml": xhtml("<p>2</p>"),
            "shared/art.xhtml": xhtml("<p>art</p>"),
        },
    )
    assert [chapter.id for chapter in info.chapters] == ["c1", "c2", "art"]
    assert [chapter.archive_path for chapter in info.chapters] == [
        "OEBPS/Text/ch1.xhtml",
        "OEBPS/Text/ch2.xhtml",
        "shared/art.xhtml",
    ]
    assert info.chapters[2].source_href == "../shared/art.xhtml"
    assert info.nav_path == "OEBPS/toc.ncx"
    assert info.nav_document_path is None


def test_parse_package_drops_unknown_spine_ids_and_numbers_placeholders(make_epub) -> None:
    items = [
        {"id": "a", "href": "a.xhtml"},
        {"id": "b", "href": "b.xhtml", "title": "  Declared   Title "},
        {"id": "c", "href": "c.xhtml"},
    ]
    info = _parse(
        make_epub,
        {"content.opf": package_xml(items, ["a", "ghost", "b", "c"])},
        package_path="content.opf",
    )
    assert [chapter.id for chapter in info.chapters] == ["a", "b", "c"]
    assert [chapter.title for chapter in info.chapters] == [
        "Chapter 1",
        "Declared Title",
        "Chapter 3",
    ]
    assert [chapter.title_source for chapter in info.chapters] == [
        TitleSource.PLACEHOLDER,
        TitleSource.MANIFEST,
        TitleSource.PLACEHOLDER,
    ]
    assert len(info.diagnostics) == 1
    assert "ghost" in info.diagnostics[0].message


def test_parse_package_finds_ncx_through_spine_toc_and_nav_document(make_epub) -> None:
    items = [
        {"id": "toc-file", "href": "nav/toc.ncx", "media-type": "application/x-dtbncx+xml"},
        {"id": "nav", "href": "nav/nav.xhtml", "properties": "nav scripted"},
        {"id": "c1", "href": "c1.xhtml"},
    ]
    info = _parse(
        make_epub,
        {"EPUB/package.opf": package_xml(items, ["c1"], spine_toc="toc-file")},
        package_path="EPUB/package.opf",
    )
    assert info.nav_path == "EPUB/nav/toc.ncx"
    assert info.nav_document_path == "EPUB/nav/nav.xhtml"


def test_parse_package_uses_decoded_path_when_only_that_exists(make_epub) -> None:
    items = [{"id": "c1", "href": "Chapter%20One.xhtml"}]
    info = _parse(
        make_epub,
        {
            "OEBPS/content.opf": package_xml(items, ["c1"]),
            "OEBPS/Chapter One.xhtml": xhtml("<p>1</p>"),
        },
    )
    assert info.chapters[0].archive_path == "OEBPS/Chapter One.xhtml"
    assert info.chapters[0].source_href == "Chapter%20One.xhtml"


def test_parse_package_reads_metadata(make_epub) -> None:
    info = _parse(
        make_epub,
        {"OEBPS/content.opf": package_xml([], [], metadata=METADATA)},
    )
    assert info.chapters == []
    assert info.metadata["title"] == "The Sample Book"
    assert info.metadata["authors"] == ["Ada Writer", "Bo Editor"]
    assert info.metadata["language"] == "en"
    assert info.metadata["publisher"] == "Small Press"
    assert info.metadata["year"] == "2019"
    assert info.metadata["identifier"] == "urn:uuid:1234"
    assert info.metadata["description"] == ""


def test_parse_package_missing_document(make_epub) -> None:
    with pytest.raises(PackageNotFoundError):
        _parse(make_epub, {"other.opf": "<package/>"})


def test_parse_package_rejects_non_package_xml(make_epub) -> None:
    with pytest.raises(PackageParseError):
        _parse(make_epub, {"OEBPS/content.opf": "<html><body>nope</body></html>"})
