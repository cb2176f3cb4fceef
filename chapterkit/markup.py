from __future__ import annotations

import re

from bs4 import BeautifulSoup
from lxml import etree

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_whitespace(value: str) -> str:
    return _WHITESPACE_RE.sub(" ", value or "").strip()


def node_text(node: object) -> str:
    text = getattr(node, "get_text", lambda *_args, **_kwargs: "")(separator="")
    return normalize_whitespace(text)


def parse_xml(data: bytes | str) -> BeautifulSoup:
    return BeautifulSoup(data, "lxml-xml")


def parse_html(data: bytes | str) -> BeautifulSoup:
    return BeautifulSoup(data, "lxml")


def parse_xml_tree(data: bytes) -> etree._Element:
    """Strict, namespace-aware parse for XPath queries.

    Raises ``lxml.etree.XMLSyntaxError`` on malformed input.
    """
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    return etree.fromstring(data, parser=parser)
