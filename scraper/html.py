"""
Thin query layer over BeautifulSoup used by every parser.

Lookups that the page is expected to satisfy go through ``require`` /
``require_attr`` / ``require_text``, which raise ``ParsingError`` naming the
field being extracted instead of failing on ``None`` further down.
"""

import re
from typing import Iterator, Optional

from bs4 import BeautifulSoup
from bs4.element import Tag

from utils.logger import ParsingError


def _clean_text(text: str) -> str:
    """Clean text by collapsing whitespace, newlines, and tabs."""
    if not text:
        return ""
    return re.sub(r'\s+', ' ', str(text)).strip()


class HtmlElement:
    """One element of a parsed page."""

    __slots__ = ('_tag',)

    def __init__(self, tag: Tag):
        self._tag = tag

    @property
    def name(self) -> str:
        return self._tag.name

    def text(self) -> str:
        """Concatenated text content, whitespace collapsed."""
        return _clean_text(self._tag.get_text(" "))

    def attr(self, name: str) -> Optional[str]:
        value = self._tag.get(name)
        if isinstance(value, list):
            # bs4 splits multi-valued attributes such as class
            return ' '.join(value)
        return value

    def select(self, selector: str) -> Iterator['HtmlElement']:
        for tag in self._tag.select(selector):
            yield HtmlElement(tag)

    def select_first(self, selector: str) -> Optional['HtmlElement']:
        tag = self._tag.select_one(selector)
        return HtmlElement(tag) if tag is not None else None

    def require(self, selector: str, field: str) -> 'HtmlElement':
        element = self.select_first(selector)
        if element is None:
            raise ParsingError(field, f"no element matches '{selector}'")
        return element

    def require_attr(self, name: str, field: str) -> str:
        value = self.attr(name)
        if value is None:
            raise ParsingError(field, f"<{self.name}> has no '{name}' attribute")
        return value

    def require_text(self, selector: str, field: str) -> str:
        return self.require(selector, field).text()

    def text_excluding(self, selector: str) -> str:
        """Text content leaving out descendants matching ``selector``, such as badges."""
        skipped = {id(string) for tag in self._tag.select(selector) for string in tag.find_all(string=True)}
        kept = [string for string in self._tag.find_all(string=True) if id(string) not in skipped]
        return _clean_text(" ".join(kept))

    def __repr__(self) -> str:
        return f"HtmlElement(<{self.name}>)"


class HtmlDocument(HtmlElement):
    """A parsed HTML page."""

    __slots__ = ()

    @classmethod
    def parse(cls, raw_html: str) -> 'HtmlDocument':
        return cls(BeautifulSoup(raw_html, 'html.parser'))
