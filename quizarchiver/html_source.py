# Moodle Quiz Archiver
# Copyright (C) 2026 Niels Gandraß <niels@gandrass.de>
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <http://www.gnu.org/licenses/>.

import html
import re
from bisect import bisect_right

from bs4 import BeautifulSoup, Tag

REGEX_START_TAG = re.compile(r'''<(?P<name>[a-zA-Z][^\s/>]*)(?:[^>"']|"[^"]*"|'[^']*')*>''')
"""Matches a complete start tag, including quoted attribute values that contain '>'"""

REGEX_ATTRIBUTE = re.compile(r'''(?P<name>[^\s"'>/=]+)(?:\s*=\s*(?P<value>"[^"]*"|'[^']*'|[^\s"'>]+))?''')
"""Matches a single attribute inside a start tag"""

REGEX_END_TAG_HEAD = re.compile(r'</head\s*>', re.IGNORECASE)
"""Matches the end tag of the document head"""

REGEX_LEADING_DOCTYPE = re.compile(r'^\s*<!DOCTYPE[^>]*>', re.IGNORECASE)
"""Matches a doctype declaration at the start of a document"""


class HtmlSourceEditor:
    """
    Applies edits to the source text of an HTML document. Elements are located
    via a BeautifulSoup tree of the same source, but only the edited spans of
    the source are rewritten. Everything else is kept byte by byte.
    """

    def __init__(self, markup: str):
        self.markup = markup
        self.soup = BeautifulSoup(markup, 'html.parser')
        self._line_offsets = [0] + [m.end() for m in re.finditer('\n', markup)]
        self._edits = []

    def get_start_tag_span(self, tag: Tag) -> tuple[int, int] | None:
        """
        Locates the start tag of the given element inside the source

        :param tag: Element of self.soup
        :return: Tuple of start and end offset of the start tag or None if the
        element can not be located
        """
        if tag.sourceline is None or tag.sourcepos is None:
            return None

        start = self._line_offsets[tag.sourceline - 1] + tag.sourcepos
        match = REGEX_START_TAG.match(self.markup, start)
        if not match or match.group('name').lower() != tag.name:
            return None

        return start, match.end()

    def replace_start_tag(self, tag: Tag, changed: dict[str, str], added: dict[str, str]) -> bool:
        """
        Rewrites the start tag of the given element. The values of existing
        attributes in changed are replaced in-place and the attributes in added
        are inserted directly after the tag name.

        :param tag: Element of self.soup
        :param changed: Attributes whose value should be replaced
        :param added: Attributes to add
        :return: True if the edit was recorded, False if the element could not
        be located
        """
        span = self.get_start_tag_span(tag)
        if span is None:
            return False

        start, end = span
        source = self.markup[start:end]
        name_end = REGEX_START_TAG.match(source).end('name')

        # The last occurrence of an attribute wins, as in the parsed tree
        attributes = {}
        for match in REGEX_ATTRIBUTE.finditer(source, name_end, len(source) - 1):
            attributes[match.group('name').lower()] = match

        replaced = source
        for name, match in sorted(
            ((n, attributes[n.lower()]) for n in changed if n.lower() in attributes),
            key=lambda item: item[1].start(),
            reverse=True
        ):
            replaced = replaced[:match.start()] + self._render_attribute(name, changed[name]) + replaced[match.end():]

        if added:
            rendered = ''.join(' ' + self._render_attribute(name, value) for name, value in added.items())
            replaced = replaced[:name_end] + rendered + replaced[name_end:]

        self._edits.append((start, end, replaced))
        return True

    def append_to_head(self, content: str) -> None:
        """
        Adds content to the end of the document head. A head element is created
        if the document has none.

        :param content: Raw HTML to add
        :return: None
        """
        head = self.soup.head
        span = self.get_start_tag_span(head) if head else None
        if span:
            end_tag = REGEX_END_TAG_HEAD.search(self.markup, span[1])
            self.insert(end_tag.start() if end_tag else span[1], content)
            return

        html_tag = self.soup.html
        span = self.get_start_tag_span(html_tag) if html_tag else None
        if span:
            pos = span[1]
        else:
            doctype = REGEX_LEADING_DOCTYPE.match(self.markup)
            pos = doctype.end() if doctype else 0

        self.insert(pos, f'<head>{content}</head>')

    def insert(self, pos: int, content: str) -> None:
        self._edits.append((pos, pos, content))

    def render(self) -> str:
        """
        Applies all recorded edits to the source

        :return: Edited HTML source
        """
        result = self.markup
        # Later edits at the same position end up behind earlier ones
        for start, end, content in sorted(reversed(self._edits), key=lambda edit: edit[0], reverse=True):
            result = result[:start] + content + result[end:]

        return result

    @classmethod
    def render_start_tag(cls, name: str, attributes: dict[str, str]) -> str:
        return f'<{name}' + ''.join(' ' + cls._render_attribute(k, v) for k, v in attributes.items()) + '>'

    @staticmethod
    def _render_attribute(name: str, value: str) -> str:
        return f'{name}="{html.escape(value, quote=True)}"'
