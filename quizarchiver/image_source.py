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

import re
from abc import ABCMeta, abstractmethod
from typing import Dict, List

from .type import ImageSourceType


class ImageInliningError(Exception):
    """
    A single image could not be inlined into a report
    """


class ImageSourceMatch:
    """
    Result of classifying an image URL

    :param sourcetype: Addressing scheme the URL follows
    :param url: The classified absolute URL
    :param groups: Named parts extracted from the URL
    """

    def __init__(self, sourcetype: ImageSourceType, url: str, groups: Dict[str, str | None] = None):
        self.sourcetype = sourcetype
        self.url = url
        self.groups = groups if groups else {}

    def __getitem__(self, item):
        return self.groups[item]

    def get(self, item, default=None):
        value = self.groups.get(item)
        return value if value else default


class ImageSourceMatcher(metaclass=ABCMeta):
    """
    Abstract base class for all image URL addressing schemes
    """

    SOURCE_TYPE: ImageSourceType = None

    @abstractmethod
    def match(self, url: str) -> ImageSourceMatch | None:
        """
        Tries to match the given absolute URL against this addressing scheme

        :param url: Absolute image URL
        :return: Match with all extracted URL parts or None if the URL does not
        follow this scheme
        :raises ImageInliningError: If the URL belongs to this scheme but is
        malformed
        """
        pass


class PluginfileImageSourceMatcher(ImageSourceMatcher):
    """
    Files served by the Moodle file API via pluginfile.php
    """

    SOURCE_TYPE = ImageSourceType.PLUGINFILE

    REGEX = re.compile(r'^(https?://[^/]+)?(/pluginfile\.php)(?P<fullpath>/(?P<contextid>[^/]+)/(?P<component>[^/]+)/(?P<filearea>[^/]+)(/(?P<itemid>\d+))?/(?P<args>.*)?/(?P<filename>[^/?&#]+))')
    """Regex for Moodle file API URLs"""

    REGEX_QUESTION = re.compile(r'^(https?://[^/]+)?(/pluginfile\.php)(?P<fullpath>/(?P<contextid>[^/]+)/(?P<component>[^/]+)/(?P<filearea>[^/]+)/(?P<questionbank_id>[^/]+)/(?P<question_slot>[^/]+)/(?P<itemid>\d+)/(?P<filename>[^/?&#]+))')
    """Regex for Moodle file API URLs of questions and question types, carrying the question usage and slot before the itemid"""

    def match(self, url: str) -> ImageSourceMatch | None:
        m = self.REGEX.match(url)
        if not m:
            return None

        # Question and qtype files insert questionbank_id and question_slot after the filearea
        if m.group('component') == 'question' or m.group('component').startswith('qtype_'):
            m = self.REGEX_QUESTION.match(url)
            if not m:
                raise ImageInliningError(f'Malformed question pluginfile URL: {url}')
            return ImageSourceMatch(ImageSourceType.PLUGINFILE_QUESTION, url, m.groupdict())

        return ImageSourceMatch(ImageSourceType.PLUGINFILE, url, m.groupdict())


class StackplotImageSourceMatcher(ImageSourceMatcher):
    """
    Plots rendered by qtype_stack, cached inside the Moodle data directory
    """

    SOURCE_TYPE = ImageSourceType.STACKPLOT

    REGEX = re.compile(r'^(https?://[^/]+)?(/question/type/stack/plot\.php/)(?P<filename>[^/#?&]+\.(png|svg))')
    """Regex for URLs of qtype_stack plots"""

    def match(self, url: str) -> ImageSourceMatch | None:
        m = self.REGEX.match(url)
        if not m:
            return None

        return ImageSourceMatch(ImageSourceType.STACKPLOT, url, m.groupdict())


class GenericImageSourceMatcher(ImageSourceMatcher):
    """
    Any other web URL. Matches everything and must therefore come last.
    """

    SOURCE_TYPE = ImageSourceType.GENERIC

    def match(self, url: str) -> ImageSourceMatch | None:
        return ImageSourceMatch(ImageSourceType.GENERIC, url)


DEFAULT_IMAGE_SOURCE_MATCHERS: List[ImageSourceMatcher] = [
    PluginfileImageSourceMatcher(),
    StackplotImageSourceMatcher(),
    GenericImageSourceMatcher(),
]
"""Addressing schemes in the order they are tried"""


def classify_image_url(url: str, matchers: List[ImageSourceMatcher] = None) -> ImageSourceMatch:
    """
    Classifies the given absolute image URL against the given addressing
    schemes, trying them in order

    :param url: Absolute image URL
    :param matchers: Addressing schemes to try. Defaults to DEFAULT_IMAGE_SOURCE_MATCHERS
    :return: First successful match
    :raises ImageInliningError: If a scheme rejected the URL or no scheme matched
    """
    for matcher in (matchers if matchers is not None else DEFAULT_IMAGE_SOURCE_MATCHERS):
        match = matcher.match(url)
        if match is not None:
            return match

    raise ImageInliningError(f'No image source matched URL: {url}')
