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
from urllib.parse import urlsplit

REGEX_URL_WITHOUT_QUERY_AND_FRAGMENT = re.compile(r'^([^?&#]+)')
"""Matches everything of an URL up to the first query, parameter or fragment delimiter"""

REGEX_NON_DIRECTORY_PATH_SEGMENT = re.compile(r'/[^/]*$')
"""Matches the trailing file segment of a path"""

REGEX_PATH_COLLAPSE = [
    re.compile(r'(/\.?/)'),
    re.compile(r'/(?!\.\.)[^/]+/\.\./'),
]
"""Path sequences ('//', '/./' and '/foo/../') that are replaced with a single '/'"""

REGEX_FILENAME_FORBIDDEN_CHARACTERS = re.compile(r'[\x00-\x1f\x7f&<>"`|\':\\/]')
"""Characters that are stripped from filenames"""


def strip_query_and_fragment(url: str) -> str:
    """
    Removes any query string, parameters and fragment from the given URL

    :param url: URL to clean
    :return: URL without query and fragment. Unchanged if the URL starts with
    one of the delimiters
    """
    match = REGEX_URL_WITHOUT_QUERY_AND_FRAGMENT.match(url)
    return match.group(1) if match else url


def ensure_absolute_url(url: str, base: str) -> str:
    """
    Takes any URL and ensures that it will become an absolute URL. Relative
    URLs are resolved against $base. Already absolute URLs are returned as
    they are.

    :param url: URL to ensure to be absolute
    :param base: Base to resolve relative URLs against
    :return: Absolute URL
    """
    # Already absolute
    if urlsplit(url).scheme != '':
        return url

    # Queries and anchors
    if url.startswith('#') or url.startswith('?'):
        return base + url

    base_parts = urlsplit(base)
    path = REGEX_NON_DIRECTORY_PATH_SEGMENT.sub('', base_parts.path)

    # URL points to root
    if url.startswith('/'):
        path = ''

    absolute = f'{base_parts.netloc}{path}/{url}'

    n = 1
    while n > 0:
        n = 0
        for regex in REGEX_PATH_COLLAPSE:
            absolute, count = regex.subn('/', absolute)
            n += count

    return f'{base_parts.scheme}://{absolute}'


def get_file_extension(url: str) -> str:
    """
    Extracts the extension of the last path segment of the given URL

    :param url: URL or path to get the extension from
    :return: Extension without leading dot, as is. Empty string if the last
    segment has no extension
    """
    basename = url.rstrip('/').rsplit('/', 1)[-1]
    if '.' not in basename:
        return ''

    return basename.rsplit('.', 1)[1]


def clean_filename(filename: str) -> str:
    """
    Strips all characters from the given filename that could be used to break
    out of a directory

    :param filename: Filename to clean
    :return: Safe filename. Empty string if nothing usable remains
    """
    cleaned = REGEX_FILENAME_FORBIDDEN_CHARACTERS.sub('', filename)
    if cleaned in ['.', '..']:
        return ''

    return cleaned
