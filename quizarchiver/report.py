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

import base64
import logging
import os
from pathlib import Path
from urllib.parse import unquote, urlsplit, urlunsplit

import requests
from bs4 import Tag

from config import Config
from .file_storage import FileStorage, LocalFileStorage
from .html_source import HtmlSourceEditor
from .image_source import ImageInliningError, ImageSourceMatch, classify_image_url
from .moodle_site import MoodleSite
from .requests_factory import RequestsFactory
from .type import ImageSourceType
from .url_utils import clean_filename, ensure_absolute_url, get_file_extension, strip_query_and_fragment


class Report:
    """
    Post-processing of rendered quiz attempt reports. Turns a generated HTML
    page into a standalone document that no longer depends on the Moodle
    instance it originates from.
    """

    ALLOWED_IMAGE_TYPES = {
        'png': 'image/png',
        'jpg': 'image/jpeg',
        'jpeg': 'image/jpeg',
        'svg': 'image/svg+xml',
        'gif': 'image/gif',
        'webp': 'image/webp',
        'bmp': 'image/bmp',
        'ico': 'image/x-icon',
        'tiff': 'image/tiff',
    }
    """Mapping of file extensions to MIME types of images that are allowed to be inlined"""

    INLINING_FAILED_ATTRIBUTE = 'x-debug-inlining-failed'
    """Attribute that marks <img> elements whose image could not be inlined"""

    STACKPLOT_DIRECTORY = os.path.join('stack', 'plots')
    """Directory of cached qtype_stack plots, relative to the Moodle dataroot"""

    MINIMAL_PAGE_CSS = """
        nav.navbar {
            display: none !important;
        }

        footer {
            display: none !important;
        }

        div#page {
            margin-top: 0 !important;
            padding-left: 0 !important;
            padding-right: 0 !important;
            height: initial !important;
        }

        div#page-wrapper {
            height: initial !important;
        }
    """
    """CSS that hides all page elements that are not part of the attempt itself"""

    def __init__(self, site: MoodleSite, file_storage: FileStorage, session: requests.Session = None):
        """
        :param site: Settings of the Moodle instance the reports originate from
        :param file_storage: Store to read pluginfile images from
        :param session: Requests session for downloading generic images. A new
        one is created if None
        """
        self.logger = logging.getLogger(f"{__name__}")
        self.site = site
        self.file_storage = file_storage
        self.session = session if session else RequestsFactory.create_session(verify=Config.IMAGE_FETCH_VERIFY_TLS)

    @classmethod
    def from_config(cls) -> 'Report':
        """
        Creates a report post-processor for the Moodle instance and file
        storage that are set in the global app configuration

        :return: Configured Report
        """
        return cls(
            site=MoodleSite.from_config(),
            file_storage=LocalFileStorage(Config.FILESTORAGE_PATH),
        )

    def generate_full_page(self, html: str, fix_relative_urls: bool = True, minimal: bool = True, inline_images: bool = True) -> str:
        """
        Post-processes a full HTML page of a rendered quiz attempt. The page is
        kept as it is apart from the added head elements and the attributes of
        processed images.

        :param html: HTML DOM of the rendered quiz attempt, including header and footer
        :param fix_relative_urls: If True, all relative URLs are forcefully
        mapped to the Moodle base URL
        :param minimal: If True, unnecessary elements (e.g. navbar) are hidden
        :param inline_images: If True, all images are inlined as base64 to
        prevent rendering issues on user side
        :return: Processed HTML DOM
        """
        editor = HtmlSourceEditor(html)

        head_content = ''
        if fix_relative_urls:
            head_content += HtmlSourceEditor.render_start_tag('base', {'href': self.site.wwwroot})

        if minimal:
            # Elements are hidden via CSS instead of removing them from the DOM
            # to not depend on the structure of the generated page
            head_content += f'<style>{self.MINIMAL_PAGE_CSS}</style>'

        if head_content:
            editor.append_to_head(head_content)

        if inline_images:
            self._inline_all_images(editor)

        return editor.render()

    def inline_images(self, html: str) -> str:
        """
        Replaces the sources of all images inside the given HTML document with
        base64 encoded data URIs. Images that can not be inlined keep their
        source and are marked with INLINING_FAILED_ATTRIBUTE. Everything outside
        of the <img> start tags is left untouched.

        :param html: HTML document to process
        :return: Processed HTML document
        """
        editor = HtmlSourceEditor(html)
        self._inline_all_images(editor)

        return editor.render()

    def _inline_all_images(self, editor: HtmlSourceEditor) -> None:
        images = editor.soup.find_all('img')
        num_inlined = 0

        for img in images:
            try:
                sourcetype = self.convert_image_to_base64(img)
                recorded = editor.replace_start_tag(img, changed={'src': img['src']}, added={})
                num_inlined += 1
                self.logger.debug(f'Inlined {sourcetype} image')
            except ImageInliningError as e:
                img[self.INLINING_FAILED_ATTRIBUTE] = 'true'
                recorded = editor.replace_start_tag(img, changed={}, added={self.INLINING_FAILED_ATTRIBUTE: 'true'})
                self.logger.debug(f'Image inlining failed: {str(e)}')

            if not recorded:
                self.logger.warning(f'Could not locate <img> in line {img.sourceline} of the document source. Leaving it unchanged.')

        if num_inlined < len(images):
            self.logger.warning(f'Failed to inline {len(images) - num_inlined} of {len(images)} images')
        else:
            self.logger.debug(f'Inlined all {len(images)} images')

    def convert_image_to_base64(self, img: Tag) -> ImageSourceType:
        """
        Tries to retrieve the image of an <img> tag and replaces its src
        attribute with a base64 encoded data URI. Replacement happens in-place.

        :param img: The <img> element to process
        :return: Addressing scheme the image was retrieved by
        :raises ImageInliningError: If the image could not be inlined
        """
        src = img.get('src')
        if not src:
            raise ImageInliningError('Image has no src attribute')

        img_src = strip_query_and_fragment(src)

        # Convert relative URLs to absolute URLs
        try:
            moodle_baseurl = self.site.wwwroot
            if self.site.internal_host:
                moodle_baseurl, img_src = self._rewrite_to_internal_host(moodle_baseurl, img_src)
            img_src_url = ensure_absolute_url(img_src, moodle_baseurl)
            img_src_url_parts = urlsplit(img_src_url)
        except ValueError as e:
            raise ImageInliningError(f'Malformed image URL {src[:64]}: {str(e)}') from e

        # Only process web URLs and nothing that somehow remained a valid local filepath
        if img_src_url_parts.scheme not in ['http', 'https']:
            raise ImageInliningError(f'Image URL is not a web URL: {img_src_url[:64]}')

        img_ext = get_file_extension(img_src_url_parts.path)
        if img_ext not in self.ALLOWED_IMAGE_TYPES:
            raise ImageInliningError(f'Image type "{img_ext}" is not allowed: {img_src_url}')

        match = classify_image_url(img_src_url)
        if match.sourcetype in [ImageSourceType.PLUGINFILE, ImageSourceType.PLUGINFILE_QUESTION]:
            img_data = self._load_pluginfile(match)
        elif match.sourcetype == ImageSourceType.STACKPLOT:
            img_data = self._load_stackplot(match)
        else:
            img_data = self._load_generic(match)

        if not img_data:
            raise ImageInliningError(f'Retrieved image is empty: {img_src_url}')

        img['src'] = f'data:{self.ALLOWED_IMAGE_TYPES[img_ext]};base64,{base64.b64encode(img_data).decode("ascii")}'

        return match.sourcetype

    def _rewrite_to_internal_host(self, baseurl: str, img_src: str) -> tuple[str, str]:
        """
        Points the Moodle base URL and images served by the public Moodle host
        to the internal host, keeping their paths

        :param baseurl: Public Moodle base URL
        :param img_src: Image URL, possibly relative
        :return: Tuple of rewritten base URL and image URL
        """
        # The internal host is always reached via plain HTTP, regardless of
        # the scheme of the public wwwroot
        public = urlsplit(baseurl)
        internal_baseurl = urlunsplit(('http', self.site.internal_host, public.path, '', ''))

        img_parts = urlsplit(img_src)
        if img_parts.scheme in ['http', 'https'] and img_parts.netloc == public.netloc:
            img_src = urlunsplit(('http', self.site.internal_host, img_parts.path, '', ''))

        return internal_baseurl, img_src

    def _load_pluginfile(self, match: ImageSourceMatch) -> bytes:
        if not match['contextid'].isdigit():
            raise ImageInliningError(f'Invalid contextid in pluginfile URL: {match.url}')

        # Files are always looked up in the root directory of their filearea
        file = self.file_storage.get_file(
            int(match['contextid']),
            match['component'],
            match['filearea'],
            int(match.get('itemid', 0)),
            '/',
            unquote(match['filename'])
        )
        if not file:
            raise ImageInliningError(f'File not found in file storage: {match.url}')

        try:
            return file.get_content()
        except OSError as e:
            raise ImageInliningError(f'Failed to read file {match.url} from file storage: {str(e)}') from e

    def _load_stackplot(self, match: ImageSourceMatch) -> bytes:
        filename = clean_filename(match['filename'])
        if not filename:
            raise ImageInliningError(f'Invalid STACK plot filename: {match.url}')

        path = Path(self.site.dataroot) / self.STACKPLOT_DIRECTORY / filename
        if not path.is_file() or not os.access(path, os.R_OK):
            raise ImageInliningError(f'STACK plot file not readable: {path}')

        try:
            return path.read_bytes()
        except OSError as e:
            raise ImageInliningError(f'Failed to read STACK plot file {path}: {str(e)}') from e

    def _load_generic(self, match: ImageSourceMatch) -> bytes:
        try:
            r = self.session.get(url=match.url, timeout=Config.IMAGE_FETCH_TIMEOUTS, allow_redirects=True)
        except requests.RequestException as e:
            raise ImageInliningError(f'Failed to download image {match.url}: {str(e)}') from e

        if not r.ok:
            raise ImageInliningError(f'Downloading image {match.url} failed with HTTP status {r.status_code}')

        return r.content
