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

import logging
from abc import ABCMeta, abstractmethod
from pathlib import Path


class StoredFile:
    """
    A single file inside the file storage
    """

    def __init__(self, path: Path):
        self.path = path

    def get_filename(self) -> str:
        return self.path.name

    def get_content(self) -> bytes:
        return self.path.read_bytes()


class FileStorage(metaclass=ABCMeta):
    """
    Abstract base class for stores that serve files addressed by Moodle
    pluginfile URLs
    """

    @abstractmethod
    def get_file(
            self,
            contextid: int,
            component: str,
            filearea: str,
            itemid: int,
            filepath: str,
            filename: str
    ) -> StoredFile | None:
        """
        Looks up a single stored file

        :param contextid: ID of the context the file belongs to
        :param component: Component that owns the file (e.g. 'mod_quiz')
        :param filearea: File area inside the component
        :param itemid: Item ID inside the file area
        :param filepath: Directory of the file, starting and ending with '/'
        :param filename: Name of the file
        :return: The file or None if it does not exist
        """
        pass


class LocalFileStorage(FileStorage):
    """
    File storage that keeps files inside a local directory tree of the form
    <root>/<contextid>/<component>/<filearea>/<itemid><filepath><filename>
    """

    def __init__(self, root: str | Path):
        self.logger = logging.getLogger(f"{__name__}")
        self.root = Path(root).resolve()

    def get_file(
            self,
            contextid: int,
            component: str,
            filearea: str,
            itemid: int,
            filepath: str,
            filename: str
    ) -> StoredFile | None:
        if not filepath.startswith('/') or not filepath.endswith('/'):
            raise ValueError(f'Invalid filepath "{filepath}". It must start and end with a slash.')

        path = (self.root / str(contextid) / component / filearea / str(itemid) / (filepath.lstrip('/') + filename)).resolve()

        # Do not allow leaving the storage root
        if not path.is_relative_to(self.root):
            self.logger.warning(f'Rejected access to file outside of the file storage: {path}')
            return None

        if not path.is_file():
            return None

        return StoredFile(path)
