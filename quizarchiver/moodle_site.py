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

from config import Config


class MoodleSite:
    """
    Site-wide settings of the Moodle instance this plugin runs in

    :param wwwroot: Public base URL of the Moodle instance
    :param dataroot: Path to the Moodle data directory
    :param internal_wwwroot: Base URL the archive worker uses to reach Moodle (optional)
    :param internal_host: Network-internal host to fetch report images from (optional)

    :raises ValueError: If the given wwwroot is invalid
    """

    def __init__(self, wwwroot: str, dataroot: str, internal_wwwroot: str = None, internal_host: str = None):
        if not isinstance(wwwroot, str) or not wwwroot.startswith('http'):
            raise ValueError('Moodle wwwroot must be an absolute HTTP(S) URL.')

        self.wwwroot = wwwroot
        self.dataroot = dataroot
        self.internal_wwwroot = internal_wwwroot if internal_wwwroot else None
        self.internal_host = internal_host if internal_host else None

    @classmethod
    def from_config(cls) -> 'MoodleSite':
        """
        Creates a site description from the global app configuration

        :return: MoodleSite populated from Config
        """
        return cls(
            wwwroot=Config.MOODLE_WWWROOT,
            dataroot=Config.MOODLE_DATAROOT,
            internal_wwwroot=Config.MOODLE_INTERNAL_WWWROOT,
            internal_host=Config.MOODLE_INTERNAL_HOST,
        )

    def get_worker_callback_base_url(self) -> str:
        """
        Base URL the archive worker uses to call back into Moodle

        :return: Internal wwwroot if configured, public wwwroot otherwise,
        without trailing slash
        """
        return (self.internal_wwwroot or self.wwwroot).rstrip('/')
