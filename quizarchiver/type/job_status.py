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

from enum import StrEnum


class JobStatus(StrEnum):
    """
    Known status values of an archive job. The archive worker may report
    additional values which are stored verbatim.
    """
    UNKNOWN = 'UNKNOWN'
    UNINITIALIZED = 'UNINITIALIZED'
    AWAITING_PROCESSING = 'AWAITING_PROCESSING'
    RUNNING = 'RUNNING'
    WAITING_FOR_BACKUP = 'WAITING_FOR_BACKUP'
    FINALIZING = 'FINALIZING'
    FINISHED = 'FINISHED'
    FAILED = 'FAILED'
    TIMEOUT = 'TIMEOUT'
    DELETED = 'DELETED'
