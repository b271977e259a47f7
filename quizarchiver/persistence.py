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

import copy
import logging
import sqlite3
import threading
from abc import ABCMeta, abstractmethod
from typing import Dict

from .archive_job import ArchiveJob


class PersistenceError(Exception):
    """
    Reading from or writing to the job store failed
    """


class JobNotFoundError(PersistenceError):
    """
    No archive job with the requested jobid exists
    """


class ArchiveJobRepository(metaclass=ABCMeta):
    """
    Abstract base class for all stores of archive jobs
    """

    @abstractmethod
    def find(self, jobid: str) -> ArchiveJob:
        """
        Retrieves the archive job with the given jobid

        :param jobid: UUID of the job to retrieve
        :return: Archive job

        :raises JobNotFoundError: If no job with the given jobid exists
        :raises PersistenceError: If the store could not be queried
        """
        pass

    @abstractmethod
    def save(self, job: ArchiveJob) -> None:
        """
        Inserts or updates the given archive job

        :param job: Archive job to persist
        :return: None

        :raises PersistenceError: If the store could not be updated
        """
        pass


class InMemoryArchiveJobRepository(ArchiveJobRepository):
    """
    Volatile job store, keeping all jobs in a dict
    """

    def __init__(self):
        self._jobs: Dict[str, ArchiveJob] = {}
        self._lock = threading.RLock()

    def find(self, jobid: str) -> ArchiveJob:
        with self._lock:
            if jobid not in self._jobs:
                raise JobNotFoundError(f'Archive job with jobid {jobid} not found')
            job = copy.copy(self._jobs[jobid])

        job.repository = self
        return job

    def save(self, job: ArchiveJob) -> None:
        with self._lock:
            stored = copy.copy(job)
            stored.repository = None
            self._jobs[job.jobid] = stored


class SqliteArchiveJobRepository(ArchiveJobRepository):
    """
    Job store backed by a SQLite database. All sqlite3 errors are re-raised as
    PersistenceError.
    """

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS quiz_archiver_jobs (
            jobid TEXT PRIMARY KEY NOT NULL,
            courseid INTEGER NOT NULL,
            cmid INTEGER NOT NULL,
            quizid INTEGER NOT NULL,
            userid INTEGER NOT NULL,
            status TEXT NOT NULL,
            timecreated INTEGER NOT NULL,
            timemodified INTEGER NOT NULL
        )
    """

    def __init__(self, path: str):
        """
        Opens (and initializes if required) the SQLite database at the given path

        :param path: Path to the database file or ':memory:'
        :raises PersistenceError: If the database could not be opened
        """
        self.logger = logging.getLogger(f"{__name__}")
        self.path = path
        self._lock = threading.RLock()

        try:
            self.conn = sqlite3.connect(path, check_same_thread=False, timeout=30.0)
            self.conn.row_factory = sqlite3.Row
            self.conn.executescript(self.SCHEMA)
            self.conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f'Failed to initialize job database at {path}: {str(e)}') from e

        self.logger.debug(f'Initialized job database at {path}')

    def find(self, jobid: str) -> ArchiveJob:
        try:
            with self._lock:
                row = self.conn.execute(
                    'SELECT * FROM quiz_archiver_jobs WHERE jobid = ?',
                    (jobid,)
                ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f'Failed to read archive job {jobid}: {str(e)}') from e

        if row is None:
            raise JobNotFoundError(f'Archive job with jobid {jobid} not found')

        return ArchiveJob(
            jobid=row['jobid'],
            courseid=row['courseid'],
            cmid=row['cmid'],
            quizid=row['quizid'],
            userid=row['userid'],
            status=row['status'],
            timecreated=row['timecreated'],
            timemodified=row['timemodified'],
            repository=self,
        )

    def save(self, job: ArchiveJob) -> None:
        try:
            with self._lock, self.conn:
                self.conn.execute(
                    'INSERT INTO quiz_archiver_jobs '
                    '(jobid, courseid, cmid, quizid, userid, status, timecreated, timemodified) '
                    'VALUES (?, ?, ?, ?, ?, ?, ?, ?) '
                    'ON CONFLICT(jobid) DO UPDATE SET status = excluded.status, timemodified = excluded.timemodified',
                    (job.jobid, job.courseid, job.cmid, job.quizid, job.userid, str(job.status), job.timecreated, job.timemodified)
                )
        except sqlite3.Error as e:
            raise PersistenceError(f'Failed to write archive job {job.jobid}: {str(e)}') from e

    def close(self) -> None:
        with self._lock:
            self.conn.close()
