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
from time import time
from uuid import UUID

from .type import JobStatus


class ArchiveJob:
    """
    A single archive job, as tracked by Moodle, that is processed by a remote
    quiz archive worker
    """

    def __init__(
            self,
            jobid: str,
            courseid: int,
            cmid: int,
            quizid: int,
            userid: int,
            status: str = JobStatus.UNKNOWN,
            timecreated: int = None,
            timemodified: int = None,
            repository: 'ArchiveJobRepository' = None
    ):
        self.jobid = jobid
        self.courseid = int(courseid)
        self.cmid = int(cmid)
        self.quizid = int(quizid)
        self.userid = int(userid)
        self.status = status
        self.timecreated = int(timecreated) if timecreated else int(time())
        self.timemodified = int(timemodified) if timemodified else self.timecreated
        self.repository = repository
        self.logger = logging.getLogger(f"{__name__}::<{self.jobid}>")

    def __eq__(self, other):
        if isinstance(other, self.__class__):
            return self.jobid == other.jobid
        elif isinstance(other, str):
            return self.jobid == other
        else:
            return False

    def __copy__(self):
        return ArchiveJob(
            jobid=self.jobid,
            courseid=self.courseid,
            cmid=self.cmid,
            quizid=self.quizid,
            userid=self.userid,
            status=self.status,
            timecreated=self.timecreated,
            timemodified=self.timemodified,
            repository=self.repository,
        )

    @staticmethod
    def validate_jobid(jobid: str) -> str:
        """
        Ensures that the given jobid is a well-formed UUID

        :param jobid: Job identifier to check
        :return: The unchanged jobid
        :raises ValueError: If jobid is not a valid UUID
        """
        UUID(str(jobid))
        return jobid

    @staticmethod
    def create(
            repository: 'ArchiveJobRepository',
            jobid: str,
            courseid: int,
            cmid: int,
            quizid: int,
            userid: int,
            status: str = JobStatus.UNINITIALIZED
    ) -> 'ArchiveJob':
        """
        Creates and persists a new archive job

        :param repository: Job store to persist the new job in
        :param jobid: UUID of the job, as assigned by the archive worker
        :param courseid: Moodle course id
        :param cmid: Moodle course module id
        :param quizid: Moodle quiz id
        :param userid: ID of the user that initiated the job
        :param status: Initial job status
        :return: The created job

        :raises ValueError: If jobid is not a valid UUID
        :raises PersistenceError: If the job could not be stored
        """
        job = ArchiveJob(
            jobid=ArchiveJob.validate_jobid(jobid),
            courseid=courseid,
            cmid=cmid,
            quizid=quizid,
            userid=userid,
            status=status,
            repository=repository,
        )
        repository.save(job)
        job.logger.info(f'Created archive job for quiz {quizid} with status {status}')

        return job

    @staticmethod
    def get_by_jobid(jobid: str, repository: 'ArchiveJobRepository') -> 'ArchiveJob':
        """
        Looks up an existing archive job

        :param jobid: UUID of the job to retrieve
        :param repository: Job store to query
        :return: The found job

        :raises ValueError: If jobid is not a valid UUID
        :raises JobNotFoundError: If no job with the given jobid exists
        :raises PersistenceError: If the job store could not be queried
        """
        return repository.find(ArchiveJob.validate_jobid(jobid))

    def get_status(self) -> str:
        return self.status

    def set_status(self, status: str) -> None:
        """
        Updates the status of this job and persists the change

        :param status: New job status. Values unknown to JobStatus are stored verbatim
        :return: None

        :raises PersistenceError: If the job could not be stored
        """
        if self.repository is None:
            raise RuntimeError(f'Archive job {self.jobid} is not attached to a job store')

        old_status = self.status
        self.status = status
        self.timemodified = int(time())
        self.repository.save(self)
        self.logger.debug(f'Status changed from {old_status} to {status}')
