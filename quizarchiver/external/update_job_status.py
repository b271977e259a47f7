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
from typing import Dict

from quizarchiver.archive_job import ArchiveJob
from quizarchiver.persistence import ArchiveJobRepository, PersistenceError
from quizarchiver.type import UpdateJobStatusResult
from .external_api import ExternalApi, ExternalFunctionParameters, ExternalSingleStructure, ExternalValue, ParamType

logger = logging.getLogger(__name__)


class UpdateJobStatus(ExternalApi):
    """
    Webservice function that lets the archive worker report a new status for
    one of its jobs
    """

    @staticmethod
    def execute_parameters() -> ExternalFunctionParameters:
        return ExternalFunctionParameters({
            'jobid': ExternalValue(ParamType.TEXT, 'UUID of the job this artifact is associated with', required=True),
            'status': ExternalValue(ParamType.TEXT, 'New status to set for job with UUID of jobid', required=True),
        })

    @staticmethod
    def execute_returns() -> ExternalSingleStructure:
        return ExternalSingleStructure({
            'jobid': ExternalValue(ParamType.TEXT, 'UUID of the job this artifact was associated with'),
            'status': ExternalValue(ParamType.TEXT, 'Status of the executed wsfunction'),
        })

    @staticmethod
    def execute(repository: ArchiveJobRepository, jobid: str, status: str) -> Dict[str, str]:
        """
        Execute the webservice function

        :param repository: Job store to look up the job in
        :param jobid: UUID of the job to update
        :param status: New status of the job
        :return: Dict with the jobid and the status of this call, either
        'OK' or 'E_UPDATE_FAILED'

        :raises InvalidParameterException: If the parameters are invalid
        :raises ValueError: If jobid is not a valid UUID
        """
        params = UpdateJobStatus.validate_parameters(UpdateJobStatus.execute_parameters(), {
            'jobid': jobid,
            'status': status,
        })

        try:
            job = ArchiveJob.get_by_jobid(params['jobid'], repository)
            job.set_status(params['status'])
        except PersistenceError as e:
            logger.warning(f'Failed to update status of job {params["jobid"]} to {params["status"]}: {str(e)}')
            return {
                'jobid': params['jobid'],
                'status': UpdateJobStatusResult.E_UPDATE_FAILED,
            }

        return {
            'jobid': params['jobid'],
            'status': UpdateJobStatusResult.OK,
        }
