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

import json
import logging
import time
from json import JSONDecodeError
from typing import Dict

import requests

from config import Config
from .moodle_site import MoodleSite
from .requests_factory import RequestsFactory


class ArchiveWorkerResponseDecodeError(ValueError):
    """
    The response of the archive worker could not be decoded

    :param status_code: HTTP status code of the response, if it was not 200
    """

    def __init__(self, status_code: int = None):
        self.status_code = status_code
        if status_code is None:
            super().__init__('Decoding of the archive worker response failed.')
        else:
            super().__init__(f'Decoding of the archive worker response failed. HTTP status code {status_code}')


class ArchiveWorkerRejectedError(RuntimeError):
    """
    The archive worker rejected the request and reported an error message
    """


class RemoteArchiveWorker:
    """
    Client for a remote quiz archive worker instance
    """

    API_VERSION = 3
    """Version of the archive worker API this client speaks"""

    MOODLE_WS_REST_PATH = '/webservice/rest/server.php'
    """Path of the Moodle webservice REST endpoint, relative to the Moodle base URL"""

    MOODLE_WS_UPLOAD_PATH = '/webservice/upload.php'
    """Path of the Moodle webservice upload endpoint, relative to the Moodle base URL"""

    RESPONSE_CHUNK_SIZE = 8192
    """Number of bytes to read from the archive worker response at once"""

    def __init__(self, server_url: str, connection_timeout: int, request_timeout: int, site: MoodleSite):
        """
        Initialize the archive worker client

        :param server_url: URL of the remote archive worker instance
        :param connection_timeout: Seconds to wait until a connection can be established before aborting
        :param request_timeout: Seconds to wait for the request to complete before aborting
        :param site: Settings of the Moodle instance that issues the requests
        """
        self.logger = logging.getLogger(f"{__name__}")

        self.server_url = server_url
        self.connection_timeout = connection_timeout
        self.request_timeout = request_timeout
        self.site = site

        self.session = RequestsFactory.create_session()

    @classmethod
    def from_config(cls) -> 'RemoteArchiveWorker':
        """
        Creates a client for the archive worker that is set in the global app
        configuration

        :return: Configured RemoteArchiveWorker
        """
        return cls(
            server_url=Config.WORKER_URL,
            connection_timeout=Config.WORKER_CONNECTION_TIMEOUT_SEC,
            request_timeout=Config.WORKER_REQUEST_TIMEOUT_SEC,
            site=MoodleSite.from_config(),
        )

    def enqueue_archive_job(
            self,
            wstoken: str,
            courseid: int,
            cmid: int,
            quizid: int,
            task_archive_quiz_attempts: Dict | None,
            task_moodle_backups: Dict | None
    ) -> Dict:
        """
        Tries to enqueue a new archive job at the archive worker service

        :param wstoken: Moodle webservice token the worker uses to call back
        :param courseid: Moodle course id
        :param cmid: Moodle course module id
        :param quizid: Moodle quiz id
        :param task_archive_quiz_attempts: Payload for the archive quiz attempts
        task, or None if it should not be executed
        :param task_moodle_backups: Payload for the Moodle backups task, or None
        if it should not be executed
        :return: Job information returned from the archive worker

        :raises ConnectionError: If the archive worker could not be reached
        :raises ArchiveWorkerResponseDecodeError: If the response of the archive
        worker could not be decoded
        :raises ArchiveWorkerRejectedError: If the archive worker reported an error
        """
        moodle_url_base = self.site.get_worker_callback_base_url()
        payload = json.dumps({
            'api_version': self.API_VERSION,
            'moodle_ws_url': moodle_url_base + self.MOODLE_WS_REST_PATH,
            'moodle_upload_url': moodle_url_base + self.MOODLE_WS_UPLOAD_PATH,
            'wstoken': wstoken,
            'courseid': courseid,
            'cmid': cmid,
            'quizid': quizid,
            'task_archive_quiz_attempts': task_archive_quiz_attempts,
            'task_moodle_backups': task_moodle_backups,
        })

        # requests only limits single socket reads. The whole request, including
        # the response body, must complete within request_timeout.
        deadline = time.monotonic() + self.request_timeout
        try:
            self.logger.debug(f'Enqueueing archive job for quiz {quizid} (cmid: {cmid}) at {self.server_url}')
            r = self.session.post(
                url=self.server_url,
                data=payload,
                headers={
                    'Content-Type': 'application/json',
                    'Content-Length': str(len(payload.encode('utf-8'))),
                },
                timeout=(self.connection_timeout, self.request_timeout),
                allow_redirects=True,
                stream=True,
            )
            body = self._read_body(r, deadline)
        except requests.RequestException as e:
            raise ConnectionError(f'Failed to contact archive worker at {self.server_url}: {str(e)}') from e

        try:
            data = json.loads(body)
        except (JSONDecodeError, UnicodeDecodeError):
            data = None

        # Handle errors
        if r.status_code != 200:
            if data is None:
                raise ArchiveWorkerResponseDecodeError(r.status_code)
            self.logger.warning(f'Archive worker rejected job with HTTP status {r.status_code}')
            raise ArchiveWorkerRejectedError(data.get('error') if isinstance(data, dict) else str(data))
        else:
            if data is None:
                raise ArchiveWorkerResponseDecodeError()

        # Decoded JSON data containing jobid and job status
        return data

    def _read_body(self, r: requests.Response, deadline: float) -> bytes:
        """
        Reads the full body of a streamed response

        :param r: Streamed response
        :param deadline: Point in time (time.monotonic) the body must be read by
        :return: Raw response body

        :raises ConnectionError: If reading the body exceeds the deadline
        """
        chunks = []
        try:
            for chunk in r.iter_content(chunk_size=self.RESPONSE_CHUNK_SIZE):
                if time.monotonic() > deadline:
                    raise ConnectionError(f'Request to archive worker at {self.server_url} did not complete within {self.request_timeout} seconds')
                chunks.append(chunk)
        finally:
            r.close()

        return b''.join(chunks)
