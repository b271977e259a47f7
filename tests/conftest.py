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
import uuid
from pathlib import Path

import pytest
import requests

from config import Config
from quizarchiver.archive_job import ArchiveJob
from quizarchiver.file_storage import LocalFileStorage
from quizarchiver.moodle_quiz_archiver import app as original_app
from quizarchiver.moodle_site import MoodleSite
from quizarchiver.persistence import InMemoryArchiveJobRepository
from quizarchiver.type import JobStatus

TEST_WSTOKEN = 'opensesame'
"""Webservice token that is accepted by the app during tests"""

TEST_WWWROOT = 'http://moodle.localhost'
"""Public base URL of the Moodle instance used in tests"""


@pytest.fixture()
def app():
    app = original_app
    app.config.update({
        "TESTING": True,
        "JOB_REPOSITORY": InMemoryArchiveJobRepository(),
    })

    # Enforce some config values for tests
    Config.UNIT_TESTS_RUNNING = True
    Config.WSTOKENS = TEST_WSTOKEN

    yield app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def job_repository(app):
    return app.config['JOB_REPOSITORY']


@pytest.fixture()
def archive_job(job_repository) -> ArchiveJob:
    return ArchiveJob.create(
        repository=job_repository,
        jobid=str(uuid.uuid4()),
        courseid=2,
        cmid=7,
        quizid=3,
        userid=4,
        status=JobStatus.AWAITING_PROCESSING,
    )


@pytest.fixture()
def site(tmp_path) -> MoodleSite:
    dataroot = tmp_path / 'moodledata'
    dataroot.mkdir()
    return MoodleSite(wwwroot=TEST_WWWROOT, dataroot=str(dataroot))


@pytest.fixture()
def file_storage(tmp_path) -> LocalFileStorage:
    root = tmp_path / 'filestorage'
    root.mkdir()
    return LocalFileStorage(root)


class TestUtils:
    """
    Util function for tests
    """

    @classmethod
    def make_response(cls, status_code: int, content: bytes, url: str = 'http://localhost') -> requests.Response:
        """
        Creates a requests response without performing any network request

        :param status_code: HTTP status code of the response
        :param content: Raw response body
        :param url: URL the response originates from
        :return: Prepared response
        """
        r = requests.Response()
        r.status_code = status_code
        r._content = content
        r._content_consumed = True
        r.encoding = 'utf-8'
        r.url = url
        return r

    @classmethod
    def store_file(cls, root: Path, relpath: str, content: bytes) -> Path:
        """
        Writes a file below the given root directory, creating all parents

        :param root: Base directory
        :param relpath: Path of the file, relative to root
        :param content: File content
        :return: Path of the written file
        """
        path = Path(root) / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path
