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
import os


def parse_env_variable(name, default=None, valtype=None) -> None | bool | int | str:
    """
    Parses an environment variable and returns it cast to the desired type.
    Undefined variables will return the default value.

    :param name: Name of the environment variable to evaluate
    :param default: Default to return if the variable is not set
    :param valtype: Force return type. Pass None for automatic type detection
    :return: Parsed value
    """
    # Detect unset variables
    value = os.getenv(name, default=None)
    if value is None:
        return default

    # Forced type casts
    if valtype is bool:
        return value.lower() in ['true', '1']
    if valtype is int:
        return int(value)
    if valtype is str:
        return value

    # Automatic type detection
    if value.lower() in ['true', 'false']:
        return value.lower() == 'true'
    if value.lstrip('-+').isdigit():
        return int(value)

    # String fallback
    return value


class Config:

    APP_NAME = "moodle-quiz-archiver"
    """Name of this app"""

    VERSION = "1.2.0"
    """Version of this app"""

    LOG_LEVEL = logging.getLevelNamesMapping()[parse_env_variable('QUIZ_ARCHIVER_LOG_LEVEL', default='INFO', valtype=str)]
    """Python Logger logging level"""

    UNIT_TESTS_RUNNING = False
    """Whether unit tests are currently running. This should always be kept at `False` and is only changed by pytest."""

    SERVER_HOST = parse_env_variable('QUIZ_ARCHIVER_SERVER_HOST', default='0.0.0.0', valtype=str)
    """Host for the webservice server to bind to"""

    SERVER_PORT = parse_env_variable('QUIZ_ARCHIVER_SERVER_PORT', default='8080', valtype=int)
    """Port for the webservice server to listen on"""

    MOODLE_WWWROOT = parse_env_variable('QUIZ_ARCHIVER_MOODLE_WWWROOT', default='http://localhost', valtype=str)
    """Public base URL of the Moodle instance"""

    MOODLE_INTERNAL_WWWROOT = parse_env_variable('QUIZ_ARCHIVER_MOODLE_INTERNAL_WWWROOT', default=None, valtype=str)
    """Base URL under which the archive worker can reach Moodle, if it differs from the public base URL. Falls back to MOODLE_WWWROOT if unset."""

    MOODLE_DATAROOT = parse_env_variable('QUIZ_ARCHIVER_MOODLE_DATAROOT', default='/var/www/moodledata', valtype=str)
    """Path to the Moodle data directory"""

    MOODLE_INTERNAL_HOST = parse_env_variable('QUIZ_ARCHIVER_MOODLE_INTERNAL_HOST', default=None, valtype=str)
    """Network-internal host (optionally with port) to fetch report images from instead of the public Moodle host"""

    MOODLE_WSFUNCTION_UPDATE_JOB_STATUS = 'quiz_archiver_update_job_status'
    """Name of the Moodle webservice function to update the status of an archive job"""

    WSTOKENS = parse_env_variable('QUIZ_ARCHIVER_WSTOKENS', default='', valtype=str)
    """Comma-separated list of webservice tokens that are allowed to call webservice functions"""

    DATABASE_PATH = parse_env_variable('QUIZ_ARCHIVER_DATABASE_PATH', default=':memory:', valtype=str)
    """Path to the SQLite database that stores archive jobs. Use ':memory:' for a volatile database."""

    FILESTORAGE_PATH = parse_env_variable('QUIZ_ARCHIVER_FILESTORAGE_PATH', default='/var/www/moodledata/filestorage', valtype=str)
    """Root directory of the local file storage that serves pluginfile images"""

    WORKER_URL = parse_env_variable('QUIZ_ARCHIVER_WORKER_URL', default='http://localhost:8080', valtype=str)
    """URL of the remote quiz archive worker service"""

    WORKER_CONNECTION_TIMEOUT_SEC = parse_env_variable('QUIZ_ARCHIVER_WORKER_CONNECTION_TIMEOUT_SEC', default=10, valtype=int)
    """Number of seconds to wait until a connection to the archive worker is established"""

    WORKER_REQUEST_TIMEOUT_SEC = parse_env_variable('QUIZ_ARCHIVER_WORKER_REQUEST_TIMEOUT_SEC', default=20, valtype=int)
    """Number of seconds to wait for a request to the archive worker to complete"""

    SKIP_HTTPS_CERT_VALIDATION = parse_env_variable('QUIZ_ARCHIVER_SKIP_HTTPS_CERT_VALIDATION', default=False, valtype=bool)
    """Whether to skip validation of TLS / SSL certs for connections to the archive worker. WARNING: If set to true, invalid certificates are accepted without error."""

    IMAGE_FETCH_VERIFY_TLS = parse_env_variable('QUIZ_ARCHIVER_IMAGE_FETCH_VERIFY_TLS', default=False, valtype=bool)
    """Whether to validate TLS / SSL certs when downloading generic images for inlining. Disabled by default to support internal hosts with self-signed certificates."""

    IMAGE_FETCH_TIMEOUTS = (
        parse_env_variable('QUIZ_ARCHIVER_IMAGE_FETCH_CONNECT_TIMEOUT_SEC', default=10, valtype=int),
        parse_env_variable('QUIZ_ARCHIVER_IMAGE_FETCH_READ_TIMEOUT_SEC', default=30, valtype=int),
    )
    """Tuple of connection and read timeouts for generic image downloads in seconds"""

    PROXY_SERVER_URL = parse_env_variable('QUIZ_ARCHIVER_PROXY_SERVER_URL', default=None, valtype=str)
    """URL of the proxy server to use for all outgoing requests. HTTP and SOCKS proxies are supported."""

    PROXY_USERNAME = parse_env_variable('QUIZ_ARCHIVER_PROXY_USERNAME', default=None, valtype=str)
    """Optional username to authenticate at the proxy server"""

    PROXY_PASSWORD = parse_env_variable('QUIZ_ARCHIVER_PROXY_PASSWORD', default=None, valtype=str)
    """Optional password to authenticate at the proxy server"""

    @staticmethod
    def tostring() -> str:
        """
        Dumps the full configuration to a string.

        :return: Configuration as string
        """
        ret = "Configuration:"
        for key, value in vars(Config).items():
            if not (key.startswith('_') or key == 'tostring'):
                ret += f"\n  {key} => {value}"

        return ret
