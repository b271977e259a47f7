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

import hmac
import logging
from http import HTTPStatus
from typing import Dict, Type

import waitress
from flask import Flask, make_response, request, jsonify

from config import Config
from .external import ExternalApi, InvalidParameterException, UpdateJobStatus
from .persistence import InMemoryArchiveJobRepository, SqliteArchiveJobRepository

app = Flask(__name__)
app.config['JOB_REPOSITORY'] = InMemoryArchiveJobRepository()

WEBSERVICE_FUNCTIONS: Dict[str, Type[ExternalApi]] = {
    Config.MOODLE_WSFUNCTION_UPDATE_JOB_STATUS: UpdateJobStatus,
}
"""Webservice functions that can be invoked via the REST server, indexed by wsfunction name"""

WEBSERVICE_PROTOCOL_PARAMS = ['wstoken', 'wsfunction', 'moodlewsrestformat']
"""Request parameters that belong to the webservice protocol and are not passed to the called function"""


def ws_error_response(exception: str, errorcode: str, message: str, debuginfo: str = None):
    """
    Builds a Moodle webservice error response. Moodle reports errors with
    HTTP status 200 and describes them inside the JSON body.
    """
    data = {
        'exception': exception,
        'errorcode': errorcode,
        'message': message,
    }
    if debuginfo:
        data['debuginfo'] = debuginfo

    return make_response(jsonify(data), HTTPStatus.OK)


def is_valid_wstoken(wstoken: str) -> bool:
    """
    Checks the given webservice token against all configured tokens

    :param wstoken: Token sent by the caller
    :return: True if the token is allowed to call webservice functions
    """
    if not wstoken:
        return False

    tokens = [t.strip() for t in Config.WSTOKENS.split(',') if t.strip()]
    return any(hmac.compare_digest(wstoken, t) for t in tokens)


@app.get('/')
def handle_index():
    return {
        'app': Config.APP_NAME,
        'version': Config.VERSION
    }


@app.get('/version')
def handle_version():
    return jsonify({'version': Config.VERSION}), HTTPStatus.OK


@app.route('/webservice/rest/server.php', methods=['GET', 'POST'])
def handle_webservice_rest():
    args = {**request.args.to_dict(), **request.form.to_dict()}
    wsfunction = args.get('wsfunction')
    app.logger.debug(f"Received webservice call to {wsfunction} from {request.remote_addr}")

    # Check protocol arguments
    if args.get('moodlewsrestformat', 'json') != 'json':
        return ws_error_response('moodle_exception', 'unsupportedformat', 'Only the JSON REST format is supported.')

    if not is_valid_wstoken(args.get('wstoken')):
        app.logger.warning(f'Rejected webservice call with invalid token from {request.remote_addr}')
        return ws_error_response('moodle_exception', 'invalidtoken', 'Invalid token - token not found')

    if wsfunction not in WEBSERVICE_FUNCTIONS:
        return ws_error_response('dml_missing_record_exception', 'invalidrecord', "Can't find data record in database table external_functions.")

    # Call webservice function
    function = WEBSERVICE_FUNCTIONS[wsfunction]
    try:
        params = function.validate_parameters(
            function.execute_parameters(),
            {k: v for k, v in args.items() if k not in WEBSERVICE_PROTOCOL_PARAMS}
        )
        result = function.execute(app.config['JOB_REPOSITORY'], **params)
        return jsonify(function.clean_returnvalue(result)), HTTPStatus.OK
    except InvalidParameterException as e:
        app.logger.debug(f'Invalid parameters for {wsfunction}: {str(e)}')
        return ws_error_response('invalid_parameter_exception', 'invalidparameter', 'Invalid parameter value detected', str(e))
    except Exception as e:
        app.logger.warning(f'Webservice function {wsfunction} failed: {str(e)}')
        return ws_error_response(type(e).__name__, 'generalexceptionmessage', str(e))


def run() -> None:
    """
    Runs the application
    :return: None
    """
    logging.basicConfig(encoding='utf-8', format='[%(asctime)s] | %(levelname)-8s | %(name)s | %(message)s', level=Config.LOG_LEVEL)
    app.logger.info(f'Running {Config.APP_NAME} version {Config.VERSION} on log level {logging.getLevelName(Config.LOG_LEVEL)}')

    # Handle DEBUG specifics
    if Config.LOG_LEVEL == logging.DEBUG:
        # Dump app config
        app.logger.debug(Config.tostring())

        # Reduce noise from 3rd party library loggers
        logging.getLogger("urllib3").setLevel('INFO')

    if not Config.WSTOKENS:
        app.logger.warning('No webservice tokens configured. All webservice calls will be rejected. Set QUIZ_ARCHIVER_WSTOKENS to allow access.')

    app.config['JOB_REPOSITORY'] = SqliteArchiveJobRepository(Config.DATABASE_PATH)
    waitress.serve(app, host=Config.SERVER_HOST, port=Config.SERVER_PORT)
