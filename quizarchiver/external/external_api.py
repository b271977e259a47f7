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

import re
from abc import ABCMeta, abstractmethod
from enum import StrEnum
from typing import Dict


class InvalidParameterException(ValueError):
    """
    Parameters of a webservice function call did not match its schema
    """


class ParamType(StrEnum):
    """
    Parameter types that webservice function values can be cleaned to
    """
    TEXT = 'text'
    INT = 'int'
    BOOL = 'bool'


class ExternalValue:
    """
    Description of a single scalar webservice function value

    :param paramtype: Type to validate and clean the value with
    :param desc: Human-readable description of the value
    :param required: Whether the value must be present
    :param default: Value to use if an optional value is missing
    """

    REGEX_HTML_TAGS = re.compile(r'<[^>]*>')

    def __init__(self, paramtype: ParamType, desc: str = '', required: bool = True, default=None):
        self.paramtype = paramtype
        self.desc = desc
        self.required = required
        self.default = default

    def clean(self, name: str, value):
        """
        Validates the given value against this description and returns its
        cleaned representation

        :param name: Name of the value, used in error messages
        :param value: Raw value to clean
        :return: Cleaned value
        :raises InvalidParameterException: If the value does not match
        """
        if self.paramtype == ParamType.TEXT:
            if isinstance(value, bool) or not isinstance(value, (str, int, float)):
                raise InvalidParameterException(f'Invalid parameter value detected ({name} => Invalid external api parameter: the value is "{value}", the server was expecting "text" type)')
            return self.REGEX_HTML_TAGS.sub('', str(value))

        if self.paramtype == ParamType.INT:
            if isinstance(value, bool) or not str(value).lstrip('-+').isdigit():
                raise InvalidParameterException(f'Invalid parameter value detected ({name} => Invalid external api parameter: the value is "{value}", the server was expecting "int" type)')
            return int(value)

        if self.paramtype == ParamType.BOOL:
            if str(value).lower() not in ['0', '1', 'true', 'false']:
                raise InvalidParameterException(f'Invalid parameter value detected ({name} => Invalid external api parameter: the value is "{value}", the server was expecting "bool" type)')
            return str(value).lower() in ['1', 'true']

        raise InvalidParameterException(f'Unsupported parameter type {self.paramtype} for {name}')


class ExternalSingleStructure:
    """
    Description of a structure of named webservice function values

    :param keys: Mapping of value names to their description
    """

    def __init__(self, keys: Dict[str, ExternalValue]):
        self.keys = keys

    def clean(self, values: Dict) -> Dict:
        """
        Validates all given values against this structure

        :param values: Raw values to clean
        :return: Dict of cleaned values, in the order of this structure
        :raises InvalidParameterException: If a value is missing, unexpected or invalid
        """
        if not isinstance(values, dict):
            raise InvalidParameterException('Invalid parameter value detected (Only arrays accepted.)')

        unexpected = [k for k in values if k not in self.keys]
        if unexpected:
            raise InvalidParameterException(f'Invalid parameter value detected (Unexpected keys ({", ".join(unexpected)}) detected in parameter array.)')

        cleaned = {}
        for name, desc in self.keys.items():
            if name not in values or values[name] is None:
                if desc.required:
                    raise InvalidParameterException(f'Invalid parameter value detected (Missing required key in single structure: {name})')
                cleaned[name] = desc.default
                continue

            cleaned[name] = desc.clean(name, values[name])

        return cleaned


class ExternalFunctionParameters(ExternalSingleStructure):
    """
    Description of all parameters a webservice function accepts
    """


class ExternalApi(metaclass=ABCMeta):
    """
    Abstract base class for all functions that can be invoked via the webservice
    API. Subclasses describe their parameters and return values, and implement
    execute().
    """

    @staticmethod
    @abstractmethod
    def execute_parameters() -> ExternalFunctionParameters:
        pass

    @staticmethod
    @abstractmethod
    def execute_returns() -> ExternalSingleStructure:
        pass

    @staticmethod
    def validate_parameters(description: ExternalFunctionParameters, params: Dict) -> Dict:
        """
        Validates the given parameters against the given description

        :param description: Parameter description of the called function
        :param params: Raw parameters
        :return: Cleaned parameters
        :raises InvalidParameterException: If the parameters are invalid
        """
        return description.clean(params)

    @classmethod
    def clean_returnvalue(cls, result: Dict) -> Dict:
        """
        Validates the value returned by execute() against execute_returns()

        :param result: Value returned by execute()
        :return: Cleaned return value
        :raises InvalidParameterException: If the return value does not match
        """
        return cls.execute_returns().clean(result)
