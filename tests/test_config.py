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

import pytest

from config import Config, parse_env_variable
from quizarchiver.moodle_site import MoodleSite

ENVVAR = "QUIZ_ARCHIVER_TEST_SETTING"


class TestParseEnvVariable:
    """
    Tests for reading settings from environment variables
    """

    @pytest.mark.parametrize("default", [None, "foo", 42, False])
    def test_unset_returns_default(self, monkeypatch, default) -> None:
        """
        Tests that unset environment variables are parsed to their default value

        :param monkeypatch: pytest monkeypatch fixture
        :param default: Default value to use if env var is unset
        :return: None
        """
        monkeypatch.delenv(ENVVAR, raising=False)

        assert parse_env_variable(ENVVAR, default) == default
        assert parse_env_variable(ENVVAR, default, int) == default

    @pytest.mark.parametrize("valtype, value, expected", [
        (bool, "True", True),
        (bool, "1", True),
        (bool, "yes", False),
        (bool, "false", False),
        (bool, "", False),
        (int, "8080", 8080),
        (int, "-1", -1),
        (str, "1337", "1337"),
        (str, "", ""),
    ])
    def test_forced_type(self, monkeypatch, valtype, value, expected) -> None:
        """
        Tests that environment variables are cast to the requested type

        :param monkeypatch: pytest monkeypatch fixture
        :param valtype: Type to forcecast the env var to
        :param value: Value to set the env var to
        :param expected: Expected value after typecasting
        :return: None
        """
        monkeypatch.setenv(ENVVAR, value)

        assert parse_env_variable(ENVVAR, None, valtype) == expected
        assert type(parse_env_variable(ENVVAR, None, valtype)) is valtype

    @pytest.mark.parametrize("value", ["ten", "10s", ""])
    def test_forced_int_invalid(self, monkeypatch, value) -> None:
        monkeypatch.setenv(ENVVAR, value)

        with pytest.raises(ValueError):
            parse_env_variable(ENVVAR, None, int)

    @pytest.mark.parametrize("value, expected", [
        ("TRUE", True),
        ("false", False),
        ("20", 20),
        ("+3", 3),
        ("http://moodle.localhost", "http://moodle.localhost"),
        ("", ""),
    ])
    def test_automatic_type(self, monkeypatch, value, expected) -> None:
        """
        Tests the automatic type detection if no type is forced

        :param monkeypatch: pytest monkeypatch fixture
        :param value: Value to set the env var to
        :param expected: Expected value after typecasting
        :return: None
        """
        monkeypatch.setenv(ENVVAR, value)

        assert parse_env_variable(ENVVAR) == expected
        assert type(parse_env_variable(ENVVAR)) is type(expected)


class TestConfig:
    """
    Tests for the global app configuration
    """

    def test_tostring_lists_settings(self) -> None:
        dump = Config.tostring()

        assert dump.startswith("Configuration:")
        assert f"APP_NAME => {Config.APP_NAME}" in dump
        assert "WORKER_URL => " in dump
        assert "tostring" not in dump

    def test_image_fetch_timeouts(self) -> None:
        assert len(Config.IMAGE_FETCH_TIMEOUTS) == 2
        assert all(isinstance(t, int) and t > 0 for t in Config.IMAGE_FETCH_TIMEOUTS)


class TestMoodleSite:
    """
    Tests for the description of the Moodle instance
    """

    @pytest.mark.parametrize("wwwroot, internal_wwwroot, expected", [
        ("http://moodle.localhost", None, "http://moodle.localhost"),
        ("https://moodle.example.org/moodle/", None, "https://moodle.example.org/moodle"),
        ("https://moodle.example.org", "http://moodle-internal:8080/", "http://moodle-internal:8080"),
        ("https://moodle.example.org", "", "https://moodle.example.org"),
    ])
    def test_worker_callback_base_url(self, wwwroot, internal_wwwroot, expected) -> None:
        """
        Tests that the worker is pointed to the internal wwwroot if one is set

        :param wwwroot: Public base URL
        :param internal_wwwroot: Internal base URL
        :param expected: Expected callback base URL
        :return: None
        """
        site = MoodleSite(wwwroot=wwwroot, dataroot="/tmp", internal_wwwroot=internal_wwwroot)

        assert site.get_worker_callback_base_url() == expected

    @pytest.mark.parametrize("wwwroot", [None, "", "moodle.localhost", "ftp://moodle.localhost"])
    def test_invalid_wwwroot(self, wwwroot) -> None:
        with pytest.raises(ValueError):
            MoodleSite(wwwroot=wwwroot, dataroot="/tmp")

    def test_from_config(self, monkeypatch) -> None:
        """
        Tests that the site is populated from the global configuration

        :param monkeypatch: pytest monkeypatch fixture
        :return: None
        """
        monkeypatch.setattr(Config, 'MOODLE_WWWROOT', "https://moodle.example.org")
        monkeypatch.setattr(Config, 'MOODLE_DATAROOT', "/srv/moodledata")
        monkeypatch.setattr(Config, 'MOODLE_INTERNAL_WWWROOT', None)
        monkeypatch.setattr(Config, 'MOODLE_INTERNAL_HOST', "moodle-internal")

        site = MoodleSite.from_config()

        assert site.wwwroot == "https://moodle.example.org"
        assert site.dataroot == "/srv/moodledata"
        assert site.internal_wwwroot is None
        assert site.internal_host == "moodle-internal"
