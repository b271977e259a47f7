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

from quizarchiver.image_source import classify_image_url, ImageInliningError, StackplotImageSourceMatcher, PluginfileImageSourceMatcher
from quizarchiver.type import ImageSourceType


class TestClassifyImageUrl:
    """
    Tests for the classification of image URLs by addressing scheme
    """

    @pytest.mark.parametrize("url, contextid, component, filearea, itemid, filename", [
        ("http://moodle.localhost/pluginfile.php/1/mod_page/content/7/sub/image.png", "1", "mod_page", "content", "7", "image.png"),
        ("http://moodle.localhost/pluginfile.php/1/mod_quiz/intro/0/image.png", "1", "mod_quiz", "intro", None, "image.png"),
        ("https://moodle.localhost/pluginfile.php/23/user/icon/boost/f1.jpg", "23", "user", "icon", None, "f1.jpg"),
    ])
    def test_pluginfile(self, url, contextid, component, filearea, itemid, filename) -> None:
        match = classify_image_url(url)

        assert match.sourcetype == ImageSourceType.PLUGINFILE
        assert match['contextid'] == contextid
        assert match['component'] == component
        assert match['filearea'] == filearea
        assert match['itemid'] == itemid
        assert match['filename'] == filename

    @pytest.mark.parametrize("url, component", [
        ("http://moodle.localhost/pluginfile.php/5/question/questiontext/12/3/42/diagram.png", "question"),
        ("http://moodle.localhost/pluginfile.php/5/qtype_ddimageortext/bgimage/12/3/42/diagram.png", "qtype_ddimageortext"),
    ])
    def test_pluginfile_question(self, url, component) -> None:
        match = classify_image_url(url)

        assert match.sourcetype == ImageSourceType.PLUGINFILE_QUESTION
        assert match['contextid'] == '5'
        assert match['component'] == component
        assert match['questionbank_id'] == '12'
        assert match['question_slot'] == '3'
        assert match['itemid'] == '42'
        assert match['filename'] == 'diagram.png'

    @pytest.mark.parametrize("url", [
        "http://moodle.localhost/pluginfile.php/5/question/questiontext/42/diagram.png",
        "http://moodle.localhost/pluginfile.php/5/qtype_stack/specificfeedback/12/3/diagram.png",
        "http://moodle.localhost/pluginfile.php/5/question/questiontext/12/3/notanumber/diagram.png",
    ])
    def test_malformed_question_pluginfile_is_rejected(self, url) -> None:
        """
        Tests that question files that do not follow the question URL pattern
        are rejected instead of being treated as generic URLs

        :param url: Malformed question pluginfile URL
        :return: None
        """
        with pytest.raises(ImageInliningError):
            classify_image_url(url)

    @pytest.mark.parametrize("url, filename", [
        ("http://moodle.localhost/question/type/stack/plot.php/plot-1a2b3c.png", "plot-1a2b3c.png"),
        ("/question/type/stack/plot.php/plot-1a2b3c.svg", "plot-1a2b3c.svg"),
    ])
    def test_stackplot(self, url, filename) -> None:
        match = classify_image_url(url)

        assert match.sourcetype == ImageSourceType.STACKPLOT
        assert match['filename'] == filename

    @pytest.mark.parametrize("url", [
        "https://cdn.example.org/images/logo.gif",
        "http://moodle.localhost/theme/image.php/boost/core/1/i/grade_correct.svg",
        "http://moodle.localhost/question/type/stack/plot.php/plot.gif",
        "http://moodle.localhost/moodle/pluginfile.php/1/mod_page/content/0/image.png",
    ])
    def test_generic(self, url) -> None:
        match = classify_image_url(url)

        assert match.sourcetype == ImageSourceType.GENERIC
        assert match.url == url

    def test_matchers_are_tried_in_order(self) -> None:
        """
        Tests that the first matching addressing scheme wins and that no scheme
        matching raises

        :return: None
        """
        url = "http://moodle.localhost/question/type/stack/plot.php/plot.png"

        assert classify_image_url(url, [StackplotImageSourceMatcher()]).sourcetype == ImageSourceType.STACKPLOT
        with pytest.raises(ImageInliningError):
            classify_image_url(url, [PluginfileImageSourceMatcher()])
