"""Tests for session label parsing."""

from pathlib import Path

import pytest

from task_bridge import session_label


class TestParse:
    def test_plain_label(self):
        locator = session_label.parse("*session:/a/b/c*")
        assert locator is not None
        assert locator.workspace_root == Path("/a/b/c")
        assert locator.display_buffer == "*session:/a/b/c*"
        assert locator.instance is None

    def test_secondary_segment(self):
        locator = session_label.parse("*claude:/home/me/proj:tests*")
        assert locator.workspace_root == Path("/home/me/proj")
        assert locator.instance == "tests"

    def test_trailing_slash_stripped(self):
        assert session_label.workspace_root("*claude:/home/me/proj/*") == Path("/home/me/proj")

    def test_root_directory(self):
        assert session_label.workspace_root("*claude:/*") == Path("/")

    def test_home_relative(self):
        assert session_label.workspace_root("*claude:~/*") == Path("~")

    @pytest.mark.parametrize(
        "label",
        [
            "*scratch*",
            "*Messages*",
            "notes.org",
            "",
            "*claude:relative/path*",
            "claude:/a/b",
            "*claude:/a/b",
            "* claude:/a/b*",
        ],
    )
    def test_non_matching(self, label):
        assert session_label.parse(label) is None
        assert session_label.workspace_root(label) is None

    def test_non_string(self):
        assert session_label.parse(None) is None
        assert session_label.parse(42) is None


class TestAgentSession:
    def test_prefix_match(self):
        assert session_label.is_agent_session("*claude:/a*", "*claude")
        assert not session_label.is_agent_session("*session:/a*", "*claude")

    def test_empty_prefix_never_matches(self):
        assert not session_label.is_agent_session("*claude:/a*", "")
