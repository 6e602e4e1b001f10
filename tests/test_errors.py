"""Tests for the error taxonomy and operator messages."""

from task_bridge.errors import (
    MissingDependencyError,
    NotFoundError,
    ParseError,
    TaskBridgeError,
    user_message,
)


class TestErrors:
    def test_hierarchy(self):
        for error in (NotFoundError("x"), ParseError("x"), MissingDependencyError("x")):
            assert isinstance(error, TaskBridgeError)

    def test_not_found_carries_label(self):
        error = NotFoundError("No workspace contains *a*", session_label="*a*")
        assert error.session_label == "*a*"

    def test_missing_dependency_default_message(self):
        error = MissingDependencyError("task-bridge")
        assert error.executable == "task-bridge"
        assert str(error) == "Required executable not found on PATH: task-bridge"


class TestUserMessage:
    def test_not_found(self):
        assert user_message(NotFoundError("No workspace contains *a*")) == "No workspace contains *a*"

    def test_parse_with_source(self):
        msg = user_message(ParseError("invalid JSON", source="/tmp/settings.json"))
        assert msg == "Could not read (/tmp/settings.json): invalid JSON"

    def test_parse_without_source(self):
        assert user_message(ParseError("bad")) == "Could not read: bad"

    def test_missing_dependency(self):
        assert user_message(MissingDependencyError("tb")).endswith("; install it and retry")

    def test_other(self):
        assert user_message(OSError("disk full")) == "OSError: disk full"
