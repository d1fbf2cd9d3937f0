import pytest

from n8nupdater.errors_catalog import actionable_error


def test_actionable_error_formats_message_with_suggested_action():
    message = actionable_error("lock_contention", pid="123", path="/var/run/n8nupdater.lock")

    assert "Another instance is already running (PID: 123)." in message
    assert "Suggested action:" in message


def test_actionable_error_rejects_unknown_code():
    with pytest.raises(KeyError):
        actionable_error("nope")
