"""Tests for logging context propagation."""

import threading

import pytest

from qalam.logging.context import (
    clear_log_context,
    get_log_context,
    log_context,
    pop_log_context,
    push_log_context,
)


@pytest.fixture(autouse=True)
def clean_context():
    """Clear logging context before and after each test."""
    clear_log_context()
    yield
    clear_log_context()


def test_empty_context():
    assert get_log_context() == {}


def test_push_and_pop_fields():
    """Test pushing several fields and restoring the previous context."""
    token = push_log_context(run_id="3f2a", event_id=42)
    assert get_log_context() == {"run_id": "3f2a", "event_id": 42}
    pop_log_context(token)
    assert get_log_context() == {}


def test_nested_push_merges_and_overrides():
    outer = push_log_context(run_id="3f2a", event_type="like")
    inner = push_log_context(event_type="comment", event_id=7)

    assert get_log_context() == {"run_id": "3f2a", "event_type": "comment", "event_id": 7}

    pop_log_context(inner)
    assert get_log_context() == {"run_id": "3f2a", "event_type": "like"}
    pop_log_context(outer)
    assert get_log_context() == {}


def test_context_manager_nested():
    """Test log_context scopes fields to the with block."""
    with log_context(run_id="3f2a"):
        with log_context(event_id=1, event_type="publish"):
            assert get_log_context() == {
                "run_id": "3f2a",
                "event_id": 1,
                "event_type": "publish",
            }
        assert get_log_context() == {"run_id": "3f2a"}
    assert get_log_context() == {}


def test_context_manager_restores_on_exception():
    with pytest.raises(RuntimeError):
        with log_context(event_id=9):
            raise RuntimeError("boom")
    assert get_log_context() == {}


def test_get_returns_copy():
    with log_context(trigger="scheduled"):
        snapshot = get_log_context()
        snapshot["trigger"] = "admin"
        assert get_log_context() == {"trigger": "scheduled"}


def test_context_isolation_between_threads():
    """Contexts pushed in one thread are invisible in another."""
    seen = {}

    def worker():
        seen["worker"] = get_log_context()

    with log_context(run_id="main-run"):
        thread = threading.Thread(target=worker)
        thread.start()
        thread.join()

    assert seen["worker"] == {}
