"""Unit tests for payment request state-machine guardrails."""

import pytest

from welfund.common.state_machine import is_terminal, validate_transition


def test_valid_transition():
    """Sanity check: pending may complete or fail."""

    validate_transition("pending", "completed")
    validate_transition("pending", "failed")


@pytest.mark.parametrize("current,new", [("completed", "failed"), ("failed", "completed"), ("completed", "pending")])
def test_terminal_states_cannot_move(current, new):
    """A settled outcome is never rewritten by a later callback."""

    with pytest.raises(ValueError):
        validate_transition(current, new)


def test_is_terminal():
    assert not is_terminal("pending")
    assert is_terminal("completed")
    assert is_terminal("failed")
