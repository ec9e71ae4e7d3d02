"""Unit tests for switch lifecycle state-machine guardrails."""

import pytest

from vaultswitch.common.errors import InvalidTransitionError
from vaultswitch.common.state_machine import ARMED, INACTIVE, TRIGGERED, switch_state, validate_transition


def test_valid_transition():
    """Sanity check: arming and triggering are legal."""

    validate_transition(INACTIVE, ARMED)
    validate_transition(ARMED, TRIGGERED)


def test_invalid_transition():
    """An inactive switch must never jump straight to TRIGGERED."""

    with pytest.raises(InvalidTransitionError):
        validate_transition(INACTIVE, TRIGGERED)


def test_triggered_cannot_retrigger():
    """Trigger is one-way until a check-in or deactivation resets it."""

    with pytest.raises(InvalidTransitionError):
        validate_transition(TRIGGERED, TRIGGERED)


def test_state_derived_from_flags():
    """Triggered wins over active; otherwise the active flag decides."""

    assert switch_state(is_active=False, is_triggered=False) == INACTIVE
    assert switch_state(is_active=True, is_triggered=False) == ARMED
    assert switch_state(is_active=True, is_triggered=True) == TRIGGERED
