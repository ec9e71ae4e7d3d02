"""Switch lifecycle state machine.

The persisted row only carries `is_active`/`is_triggered`; the lifecycle state
is derived from those two flags.
"""

from vaultswitch.common.errors import InvalidTransitionError

INACTIVE = "INACTIVE"
ARMED = "ARMED"
TRIGGERED = "TRIGGERED"

ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    INACTIVE: {ARMED},
    ARMED: {INACTIVE, TRIGGERED},
    TRIGGERED: {ARMED, INACTIVE},
}


def switch_state(is_active: bool, is_triggered: bool) -> str:
    """Derive the lifecycle state from the persisted flags."""

    if is_triggered:
        return TRIGGERED
    return ARMED if is_active else INACTIVE


def validate_transition(current: str, new: str) -> None:
    """Raise when a transition is not allowed by the state machine."""

    if new not in ALLOWED_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(f"Invalid transition: {current} -> {new}")
