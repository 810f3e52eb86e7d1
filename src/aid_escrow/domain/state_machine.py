"""Claim Status State Machine Guard.

Uses python-statemachine to enforce the legal claim lifecycle at the domain
level. Whatever the API or a background job asks for, an illegal transition
(e.g. requested -> approved) is refused before any row is touched.

Transition table (strictly linear, no skips, no reversal):
    requested  -> verified   (verify)
    verified   -> approved   (approve)
    approved   -> disbursed  (disburse)
    disbursed  -> archived   (archive)
"""

from __future__ import annotations

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from aid_escrow.domain.enums import ClaimStatus
from aid_escrow.domain.exceptions import InvalidTransitionError


class ClaimStateMachine(StateMachine):
    """State machine that guards claim lifecycle transitions.

    Usage:
        sm = ClaimStateMachine(current_status="verified")
        sm.approve()   # transitions to approved
        sm.status      # "approved"
    """

    # --- States ---
    requested = State("requested", value="requested", initial=True)
    verified = State("verified", value="verified")
    approved = State("approved", value="approved")
    disbursed = State("disbursed", value="disbursed")
    archived = State("archived", value="archived", final=True)

    # --- Events / Transitions ---
    verify = requested.to(verified)
    approve = verified.to(approved)
    disburse = approved.to(disbursed)
    archive = disbursed.to(archived)

    def __init__(self, current_status: str = ClaimStatus.REQUESTED.value) -> None:
        """Initialize the state machine at a given status.

        Args:
            current_status: The current ClaimStatus value (e.g., "verified").
        """
        valid_values = {s.value for s in self.states}
        if current_status not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(
                f"Unknown status '{current_status}'. Valid states: {valid}"
            )
        super().__init__(start_value=current_status)

    @property
    def status(self) -> str:
        """Return the current state value as a string (matches ClaimStatus)."""
        return str(self.current_state.value)

    def get_allowed_events(self) -> list[str]:
        """Return a list of event names that can fire from the current state."""
        return [event.name for event in self.allowed_events]


# Event fired to reach each target status.
_EVENT_FOR_TARGET: dict[ClaimStatus, str] = {
    ClaimStatus.VERIFIED: "verify",
    ClaimStatus.APPROVED: "approve",
    ClaimStatus.DISBURSED: "disburse",
    ClaimStatus.ARCHIVED: "archive",
}


def next_status(current: ClaimStatus) -> ClaimStatus | None:
    """Return the immediate successor of ``current`` or None for archived."""
    sm = ClaimStateMachine(current_status=current.value)
    allowed = sm.get_allowed_events()
    if not allowed:
        return None
    getattr(sm, allowed[0])()
    return ClaimStatus(sm.status)


def check_transition(
    current: ClaimStatus,
    required_from: ClaimStatus,
    to: ClaimStatus,
) -> ClaimStatus:
    """Validate ``current -> to`` given the status the caller expects.

    Returns the new status. Raises InvalidTransitionError when the claim is
    not in ``required_from`` or when ``to`` is not the immediate successor of
    ``required_from``. Never mutates anything.
    """
    if current != required_from:
        raise InvalidTransitionError(current.value, required_from.value, to.value)

    event_name = _EVENT_FOR_TARGET.get(to)
    if event_name is None:
        raise InvalidTransitionError(current.value, required_from.value, to.value)

    sm = ClaimStateMachine(current_status=current.value)
    try:
        getattr(sm, event_name)()
    except TransitionNotAllowed as err:
        raise InvalidTransitionError(current.value, required_from.value, to.value) from err
    return ClaimStatus(sm.status)
