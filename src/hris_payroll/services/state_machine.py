"""Payroll record state machine with transition validation."""

from __future__ import annotations

from hris_payroll.exceptions import ConflictError
from hris_payroll.models.payroll import PayrollStatus


class InvalidTransitionError(ConflictError):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PayrollStateMachine:
    """State machine for payroll record status transitions.

    Allowed transitions:
    - draft → processed
    - processed → paid

    There are no reverse or skip transitions; paid is terminal.
    """

    VALID_TRANSITIONS: dict[PayrollStatus, tuple[PayrollStatus, ...]] = {
        PayrollStatus.DRAFT: (PayrollStatus.PROCESSED,),
        PayrollStatus.PROCESSED: (PayrollStatus.PAID,),
        PayrollStatus.PAID: (),  # Terminal state
    }

    # Statuses where adjustments can be applied
    ADJUSTMENTS_ALLOWED = frozenset({PayrollStatus.DRAFT, PayrollStatus.PROCESSED})

    # Statuses where the record can be deleted
    DELETION_ALLOWED = frozenset({PayrollStatus.DRAFT})

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        try:
            source = PayrollStatus(from_status)
            target = PayrollStatus(to_status)
        except ValueError:
            return False
        return target in cls.VALID_TRANSITIONS[source]

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if cls.can_transition(from_status, to_status):
            return

        source = PayrollStatus.parse(from_status)
        if cls.is_terminal(source):
            reason = f"{source.value} payroll status cannot be changed"
        else:
            allowed = ", ".join(s.value for s in cls.VALID_TRANSITIONS[source])
            reason = f"{source.value} payroll can only be moved to {allowed}"
        target = to_status.value if isinstance(to_status, PayrollStatus) else to_status
        raise InvalidTransitionError(source.value, target, reason)

    @classmethod
    def can_adjust(cls, status: str) -> bool:
        """Check if adjustments (overtime, THR, other deductions) may be applied."""
        return PayrollStatus.parse(status) in cls.ADJUSTMENTS_ALLOWED

    @classmethod
    def can_delete(cls, status: str) -> bool:
        """Check if a record in this status may be deleted."""
        return PayrollStatus.parse(status) in cls.DELETION_ALLOWED

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return not cls.VALID_TRANSITIONS[PayrollStatus.parse(status)]

    @classmethod
    def get_next_statuses(cls, current_status: str) -> tuple[PayrollStatus, ...]:
        """Get valid next statuses from current status."""
        return cls.VALID_TRANSITIONS[PayrollStatus.parse(current_status)]
