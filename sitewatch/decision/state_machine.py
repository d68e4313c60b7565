"""State machine for audit runs with transition guards."""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import ClassVar, Dict, List, Optional, Set, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from sitewatch.decision.error_codes import ErrorCode, ErrorCodeDictionary
from sitewatch.db.models import Audit
from sitewatch.utils.dates import utcnow


class AuditState(str, Enum):
    """Valid states for an audit."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def from_string(cls, value: Optional[str]) -> "AuditState":
        """
        Parse state from string with fallback to PENDING.

        Args:
            value: State string value

        Returns:
            AuditState enum value, defaults to PENDING if invalid
        """
        try:
            return cls((value or "").lower())
        except ValueError:
            return cls.PENDING


@dataclass
class StateTransition:
    """
    Represents a state transition with metadata.

    Attributes:
        from_state: Source state
        to_state: Target state
        timestamp: When the transition occurred
        reason: Optional reason for transition
        error_code: Optional error code attached to the transition
    """

    from_state: AuditState
    to_state: AuditState
    timestamp: datetime
    reason: Optional[str] = None
    error_code: Optional[str] = None

    def to_dict(self) -> Dict:
        """Convert transition to dictionary for serialization."""
        return {
            "from_state": self.from_state.value,
            "to_state": self.to_state.value,
            "timestamp": self.timestamp.isoformat(),
            "reason": self.reason,
            "error_code": self.error_code,
        }


class AuditStateMachine:
    """
    State machine for a single audit.

    Rejected transitions leave the audit untouched. Accepted ones update
    ``status``, the run timestamps and ``state_history``.
    """

    VALID_TRANSITIONS: ClassVar[Dict[AuditState, Set[AuditState]]] = {
        AuditState.PENDING: {
            AuditState.RUNNING,
            AuditState.FAILED,
        },
        AuditState.RUNNING: {
            AuditState.COMPLETED,
            AuditState.FAILED,
        },
        AuditState.COMPLETED: set(),  # Terminal state
        AuditState.FAILED: {
            AuditState.PENDING,  # Retry
        },
    }

    TERMINAL_STATES: ClassVar[Set[AuditState]] = {
        AuditState.COMPLETED,
    }

    def __init__(self, audit: Audit):
        self.audit = audit
        self.current_state = AuditState.from_string(audit.status)
        self.transition_history: List[StateTransition] = []

    def can_transition_to(
        self, target_state: AuditState
    ) -> Tuple[bool, Optional[ErrorCode]]:
        """
        Check if transition to target state is allowed.

        Returns:
            Tuple of (can_transition, error_code_if_blocked)
        """
        if self.current_state in self.TERMINAL_STATES:
            return False, ErrorCodeDictionary.STATE_TERMINAL

        allowed_states = self.VALID_TRANSITIONS.get(self.current_state, set())
        if target_state not in allowed_states:
            return False, ErrorCodeDictionary.STATE_INVALID_TRANSITION

        return True, None

    def transition_to(
        self,
        target_state: AuditState,
        reason: Optional[str] = None,
        error_code: Optional[str] = None,
    ) -> Tuple[bool, Optional[ErrorCode]]:
        """
        Attempt to transition to target state.

        Args:
            target_state: Target state to transition to
            reason: Optional reason for transition
            error_code: Optional error code recorded with the transition

        Returns:
            Tuple of (success, error_code_if_failed)
        """
        can_transition, error = self.can_transition_to(target_state)
        if not can_transition:
            return False, error

        now = utcnow()
        transition = StateTransition(
            from_state=self.current_state,
            to_state=target_state,
            timestamp=now,
            reason=reason,
            error_code=error_code,
        )
        self.transition_history.append(transition)

        self.current_state = target_state
        self.audit.status = target_state.value

        if target_state == AuditState.RUNNING:
            self.audit.started_at = now
        elif target_state in (AuditState.COMPLETED, AuditState.FAILED):
            self.audit.completed_at = now
        elif target_state == AuditState.PENDING:
            self.audit.started_at = None
            self.audit.completed_at = None

        # JSON columns are not mutation-tracked; assign a new list
        self.audit.state_history = list(self.audit.state_history or []) + [transition.to_dict()]

        return True, None

    def is_terminal(self) -> bool:
        """Check if audit is in a terminal state."""
        return self.current_state in self.TERMINAL_STATES

    def get_transition_history(self) -> List[StateTransition]:
        """Get transitions made through this machine (copy)."""
        return self.transition_history.copy()

    def get_allowed_transitions(self) -> Set[AuditState]:
        """Get all allowed transitions from current state (copy)."""
        return self.VALID_TRANSITIONS.get(self.current_state, set()).copy()


class StateMachineManager:
    """
    State machine operations that need database access.
    """

    @staticmethod
    async def get_state_machine(
        db: AsyncSession, audit_id: UUID
    ) -> Optional[AuditStateMachine]:
        audit = await db.get(Audit, audit_id)
        if not audit:
            return None
        return AuditStateMachine(audit)

    @staticmethod
    async def transition_audit_state(
        db: AsyncSession,
        audit_id: UUID,
        target_state: AuditState,
        reason: Optional[str] = None,
        error_code: Optional[str] = None,
    ) -> Tuple[bool, Optional[ErrorCode], Optional[AuditStateMachine]]:
        """
        Transition audit to target state and commit.

        Returns:
            Tuple of (success, error_code_if_failed, state_machine)
        """
        state_machine = await StateMachineManager.get_state_machine(db, audit_id)
        if not state_machine:
            return False, ErrorCodeDictionary.SYSTEM_001, None

        success, error = state_machine.transition_to(
            target_state, reason=reason, error_code=error_code
        )
        if success:
            await db.commit()
            await db.refresh(state_machine.audit)

        return success, error, state_machine
