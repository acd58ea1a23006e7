"""Cart session lifecycle — states, legal transitions and the age-out sweep.

State Machine:
    ACTIVE → ABANDONED → RECOVERED | EXPIRED
    ACTIVE → RECOVERED   (checkout before the abandonment threshold)
    ACTIVE → EXPIRED     (cart emptied by the customer)

RECOVERED and EXPIRED are terminal. Time-based transitions are computed by
``plan_sweep``, a pure function of the sessions and a point in time; the
store applies the plan. Nothing here reads the clock.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from recovery.config import RecoveryPolicy


class SessionStatus(Enum):
    ACTIVE = "Active"
    ABANDONED = "Abandoned"
    RECOVERED = "Recovered"
    EXPIRED = "Expired"


_VALID_TRANSITIONS = {
    SessionStatus.ACTIVE: {SessionStatus.ABANDONED, SessionStatus.RECOVERED, SessionStatus.EXPIRED},
    SessionStatus.ABANDONED: {SessionStatus.RECOVERED, SessionStatus.EXPIRED},
    SessionStatus.RECOVERED: set(),  # Terminal
    SessionStatus.EXPIRED: set(),  # Terminal
}

LIVE_STATES = frozenset({SessionStatus.ACTIVE, SessionStatus.ABANDONED})
TERMINAL_STATES = frozenset({SessionStatus.RECOVERED, SessionStatus.EXPIRED})


def can_transition(current, target) -> bool:
    return SessionStatus(target) in _VALID_TRANSITIONS[SessionStatus(current)]


def is_terminal(status) -> bool:
    return SessionStatus(status) in TERMINAL_STATES


def is_live(status) -> bool:
    return SessionStatus(status) in LIVE_STATES


@dataclass(frozen=True)
class SweepTransition:
    """One planned time-based transition for a session."""

    session_id: str
    email: str
    source: SessionStatus
    target: SessionStatus
    idle_for: timedelta


def plan_session(session, now: datetime, policy: RecoveryPolicy) -> list[SweepTransition]:
    """Transitions a single session is due for at ``now``, in order."""
    status = SessionStatus(session.status)
    if status not in LIVE_STATES or session.last_updated_at is None:
        return []

    idle_for = now - session.last_updated_at
    transitions = []

    if status == SessionStatus.ACTIVE and idle_for >= policy.abandon_after:
        transitions.append(
            SweepTransition(str(session.id), session.email, SessionStatus.ACTIVE, SessionStatus.ABANDONED, idle_for)
        )
        status = SessionStatus.ABANDONED

    if status == SessionStatus.ABANDONED and idle_for >= policy.expire_after:
        transitions.append(
            SweepTransition(str(session.id), session.email, SessionStatus.ABANDONED, SessionStatus.EXPIRED, idle_for)
        )

    return transitions


def plan_sweep(sessions, now: datetime, policy: RecoveryPolicy) -> list[SweepTransition]:
    """Every time-based transition due across ``sessions`` at ``now``.

    An Active session idle past both thresholds yields two chained
    transitions (Active → Abandoned, then Abandoned → Expired).
    """
    plan = []
    for session in sessions:
        plan.extend(plan_session(session, now, policy))
    return plan


def status_at(session, now: datetime, policy: RecoveryPolicy) -> SessionStatus:
    """The status ``session`` would hold after a sweep at ``now``."""
    transitions = plan_session(session, now, policy)
    if transitions:
        return transitions[-1].target
    return SessionStatus(session.status)
