"""Abandoned cart statistics — rollups over a set of cart sessions.

Statuses are evaluated as of ``now``: a session that is due to be abandoned
or expired counts in its post-sweep state even if no sweep has run yet.
Nothing here mutates the sessions it reads.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from recovery.config import RecoveryPolicy
from recovery.session.lifecycle import SessionStatus, status_at


@dataclass(frozen=True)
class AbandonedCartStats:
    as_of: datetime
    total_tracked: int = 0
    count_by_status: dict = field(default_factory=lambda: {status.value: 0 for status in SessionStatus})
    recovery_rate: float = 0.0
    average_time_to_recovery: timedelta | None = None
    total_abandoned_value: int = 0
    total_recovered_value: int = 0
    recovered_after_abandonment: int = 0
    recovered_while_active: int = 0
    average_cart_value: float = 0.0

    def to_dict(self) -> dict:
        return {
            "as_of": self.as_of.isoformat(),
            "total_tracked": self.total_tracked,
            "count_by_status": dict(self.count_by_status),
            "recovery_rate": self.recovery_rate,
            "average_time_to_recovery_seconds": (
                self.average_time_to_recovery.total_seconds() if self.average_time_to_recovery is not None else None
            ),
            "total_abandoned_value": self.total_abandoned_value,
            "total_recovered_value": self.total_recovered_value,
            "recovered_after_abandonment": self.recovered_after_abandonment,
            "recovered_while_active": self.recovered_while_active,
            "average_cart_value": self.average_cart_value,
        }


def compute_stats(sessions, now: datetime, policy: RecoveryPolicy | None = None) -> AbandonedCartStats:
    """Roll up ``sessions`` as of ``now``.

    ``recovery_rate`` is Recovered / (Recovered + Expired) and is 0 until a
    session completes its lifecycle. ``average_time_to_recovery`` is None
    until a session is recovered.
    """
    policy = policy or RecoveryPolicy()
    sessions = list(sessions)

    counts = {status.value: 0 for status in SessionStatus}
    abandoned_value = 0
    recovered_value = 0
    after_abandonment = 0
    while_active = 0
    recovery_times: list[timedelta] = []

    for session in sessions:
        status = status_at(session, now, policy)
        counts[status.value] += 1

        if status == SessionStatus.ABANDONED:
            abandoned_value += session.total_value
        elif status == SessionStatus.RECOVERED:
            recovered_value += session.total_value
            if session.recovered_from == SessionStatus.ABANDONED.value:
                after_abandonment += 1
            else:
                while_active += 1
            if session.recovered_at is not None and session.created_at is not None:
                recovery_times.append(session.recovered_at - session.created_at)

    recovered = counts[SessionStatus.RECOVERED.value]
    completed = recovered + counts[SessionStatus.EXPIRED.value]

    return AbandonedCartStats(
        as_of=now,
        total_tracked=len(sessions),
        count_by_status=counts,
        recovery_rate=(recovered / completed) if completed else 0.0,
        average_time_to_recovery=(
            sum(recovery_times, timedelta(0)) / len(recovery_times) if recovery_times else None
        ),
        total_abandoned_value=abandoned_value,
        total_recovered_value=recovered_value,
        recovered_after_abandonment=after_abandonment,
        recovered_while_active=while_active,
        average_cart_value=(sum(session.total_value for session in sessions) / len(sessions)) if sessions else 0.0,
    )
