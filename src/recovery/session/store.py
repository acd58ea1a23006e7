"""Cart session store — upserts, recovery signals and the age-out sweep.

The store is the only writer of cart sessions. It keeps exactly one live
(Active or Abandoned) session per customer email, applies the lifecycle
rules, persists through a ``SessionStorage`` adapter, and hands the events
raised by each mutation to the ``EventEmitter`` once the mutation is done.

All mutations and snapshot reads are serialized by one re-entrant lock.
Events are emitted after the lock is released, so listeners may call back
into the store.
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

import structlog
from protean.exceptions import ValidationError

from recovery.config import RecoveryPolicy, RetentionPolicy
from recovery.exceptions import EmptyCartError, InvariantViolation
from recovery.session.emitter import EventEmitter
from recovery.session.items import normalize
from recovery.session.lifecycle import SessionStatus, SweepTransition, plan_session, plan_sweep
from recovery.session.session import CartSession, CartSessionSnapshot, canonical_email
from recovery.session.stats import AbandonedCartStats, compute_stats
from recovery.storage import build_storage
from recovery.storage.port import SessionStorage
from recovery.utils.clock import Clock, SystemClock

logger = structlog.get_logger(__name__)


class UpsertAction(Enum):
    TRACK = "track"
    UPDATE = "update"


class RecoveryOutcome(Enum):
    RECOVERED = "recovered"
    NOT_FOUND = "not_found"
    ALREADY_TERMINAL = "already_terminal"


@dataclass(frozen=True)
class RecoveryResult:
    """Outcome of a recovery signal. Not-found and terminal sessions are not errors."""

    outcome: RecoveryOutcome
    session: CartSessionSnapshot | None = None

    @property
    def recovered(self) -> bool:
        return self.outcome == RecoveryOutcome.RECOVERED


class SessionStore:
    def __init__(
        self,
        storage: SessionStorage | None = None,
        clock: Clock | None = None,
        policy: RecoveryPolicy | None = None,
        emitter: EventEmitter | None = None,
    ):
        self.storage = storage if storage is not None else build_storage()
        self.clock = clock or SystemClock()
        self.policy = policy or RecoveryPolicy()
        self.emitter = emitter or EventEmitter()
        self._lock = threading.RLock()

    # -------------------------------------------------------------------
    # Inbound operations
    # -------------------------------------------------------------------
    def track(self, email: str, display_name: str | None, items) -> CartSessionSnapshot:
        """Open or revise the customer's cart session."""
        return self.upsert(email, display_name, items, UpsertAction.TRACK)

    def update(self, email: str, items, display_name: str | None = None) -> CartSessionSnapshot:
        """Revise the customer's cart session, opening one if none is live."""
        return self.upsert(email, display_name, items, UpsertAction.UPDATE)

    def upsert(self, email: str, display_name: str | None, items, action=UpsertAction.TRACK) -> CartSessionSnapshot:
        """Apply a cart payload for ``email``.

        A payload with no items at all empties the cart: the live session is
        expired. A payload whose items are all invalid is rejected.

        Raises:
            ValidationError: the email is blank or malformed.
            EmptyCartError: no valid line item in the payload.
        """
        action = UpsertAction(action)
        email = canonical_email(email)
        pending: list = []
        cart = normalize(items) if items else None

        try:
            with self._lock:
                now = self.clock.now()
                live = self._live_session(email)
                if live is not None:
                    self._advance(live, now)
                    if not live.is_live:
                        self._commit(live, pending)
                        live = None

                if cart is None:
                    if live is None:
                        logger.info("Rejected empty cart payload", email=email, action=action.value)
                        raise EmptyCartError()

                    live.expire(now, reason="emptied")
                    self._commit(live, pending)
                    logger.info("Cart session emptied", session_id=str(live.id), email=email)
                    return live.snapshot()

                if live is None:
                    if action == UpsertAction.UPDATE:
                        logger.info("Cart update without a live session, tracking a new one", email=email)

                    session = CartSession.create(email, display_name, cart, now)
                    self._commit(session, pending)
                    logger.info(
                        "Cart session tracked",
                        session_id=str(session.id),
                        email=email,
                        item_count=len(cart.items),
                        total_value=cart.total_value,
                    )
                    return session.snapshot()

                if live.revise(cart, now, display_name=display_name):
                    logger.info(
                        "Cart session updated",
                        session_id=str(live.id),
                        email=email,
                        item_count=len(cart.items),
                        total_value=cart.total_value,
                    )
                else:
                    logger.debug("Cart payload unchanged", session_id=str(live.id), email=email)

                self._commit(live, pending)
                return live.snapshot()
        finally:
            self.emitter.emit(pending)

    def mark_recovered(self, email: str) -> RecoveryResult:
        """Close the customer's live session as recovered.

        Checkout hooks can race with the sweep, so a missing or already closed
        session is reported in the result instead of raised.
        """
        email = canonical_email(email)
        pending: list = []

        try:
            with self._lock:
                now = self.clock.now()
                live = self._live_session(email)
                if live is not None:
                    self._advance(live, now)
                    if not live.is_live:
                        self._commit(live, pending)

                if live is None or not live.is_live:
                    latest = self._latest(email)
                    if latest is None:
                        logger.info("Recovery signal for unknown cart", email=email)
                        return RecoveryResult(RecoveryOutcome.NOT_FOUND)

                    logger.info(
                        "Recovery signal for closed cart",
                        email=email,
                        session_id=str(latest.id),
                        status=latest.status,
                    )
                    return RecoveryResult(RecoveryOutcome.ALREADY_TERMINAL, latest.snapshot())

                live.recover(now)
                self._commit(live, pending)
                logger.info(
                    "Cart session recovered",
                    session_id=str(live.id),
                    email=email,
                    recovered_from=live.recovered_from,
                    total_value=live.total_value,
                )
                return RecoveryResult(RecoveryOutcome.RECOVERED, live.snapshot())
        finally:
            self.emitter.emit(pending)

    def remove(self, email: str) -> int:
        """Delete every retained session for ``email``. Returns how many were removed."""
        email = canonical_email(email)
        with self._lock:
            sessions = self.storage.for_email(email)
            for session in sessions:
                self.storage.delete(str(session.id))

        if sessions:
            logger.info("Cart sessions removed", email=email, count=len(sessions))
        return len(sessions)

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def get(self, email: str) -> CartSessionSnapshot | None:
        """The customer's live session, else their most recent closed one."""
        email = canonical_email(email)
        pending: list = []

        try:
            with self._lock:
                live = self._live_session(email)
                if live is not None and self.policy.sweep_on_read and self._advance(live, self.clock.now()):
                    self._commit(live, pending)
                if live is not None and live.is_live:
                    return live.snapshot()

                latest = self._latest(email)
                return latest.snapshot() if latest is not None else None
        finally:
            self.emitter.emit(pending)

    def history(self, email: str) -> list[CartSessionSnapshot]:
        """Every retained session for ``email``, oldest first."""
        email = canonical_email(email)
        with self._lock:
            sessions = sorted(self.storage.for_email(email), key=lambda session: session.created_at)
            return [session.snapshot() for session in sessions]

    def all(self) -> list[CartSessionSnapshot]:
        """Snapshot of every retained session."""
        pending: list = []
        try:
            with self._lock:
                if self.policy.sweep_on_read:
                    self._sweep(self.clock.now(), pending)
                return [session.snapshot() for session in self.storage.all()]
        finally:
            self.emitter.emit(pending)

    def abandoned(self) -> list[CartSessionSnapshot]:
        """Sessions currently Abandoned, the targets of a re-engagement campaign."""
        return [session for session in self.all() if session.status == SessionStatus.ABANDONED.value]

    def stats(self, now: datetime | None = None) -> AbandonedCartStats:
        """Rollup statistics as of ``now``. A future ``now`` is projected, never applied."""
        pending: list = []
        try:
            with self._lock:
                current = self.clock.now()
                now = now or current
                if self.policy.sweep_on_read:
                    self._sweep(min(now, current), pending)
                snapshots = [session.snapshot() for session in self.storage.all()]
        finally:
            self.emitter.emit(pending)

        return compute_stats(snapshots, now, self.policy)

    # -------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------
    def sweep(self, now: datetime | None = None) -> list[SweepTransition]:
        """Apply every time-based transition due at ``now``.

        Transitions are irreversible, so ``now`` may not lie ahead of the
        store clock.

        Raises:
            ValidationError: ``now`` is later than the current time.
        """
        pending: list = []
        try:
            with self._lock:
                current = self.clock.now()
                if now is not None and now > current:
                    raise ValidationError({"as_of": ["Cannot sweep at a moment later than now"]})
                now = now or current
                plan = self._sweep(now, pending)
        finally:
            self.emitter.emit(pending)

        logger.info(
            "Cart session sweep complete",
            as_of=now.isoformat(),
            abandoned=sum(1 for t in plan if t.target == SessionStatus.ABANDONED),
            expired=sum(1 for t in plan if t.target == SessionStatus.EXPIRED),
        )
        return plan

    def purge_expired(self, older_than: timedelta | None = None, now: datetime | None = None) -> int:
        """Delete retained Expired sessions, optionally only those expired before ``now - older_than``."""
        with self._lock:
            now = now or self.clock.now()
            cutoff = now - older_than if older_than is not None else None
            purged = 0
            for session in self.storage.all():
                if session.status != SessionStatus.EXPIRED.value:
                    continue
                if cutoff is not None and session.expired_at is not None and session.expired_at > cutoff:
                    continue
                self.storage.delete(str(session.id))
                purged += 1

        logger.info("Purged expired cart sessions", count=purged)
        return purged

    def cleanup_old_sessions(self, older_than: timedelta = timedelta(days=30)) -> int:
        """Delete closed sessions that closed more than ``older_than`` ago.

        Recovered and Expired sessions both age out. Live sessions are never
        deleted; due transitions are applied first so idle carts count as closed.
        Returns how many sessions were deleted.
        """
        pending: list = []
        try:
            with self._lock:
                now = self.clock.now()
                self._sweep(now, pending)

                cutoff = now - older_than
                removed = 0
                for session in self.storage.all():
                    if not session.is_terminal:
                        continue
                    if _closed_at(session) > cutoff:
                        continue
                    self.storage.delete(str(session.id))
                    removed += 1
        finally:
            self.emitter.emit(pending)

        logger.info("Old cart sessions cleaned up", count=removed, cutoff=cutoff.isoformat())
        return removed

    # -------------------------------------------------------------------
    # Internals (call with the lock held)
    # -------------------------------------------------------------------
    def _live_session(self, email: str) -> CartSession | None:
        live = [session for session in self.storage.for_email(email) if session.is_live]
        if len(live) <= 1:
            return live[0] if live else None

        session_ids = [str(session.id) for session in live]
        logger.error("Multiple live cart sessions for one customer", email=email, session_ids=session_ids)
        if self.policy.strict_invariants:
            raise InvariantViolation(email, session_ids)

        live.sort(key=lambda session: session.last_updated_at)
        keep, discard = live[-1], live[:-1]
        for session in discard:
            self.storage.delete(str(session.id))

        logger.warning(
            "Repaired live cart sessions",
            email=email,
            kept=str(keep.id),
            discarded=[str(session.id) for session in discard],
        )
        return keep

    def _latest(self, email: str) -> CartSession | None:
        sessions = self.storage.for_email(email)
        if not sessions:
            return None
        return max(sessions, key=lambda session: session.created_at)

    def _commit(self, session: CartSession, pending: list) -> None:
        pending.extend(session.pull_events())

        if session.status == SessionStatus.EXPIRED.value and self.policy.retention == RetentionPolicy.DROP:
            self.storage.delete(str(session.id))
        else:
            self.storage.save(session)

    def _apply(self, session: CartSession, transition: SweepTransition, now: datetime) -> None:
        if transition.target == SessionStatus.ABANDONED:
            session.abandon(now)
        elif transition.target == SessionStatus.EXPIRED:
            session.expire(now, reason="idle")

        logger.info(
            "Cart session aged",
            session_id=transition.session_id,
            email=transition.email,
            source=transition.source.value,
            target=transition.target.value,
            idle_seconds=int(transition.idle_for.total_seconds()),
        )

    def _advance(self, session: CartSession, now: datetime) -> list[SweepTransition]:
        """Apply the transitions ``session`` is due for. The caller commits."""
        transitions = plan_session(session, now, self.policy)
        for transition in transitions:
            self._apply(session, transition, now)
        return transitions

    def _sweep(self, now: datetime, pending: list) -> list[SweepTransition]:
        sessions = {str(session.id): session for session in self.storage.all()}
        plan = plan_sweep(sessions.values(), now, self.policy)

        touched = []
        for transition in plan:
            session = sessions[transition.session_id]
            self._apply(session, transition, now)
            if transition.session_id not in touched:
                touched.append(transition.session_id)

        for session_id in touched:
            self._commit(sessions[session_id], pending)
        return plan


def _closed_at(session: CartSession) -> datetime:
    return session.recovered_at or session.expired_at or session.last_updated_at
