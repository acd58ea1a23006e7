"""Recovery email scheduling commands — schedule, refresh and cancel.

The Recovery domain's cart session events arrive here as commands: an
abandoned cart schedules its email, a changed cart refreshes what the email
shows, and a recovered or expired cart cancels it.
"""

import structlog
from protean.fields import DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from notifications.domain import notifications
from notifications.recovery_email.helpers import email_for_session
from notifications.recovery_email.recovery_email import RecoveryEmail

logger = structlog.get_logger(__name__)


@notifications.command(part_of="RecoveryEmail")
class ScheduleCartRecovery:
    """Request to schedule the recovery email for an abandoned cart."""

    session_id: Identifier(required=True)
    email: String(required=True, max_length=254)
    customer_name: String(max_length=255)
    items: Text()  # JSON
    total_value: Integer(default=0)
    send_at: DateTime(required=True)
    scheduled_at: DateTime(required=True)
    max_attempts: Integer(default=3)


@notifications.command(part_of="RecoveryEmail")
class RefreshCartRecovery:
    """Request to show the cart's latest contents in its pending email."""

    session_id: Identifier(required=True)
    customer_name: String(max_length=255)
    items: Text()
    total_value: Integer(default=0)
    refreshed_at: DateTime(required=True)


@notifications.command(part_of="RecoveryEmail")
class CancelCartRecovery:
    """Request to cancel the pending recovery email of a closed cart."""

    session_id: Identifier(required=True)
    reason: String(required=True, max_length=500)
    cancelled_at: DateTime(required=True)


@notifications.command_handler(part_of=RecoveryEmail)
class CartRecoveryHandler:
    @handle(ScheduleCartRecovery)
    def schedule(self, command: ScheduleCartRecovery):
        existing = email_for_session(command.session_id)
        if existing is not None:
            logger.info(
                "Cart recovery email already scheduled",
                session_id=str(command.session_id),
                status=existing.status,
            )
            return str(existing.id)

        email = RecoveryEmail.schedule(
            session_id=command.session_id,
            email=command.email,
            customer_name=command.customer_name,
            items=command.items,
            total_value=command.total_value,
            send_at=command.send_at,
            scheduled_at=command.scheduled_at,
            max_attempts=command.max_attempts,
        )
        current_domain.repository_for(RecoveryEmail).add(email)

        logger.info(
            "Cart recovery email scheduled",
            session_id=str(command.session_id),
            email=command.email,
            send_at=command.send_at.isoformat(),
        )
        return str(email.id)

    @handle(RefreshCartRecovery)
    def refresh(self, command: RefreshCartRecovery):
        email = email_for_session(command.session_id)
        if email is None or not email.is_pending:
            return

        email.refresh(command.customer_name, command.items, command.total_value, command.refreshed_at)
        current_domain.repository_for(RecoveryEmail).add(email)
        logger.info(
            "Cart recovery email refreshed",
            session_id=str(command.session_id),
            total_value=email.total_value,
        )

    @handle(CancelCartRecovery)
    def cancel(self, command: CancelCartRecovery):
        email = email_for_session(command.session_id)
        if email is None or not email.is_pending:
            return

        email.cancel(command.reason, command.cancelled_at)
        current_domain.repository_for(RecoveryEmail).add(email)
        logger.info("Cart recovery email cancelled", session_id=str(command.session_id), reason=command.reason)
