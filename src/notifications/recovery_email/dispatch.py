"""DispatchRecoveryEmails command + handler — send recovery emails that are due.

Invoked by a background job or cron. Each due email is rendered and handed to
the configured email channel. Delivery problems are recorded on the email and
retried on the next run until it runs out of attempts.
"""

import structlog
from protean.fields import DateTime, String
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from notifications.channel import get_email_channel
from notifications.channel.port import DeliveryReceipt, OutboundEmail
from notifications.domain import notifications
from notifications.recovery_email.helpers import emails_with_status
from notifications.recovery_email.recovery_email import DeliveryStatus, RecoveryEmail
from notifications.templates.cart_recovery import CartRecoveryTemplate

logger = structlog.get_logger(__name__)

REPLY_TO = "support@shop.example.com"


def recovery_url(site_url: str, session_id) -> str:
    return f"{site_url.rstrip('/')}/cart?recovery={session_id}"


def compose(email: RecoveryEmail, site_url: str) -> OutboundEmail:
    content = CartRecoveryTemplate.render(
        {
            "customer_name": email.customer_name,
            "items": email.line_items,
            "total_value": email.total_value,
            "cart_url": recovery_url(site_url, email.session_id),
        }
    )
    return OutboundEmail(
        session_id=str(email.session_id),
        to=email.email,
        subject=content["subject"],
        body=content["body"],
        html_body=content["html_body"],
        reply_to=REPLY_TO,
    )


@notifications.command(part_of="RecoveryEmail")
class DispatchRecoveryEmails:
    """Request to send every pending recovery email due at ``as_of``."""

    as_of: DateTime(required=True)
    site_url: String(required=True, max_length=500)


@notifications.command_handler(part_of=RecoveryEmail)
class DispatchRecoveryEmailsHandler:
    @handle(DispatchRecoveryEmails)
    def dispatch(self, command: DispatchRecoveryEmails):
        as_of = command.as_of
        repo = current_domain.repository_for(RecoveryEmail)
        channel = get_email_channel()

        due = [email for email in emails_with_status(DeliveryStatus.PENDING.value) if email.is_due(as_of)]

        sent = 0
        for email in due:
            try:
                receipt = channel.deliver(compose(email, command.site_url))
            except Exception as exc:
                receipt = DeliveryReceipt(delivered=False, failure_reason=str(exc))

            if receipt.delivered:
                email.mark_sent(receipt.message_id, as_of)
                sent += 1
                logger.info(
                    "Cart recovery email sent",
                    session_id=str(email.session_id),
                    message_id=receipt.message_id,
                )
            else:
                email.record_failure(receipt.failure_reason or "Unknown dispatch error", as_of)
                logger.warning(
                    "Cart recovery email dispatch failed",
                    session_id=str(email.session_id),
                    attempts=email.attempts,
                    error=email.failure_reason,
                    gave_up=email.status == DeliveryStatus.FAILED.value,
                )

            repo.add(email)

        logger.info("Cart recovery emails dispatched", sent=sent, due=len(due), as_of=as_of.isoformat())
        return sent
