"""PruneRecoveryEmails command + handler — forget finished recovery emails."""

import structlog
from protean.fields import DateTime
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from notifications.domain import notifications
from notifications.recovery_email.helpers import emails_with_status
from notifications.recovery_email.recovery_email import RecoveryEmail

logger = structlog.get_logger(__name__)


@notifications.command(part_of="RecoveryEmail")
class PruneRecoveryEmails:
    """Request to delete finished emails closed before ``cutoff``."""

    cutoff: DateTime(required=True)


@notifications.command_handler(part_of=RecoveryEmail)
class PruneRecoveryEmailsHandler:
    @handle(PruneRecoveryEmails)
    def prune(self, command: PruneRecoveryEmails):
        repo = current_domain.repository_for(RecoveryEmail)

        pruned = 0
        for email in emails_with_status(None):
            if email.is_pending or email.closed_at is None or email.closed_at > command.cutoff:
                continue
            repo._dao.delete(email)
            pruned += 1

        logger.info("Recovery emails pruned", count=pruned, cutoff=command.cutoff.isoformat())
        return pruned
