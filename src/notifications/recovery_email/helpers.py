"""Repository lookups shared by the recovery email command handlers."""

from protean.utils.globals import current_domain

from notifications.recovery_email.recovery_email import RecoveryEmail

PAGE_SIZE = 500


def fetch_all(queryset) -> list:
    """Every record matched by ``queryset``, read a page at a time."""
    records = []
    offset = 0
    while True:
        page = queryset.order_by("created_at").offset(offset).limit(PAGE_SIZE).all()
        records.extend(page.items)
        if len(page.items) < PAGE_SIZE:
            return records
        offset += PAGE_SIZE


def email_for_session(session_id) -> RecoveryEmail | None:
    """The recovery email scheduled for a cart session, if any."""
    repo = current_domain.repository_for(RecoveryEmail)
    emails = repo._dao.query.filter(session_id=str(session_id)).all().items
    return emails[0] if emails else None


def emails_with_status(status) -> list[RecoveryEmail]:
    repo = current_domain.repository_for(RecoveryEmail)
    if status is None:
        return fetch_all(repo._dao.query)
    return fetch_all(repo._dao.query.filter(status=status))
