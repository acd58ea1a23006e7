from datetime import UTC, datetime

import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def notifications_bed():
    from notifications.domain import notifications

    bed = DomainFixture(notifications)
    bed.setup()
    yield bed
    bed.teardown()


def _clear_recovery_emails(bed):
    from notifications.recovery_email.recovery_email import RecoveryEmail
    from protean.utils.globals import current_domain

    with bed.domain_context():
        repo = current_domain.repository_for(RecoveryEmail)
        for email in repo._dao.query.all().items:
            repo._dao.delete(email)


@pytest.fixture(autouse=True)
def _clean_emails(notifications_bed):
    _clear_recovery_emails(notifications_bed)
    yield
    _clear_recovery_emails(notifications_bed)


@pytest.fixture()
def channel():
    from notifications.channel import get_email_channel, reset_email_channel

    reset_email_channel()
    yield get_email_channel()
    reset_email_channel()


@pytest.fixture()
def clock():
    from recovery.utils.clock import ManualClock

    return ManualClock(datetime(2024, 6, 1, 12, 0, tzinfo=UTC))


@pytest.fixture()
def store(clock):
    from recovery.session.store import SessionStore

    return SessionStore(clock=clock)


@pytest.fixture()
def mailer(channel, store):
    from notifications.cart_recovery import CartRecoveryMailer

    mailer = CartRecoveryMailer(site_url="https://shop.test/")
    mailer.subscribe(store.emitter)
    return mailer
