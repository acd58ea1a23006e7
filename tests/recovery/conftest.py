from datetime import UTC, datetime

import pytest


@pytest.fixture()
def clock():
    from recovery.utils.clock import ManualClock

    return ManualClock(datetime(2024, 6, 1, 12, 0, tzinfo=UTC))


@pytest.fixture()
def policy():
    from recovery.config import RecoveryPolicy

    return RecoveryPolicy()


@pytest.fixture()
def emitter():
    from recovery.session.emitter import EventEmitter

    return EventEmitter()


@pytest.fixture()
def store(clock, policy, emitter):
    from recovery.session.store import SessionStore

    return SessionStore(clock=clock, policy=policy, emitter=emitter)


@pytest.fixture()
def widget():
    return {"product_id": "p1", "name": "Widget", "unit_price": 1000, "quantity": 2}


@pytest.fixture()
def gadget():
    return {"product_id": "p2", "name": "Gadget", "unit_price": 2500, "quantity": 1}
