"""Shared BDD fixtures and step definitions for the Recovery domain."""

from datetime import timedelta

import pytest
from pytest_bdd import given, parsers, then, when
from recovery.config import RecoveryPolicy
from recovery.session.store import SessionStore


@pytest.fixture()
def outcome():
    """Container for the last recovery result."""
    return {"result": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse("the abandonment threshold is {minutes:d} minutes"), target_fixture="store")
def store_with_threshold(clock, emitter, minutes):
    return SessionStore(clock=clock, policy=RecoveryPolicy(abandon_after=timedelta(minutes=minutes)), emitter=emitter)


@given(parsers.cfparse('"{email}" has tracked a cart with {quantity:d} of "{product_id}" at {price:d} cents'))
def tracked_cart(store, email, quantity, product_id, price):
    store.track(email, None, [{"product_id": product_id, "unit_price": price, "quantity": quantity}])


@given(parsers.cfparse('"{email}" completes checkout'))
def completed_checkout(store, outcome, email):
    outcome["result"] = store.mark_recovered(email)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse("{seconds:d} seconds pass"))
def seconds_pass(clock, seconds):
    clock.advance(seconds=seconds)


@when(parsers.cfparse("{minutes:d} minutes pass"))
def minutes_pass(clock, minutes):
    clock.advance(minutes=minutes)


@when(parsers.cfparse("{days:d} days pass"))
def days_pass(clock, days):
    clock.advance(days=days)


@when("the sweep runs")
def sweep_runs(store):
    store.sweep()


@when(parsers.cfparse('"{email}" completes checkout'))
def checkout(store, outcome, email):
    outcome["result"] = store.mark_recovered(email)


@when(parsers.cfparse('"{email}" updates the cart with {quantity:d} of "{product_id}" at {price:d} cents'))
def update_cart(store, email, quantity, product_id, price):
    store.update(email, [{"product_id": product_id, "unit_price": price, "quantity": quantity}])


@when(parsers.cfparse('"{email}" tracks a cart with {quantity:d} of "{product_id}" at {price:d} cents'))
def track_cart(store, email, quantity, product_id, price):
    store.track(email, None, [{"product_id": product_id, "unit_price": price, "quantity": quantity}])


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the cart session of "{email}" is "{status}" with a total of {total:d}'))
def session_state(store, email, status, total):
    session = store.get(email)
    assert session.status == status
    assert session.total_value == total


@then(parsers.cfparse("the stats report {value:d} cents of abandoned value"))
def abandoned_value(store, value):
    assert store.stats().total_abandoned_value == value


@then(parsers.cfparse("the stats report a recovery rate of {rate:f}"))
def recovery_rate(store, rate):
    assert store.stats().recovery_rate == pytest.approx(rate)


@then(parsers.cfparse('the recovery outcome is "{value}"'))
def recovery_outcome(outcome, value):
    assert outcome["result"].outcome.value == value


@then(parsers.cfparse('"{email}" has {count:d} cart sessions on record'))
def session_count(store, email, count):
    assert len(store.history(email)) == count
