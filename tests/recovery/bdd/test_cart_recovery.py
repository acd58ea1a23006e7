"""BDD tests for cart session tracking and recovery."""

from pytest_bdd import scenarios

scenarios("features/cart_recovery.feature")
