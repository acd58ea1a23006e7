"""Notifications bounded context — recovery emails for abandoned carts.

Keeps one RecoveryEmail per abandoned cart session, sends it through the
email channel once it is due, and tracks delivery status for audit and retry.
"""

from protean.domain import Domain

notifications = Domain(name="notifications")
