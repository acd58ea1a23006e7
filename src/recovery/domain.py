"""Recovery bounded context — cart session tracking and abandoned cart recovery.

Tracks one live cart session per customer email, ages idle sessions into
Abandoned and then Expired, records recoveries at checkout, and reports
rollup statistics for the re-engagement campaign.
"""

from protean.domain import Domain

from recovery.utils.logging import configure_logging

# Configure logging for the application
configure_logging()

# Domain Composition Root
recovery = Domain(name="recovery")
