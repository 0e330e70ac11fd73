"""Values shared by fixtures and tests."""

from datetime import datetime, timezone

T0 = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)

PASSWORD = "correct-horse"

AGENT_FLOAT = 1_000_000
CLIENT_WALLET = 500_000
