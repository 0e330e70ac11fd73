"""
Register pytest plugins, fixtures, and hooks to be used during test execution.

All fixtures are organized in the fixtures/ directory.
"""

import sys
from pathlib import Path

THIS_DIR = Path(__file__).parent
TESTS_DIR_PARENT = (THIS_DIR / "..").resolve()

# add the parent directory of tests/ to PYTHONPATH
# so that we can use "from tests.<module> import ..." in our tests and fixtures
sys.path.insert(0, str(TESTS_DIR_PARENT))

pytest_plugins = [
    # Settings, clock and event bus
    "tests.fixtures.settings_fixtures",
    # Temporary SQLite database per test
    "tests.fixtures.database_fixtures",
    # Seeded accounts and balances
    "tests.fixtures.account_fixtures",
    # In-memory ledger double
    "tests.fixtures.ledger_fixtures",
    # FastAPI application and test client
    "tests.fixtures.app_fixtures",
]
