"""
Shared test fixtures and configuration.

Environment variables are set BEFORE any app imports to prevent
accidental connections to real databases.
"""

import os
import sys

# Ensure the backend app is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Override settings before any app code imports the settings singleton
os.environ["MONGODB_URL"] = "mongodb://localhost:27017"
os.environ["DATABASE_NAME"] = "test_team_tracker"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["RECONCILIATION_INTERVAL_MINUTES"] = "0"

import pytest  # noqa: E402

from tests.mocks.teams import (  # noqa: E402
    TEAM_ID,
    USER_A,
    USER_B,
    USER_C,
    make_requestor,
    make_team_doc,
)


@pytest.fixture
def owner_requestor():
    """Requestor with the Owner role (every team permission)."""
    return make_requestor("Owner", requestor_id=USER_A)


@pytest.fixture
def admin_requestor():
    """Administrator: may manage teams but not edit team codes."""
    return make_requestor("Administrator")


@pytest.fixture
def volunteer_requestor():
    """Volunteer without any team permission."""
    return make_requestor("Volunteer")


@pytest.fixture
def team_doc():
    """Stored team with three visible members."""
    return make_team_doc(TEAM_ID, "Alpha", [USER_A, USER_B, USER_C])
