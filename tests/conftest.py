"""
Pytest configuration and shared fixtures.
"""

import pytest

from tests.fixtures import make_account, make_shift


@pytest.fixture
def accounts():
    """Two accounts resolving to 'JDoe' and 'JSmith'."""
    return [
        make_account(id="user1", screen_name="JDoe", first_name="John", last_name="Doe"),
        make_account(id="user2", screen_name="JSmith", first_name="Jane", last_name="Smith"),
    ]


@pytest.fixture
def paired_shifts():
    """Two assignments of the same shift occurrence to different people."""
    base = {
        "name": "Shift 1",
        "local_start_date": "2023-01-01T09:00:00",
        "local_end_date": "2023-01-01T17:00:00",
        "workgroup": "Group A",
        "subject": "Testing",
        "location": "Room 101",
    }
    return [
        make_shift(id="1", covering_member="user1", clocked_in=True, **base),
        make_shift(id="2", covering_member="user2", clocked_in=False, **base),
    ]
