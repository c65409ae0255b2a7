"""Fixtures for the groups tests: signed-in actors over church c1."""

from typing import List

import pytest

from modules.groups.notifications import Notification


class RecordingSender:
    """NotificationSender that keeps what it was asked to send."""

    def __init__(self, fail: bool = False) -> None:
        self.sent: List[Notification] = []
        self.fail = fail

    async def send(self, notifications) -> int:
        if self.fail:
            raise ConnectionError("notification service unavailable")
        self.sent.extend(notifications)
        return len(notifications)


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def as_admin(sign_in):
    """Sign in the church admin of c1."""
    return lambda: sign_in("admin", church_id="c1", roles=["church_admin"])


@pytest.fixture
def as_user(sign_in):
    """Sign in a plain member of c1."""
    return lambda user_id: sign_in(user_id, church_id="c1", roles=["member"])


@pytest.fixture
def events_of(published):
    """Published events of one type, in order."""
    return lambda event_type: [
        event for event in published if event.event_type == event_type
    ]
