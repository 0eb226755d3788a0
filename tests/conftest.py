import pytest

from helpers import FakeSettleTimer, RecordingSink


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def settle() -> FakeSettleTimer:
    return FakeSettleTimer()
