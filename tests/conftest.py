import pytest

from hsm_keybatch.config import KeyBatchSettings
from hsm_keybatch.hsm.caller import ResilientCaller
from tests.helpers import API_URL, FakeHSM, no_sleep


@pytest.fixture
def settings() -> KeyBatchSettings:
    """Settings pointing at the fake HSM with no retry delay."""
    return KeyBatchSettings(
        token="test-token",
        num_keys=2,
        key_prefix="batch",
        api_base_url=API_URL,
        retry_delay_seconds=0,
    )


@pytest.fixture
def fake_hsm() -> FakeHSM:
    return FakeHSM()


@pytest.fixture
def hsm_caller(fake_hsm: FakeHSM) -> ResilientCaller:
    return ResilientCaller(session=fake_hsm.session(), max_attempts=3, retry_delay=0, sleep=no_sleep)
