import pytest

from config import RunConfig
from fakes import PEER


@pytest.fixture
def small_config():
    return RunConfig(
        address=PEER,
        packet_size=512,
        packet_count=50,
        timeout=1.0,
        send_interval=0.0,
    )
