"""Shared fakes for brood-flow tests"""

from types import SimpleNamespace

import pytest

from brood_flow.decoder import BROODMINDER_MANUFACTURER_ID
from brood_flow.errors import TransportFailure


def make_payload(model: int = 47, realtime_lo: int = 10, realtime_hi: int = 30, weight: tuple | None = None) -> bytes:
    """Build a Broodminder payload; weight is (byte 19, byte 20)"""
    data = bytearray(21 if weight else 10)
    data[0] = model
    data[1] = 1  # minor version
    data[2] = 2  # major version
    data[3] = realtime_lo
    data[4] = 90  # battery
    data[5] = 4
    data[6] = 1
    data[7] = 20
    data[8] = 30
    data[9] = realtime_hi
    if weight:
        data[19], data[20] = weight
    return bytes(data)


def make_advertisement(payload: bytes | None, local_name: str | None = "47:01:01", extra: dict | None = None):
    manufacturer_data = dict(extra or {})
    if payload is not None:
        manufacturer_data[BROODMINDER_MANUFACTURER_ID] = payload
    device = SimpleNamespace(address="AA:BB:CC:DD:EE:FF", name=None)
    adv_data = SimpleNamespace(local_name=local_name, manufacturer_data=manufacturer_data, rssi=-60)
    return device, adv_data


class FakePublisher:
    def __init__(self, fail_topics: tuple[str, ...] = ()):
        self.published: list[tuple[str, bytes]] = []
        self.fail_topics = fail_topics

    def submit(self, topic: str, payload: bytes) -> None:
        if topic in self.fail_topics:
            raise TransportFailure(f"cannot publish {topic}")
        self.published.append((topic, payload))

    @property
    def topics(self) -> list[str]:
        return [topic for topic, _ in self.published]


@pytest.fixture
def publisher() -> FakePublisher:
    return FakePublisher()
