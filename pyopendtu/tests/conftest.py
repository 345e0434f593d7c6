"""Shared fixtures for pyopendtu tests."""
import copy
import threading

import pytest

from pyopendtu.cache import CacheStore
from pyopendtu.client import FetchResult
from pyopendtu.settings import Settings

DTU_PAYLOAD = {
    "inverters": [{
        "serial": "114182912345",
        "name": "Balkon",
        "producing": True,
        "reachable": True,
        "AC": {"0": {"Power": {"v": 231.4, "u": "W", "d": 1}}},
        "DC": {
            "0": {"name": {"u": "Panel A"}, "Power": {"v": 120.2, "u": "W"},
                  "YieldDay": {"v": 812, "u": "Wh"}, "YieldTotal": {"v": 431.25, "u": "kWh"}},
            "1": {"name": {"u": "Panel B"}, "Power": {"v": 118.9, "u": "W"},
                  "YieldDay": {"v": 790, "u": "Wh"}, "YieldTotal": {"v": 420.0, "u": "kWh"}},
        },
    }],
    "total": {"Power": {"v": 231.4}, "YieldDay": {"v": 1602}, "YieldTotal": {"v": 851.25}},
}
TASMOTA_PAYLOAD = {"StatusSNS": {"Time": "2024-06-01T12:00:00", "": {"current": 312}}}
SHELLY_PAYLOAD = {"meters": [{"power": 95.5, "is_valid": True}]}


class FakeClock:
    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class StubClient:
    """Stands in for DTUClient - returns canned FetchResults and records calls"""

    def __init__(self, dtu=None, meter=None, gate=None):
        self.dtu = dtu if dtu is not None else FetchResult.success(copy.deepcopy(DTU_PAYLOAD))
        self.meter = meter if meter is not None else FetchResult.success(copy.deepcopy(TASMOTA_PAYLOAD))
        self.gate = gate  # threading.Event the inverter fetch waits on
        self.calls = []
        self.lock = threading.Lock()

    def fetch_inverter(self, settings, timeout=None):
        with self.lock:
            self.calls.append('inverter')
        if self.gate is not None:
            self.gate.wait(5)
        return self.dtu

    def fetch_powermeter(self, settings, timeout=None):
        with self.lock:
            self.calls.append('powermeter')
        return self.meter

    def close(self):
        pass


@pytest.fixture
def dtu_payload():
    return copy.deepcopy(DTU_PAYLOAD)


@pytest.fixture
def settings():
    return Settings({
        "dtuApiUrl": "http://opendtu.local/api/livedata/status/",
        "inverterSerial": "114182912345",
        "showPowerDraw": 1,
        "powerDrawThreshold": 200,
    })


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(tmp_path, clock):
    return CacheStore(str(tmp_path / "cache" / "opendtu-cache.json"), clock=clock)


@pytest.fixture
def tasmota_payload():
    return copy.deepcopy(TASMOTA_PAYLOAD)


@pytest.fixture
def shelly_payload():
    return copy.deepcopy(SHELLY_PAYLOAD)


@pytest.fixture
def make_client():
    return StubClient
