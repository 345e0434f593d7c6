# pyOpenDTU Module - Response Schemas
# -*- coding: utf-8 -*-
"""
 Schemas for the OpenDTU livedata API and the power meter APIs

 Payloads are validated once, at the API boundary. A payload that does not
 have the expected shape raises DecodeFailure rather than silently turning
 into zero readings.

 OpenDTU livedata (GET <dtuApiUrl>?inv=<serial>):
    {
      "inverters": [{
         "serial": "...", "name": "...", "producing": true, "reachable": true,
         "AC": {"0": {"Power": {"v": 231.4}}},
         "DC": {"0": {"name": {"u": "Panel A"}, "Power": {"v": 120.2},
                      "YieldDay": {"v": 812}, "YieldTotal": {"v": 431.2}}, ...}
      }],
      "total": {"Power": {"v": ...}, "YieldDay": {"v": ...}, "YieldTotal": {"v": ...}}
    }

 Tasmota (status 8):  {"StatusSNS": {"": {"current": 312}}}
 Shelly:              {"meters": [{"power": 312.5}, ...]}
"""
import logging
from typing import Any, List, Optional

from pyopendtu.exceptions import DecodeFailure

log = logging.getLogger(__name__)

RED = "red"
YELLOW = "yellow"
GREEN = "green"

POWERMETERS = ["tasmota", "shelly"]


def lookup(data, keylist):
    """
    Lookup a value in a nested dictionary or return None if not found.
        data - nested dictionary
        keylist - list of keys to traverse
    """
    for key in keylist:
        if isinstance(data, dict) and key in data:
            data = data[key]
        elif isinstance(data, list) and isinstance(key, int) and -len(data) <= key < len(data):
            data = data[key]
        else:
            return None
    return data


def to_float(value, field: str) -> float:
    # Booleans are ints in Python but never a valid reading
    if value is None or isinstance(value, bool):
        raise DecodeFailure(f"Missing numeric value for {field}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise DecodeFailure(f"Invalid numeric value for {field}: {value!r}")


class DcString:
    """One DC input (panel string) of an inverter"""

    def __init__(self, key: str, name: str, power: float):
        self.key = key
        self.name = name
        self.power = power

    def __eq__(self, other):
        return isinstance(other, DcString) and \
            (self.key, self.name, self.power) == (other.key, other.name, other.power)

    def __repr__(self):
        return f"DcString({self.key!r}, {self.name!r}, {self.power!r})"


class InverterStatus:
    """Validated view of the first inverter in an OpenDTU livedata payload"""

    def __init__(self, serial: Optional[str], name: Optional[str], producing: bool, reachable: bool,
                 power: float, yield_day: float, yield_total: float, dc: List[DcString]):
        self.serial = serial
        self.name = name
        self.producing = producing
        self.reachable = reachable
        self.power = power  # W
        self.yield_day = yield_day  # Wh
        self.yield_total = yield_total  # kWh
        self.dc = dc

    @classmethod
    def from_payload(cls, payload: Any) -> "InverterStatus":
        if not isinstance(payload, dict):
            raise DecodeFailure(f"Expected a JSON object from OpenDTU, got {type(payload).__name__}")
        inverters = payload.get("inverters")
        if not isinstance(inverters, list) or len(inverters) == 0:
            raise DecodeFailure("OpenDTU payload has no inverters")
        inverter = inverters[0]
        if not isinstance(inverter, dict):
            raise DecodeFailure("OpenDTU inverter entry is not an object")

        power = to_float(lookup(inverter, ["AC", "0", "Power", "v"]), "AC.0.Power")

        dc_block = inverter.get("DC")
        if not isinstance(dc_block, dict):
            raise DecodeFailure("OpenDTU inverter has no DC block")
        dc = []
        for key, channel in dc_block.items():
            if not isinstance(channel, dict):
                raise DecodeFailure(f"DC channel {key} is not an object")
            name = lookup(channel, ["name", "u"])
            dc.append(DcString(str(key), str(name) if name is not None else f"DC {key}",
                               to_float(lookup(channel, ["Power", "v"]), f"DC.{key}.Power")))

        # Per-channel yield is on DC "0"; older firmware only reports the total block
        source = dc_block.get("0") or {}
        if lookup(source, ["YieldDay", "v"]) is None or lookup(source, ["YieldTotal", "v"]) is None:
            log.debug("DC 0 has no yield figures - using total block")
            source = payload.get("total") or {}
        yield_day = to_float(lookup(source, ["YieldDay", "v"]), "YieldDay")
        yield_total = to_float(lookup(source, ["YieldTotal", "v"]), "YieldTotal")

        return cls(
            serial=inverter.get("serial"),
            name=inverter.get("name"),
            producing=bool(inverter.get("producing", True)),
            reachable=bool(inverter.get("reachable", True)),
            power=power,
            yield_day=yield_day,
            yield_total=yield_total,
            dc=dc,
        )


def power_draw_value(kind: str, payload: Any) -> float:
    """Return the current power draw (W) from a Tasmota or Shelly response"""
    if kind == "tasmota":
        return to_float(lookup(payload, ["StatusSNS", "", "current"]), "StatusSNS.current")
    if kind == "shelly":
        return to_float(lookup(payload, ["meters", 0, "power"]), "meters[0].power")
    raise DecodeFailure(f"Unknown power meter type: {kind}")


def classify_power(value: float, settings) -> str:
    # Lower bound of each band is inclusive
    if value < settings.redThreshold:
        return RED
    if value < settings.yellowThreshold:
        return YELLOW
    return GREEN


def classify_power_draw(value: float, settings) -> str:
    if value > settings.powerDrawThreshold:
        return YELLOW
    return GREEN
