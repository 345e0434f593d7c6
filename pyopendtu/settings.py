# pyOpenDTU Module - Settings
# -*- coding: utf-8 -*-
"""
 Settings document for pyOpenDTU

 The authoritative settings file lives in a user-synced directory so several
 machines can share one configuration. On first run a file with placeholder
 values is written and returned. Optionally a local scratch copy is kept and
 used for up to `ttl` seconds to avoid re-reading the synced file.

 Environment
    DTU_CONFIG_PATH   # Directory of opendtu-config.json (default ~/.pyopendtu)
    DTU_LOCAL_PATH    # Directory of the local scratch copy (default: no scratch copy)
"""
import copy
import json
import logging
import os
import time
from typing import Optional, Tuple

from pyopendtu.cache import StorageResult, atomic_write, now_ms
from pyopendtu.exceptions import InvalidConfigurationParameter, SettingsFileError

log = logging.getLogger(__name__)

CONFIGFILE = "opendtu-config.json"
LOCALFILE = "opendtu-config-local.json"
SETTINGS_TTL = 300  # seconds a local scratch copy is trusted
PLACEHOLDER = "change-me"

DEFAULTS = {
    "dtuApiUrl": "http://change-me/api/livedata/status/",
    "dtuUser": "changeme",
    "dtuPass": "changeme",
    "powermeter": "tasmota",
    "tasmotaApiUrl": "http://change-me/cm?cmnd=status%208",
    "tasmotaUser": "changeme",
    "tasmotaPass": "changeme",
    "shellyApiUrl": "https://change-me/",
    "shellyUser": "changeme",
    "shellyPass": "changeme",
    "showPowerDraw": 0,
    "powerDrawThreshold": 0,
    "redThreshold": 220,
    "yellowThreshold": 260,
    "greenThreshold": 400,
    "inverterSerial": "XXXXXXXXXXXX",
}
NUMERIC = ["showPowerDraw", "powerDrawThreshold", "redThreshold", "yellowThreshold", "greenThreshold"]


def default_config_dir() -> str:
    return os.getenv("DTU_CONFIG_PATH") or os.path.join(os.path.expanduser("~"), ".pyopendtu")


def default_local_dir() -> Optional[str]:
    return os.getenv("DTU_LOCAL_PATH") or None


class Settings:
    """Flat settings record - attribute names match the JSON document keys"""

    def __init__(self, values: Optional[dict] = None):
        merged = copy.deepcopy(DEFAULTS)
        merged.update(values or {})
        for key in NUMERIC:
            if isinstance(merged[key], bool) or not isinstance(merged[key], (int, float)):
                raise InvalidConfigurationParameter(f"Setting '{key}' must be a number, got {merged[key]!r}")
        self._values = merged

    def __getattr__(self, name):
        values = self.__dict__.get("_values", {})
        if name in values:
            return values[name]
        raise AttributeError(name)

    def __eq__(self, other):
        return isinstance(other, Settings) and self._values == other._values

    def __repr__(self):
        return f"Settings(dtuApiUrl={self.dtuApiUrl!r}, powermeter={self.powermeter!r})"

    def get(self, key, default=None):
        return self._values.get(key, default)

    def to_dict(self) -> dict:
        return copy.deepcopy(self._values)

    def powermeter_endpoint(self) -> Tuple[str, str, str]:
        if self.powermeter == "shelly":
            return self.shellyApiUrl, self.shellyUser, self.shellyPass
        return self.tasmotaApiUrl, self.tasmotaUser, self.tasmotaPass

    def is_placeholder(self) -> bool:
        return PLACEHOLDER in str(self.dtuApiUrl)


def default_settings() -> Settings:
    return Settings()


class SettingsStore:
    def __init__(self, path: Optional[str] = None, local_path: Optional[str] = None,
                 ttl: int = SETTINGS_TTL, clock=time.time):
        self.path = path or os.path.join(default_config_dir(), CONFIGFILE)
        if local_path is None and default_local_dir():
            local_path = os.path.join(default_local_dir(), LOCALFILE)
        self.local_path = local_path
        self.ttl = ttl
        self.clock = clock
        self.last_scratch_write: Optional[StorageResult] = None
        self.last_bootstrap_write: Optional[StorageResult] = None

    def load(self) -> Settings:
        if self.local_path:
            settings = self._load_scratch()
            if settings is not None:
                return settings

        if not os.path.exists(self.path):
            # First run - create a default settings file
            log.info(f"No settings file found - creating {self.path}")
            settings = default_settings()
            try:
                self.save(settings)
                self.last_bootstrap_write = StorageResult.success()
            except OSError as exc:
                log.error(f"Unable to create settings file {self.path} - using defaults: {exc}")
                self.last_bootstrap_write = StorageResult.failure(str(exc))
        else:
            settings = self._read_authoritative()

        if self.local_path:
            self.last_scratch_write = self._write_scratch(settings)
        return settings

    def save(self, settings: Settings):
        atomic_write(self.path, json.dumps(settings.to_dict(), indent=4))
        log.debug(f"Settings saved to {self.path}")

    def _read_authoritative(self) -> Settings:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                values = json.load(f)
        except ValueError as exc:
            raise SettingsFileError(self.path, exc)
        except OSError as exc:
            raise SettingsFileError(self.path, exc)
        if not isinstance(values, dict):
            raise SettingsFileError(self.path, "expected a JSON object")
        try:
            settings = Settings(values)
        except InvalidConfigurationParameter as exc:
            raise SettingsFileError(self.path, exc)
        log.debug(f"Loaded settings from {self.path}")
        return settings

    def _load_scratch(self) -> Optional[Settings]:
        if not os.path.exists(self.local_path):
            return None
        try:
            with open(self.local_path, "r", encoding="utf-8") as f:
                doc = json.load(f)
            age = now_ms(self.clock) - doc["timestamp"]
            settings = Settings(doc["settings"])
        except (OSError, ValueError, KeyError, TypeError, InvalidConfigurationParameter) as exc:
            log.debug(f"Ignoring unreadable local settings copy {self.local_path}: {exc}")
            return None
        if 0 <= age < self.ttl * 1000:
            log.debug(f"Using local settings copy ({age} ms old)")
            return settings
        log.debug(f"Local settings copy expired ({age} ms old)")
        return None

    def _write_scratch(self, settings: Settings) -> StorageResult:
        doc = {"timestamp": now_ms(self.clock), "settings": settings.to_dict()}
        try:
            atomic_write(self.local_path, json.dumps(doc))
        except OSError as exc:
            log.error(f"Unable to write local settings copy {self.local_path}: {exc}")
            return StorageResult.failure(str(exc))
        return StorageResult.success()
