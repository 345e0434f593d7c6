# pyOpenDTU Module
# -*- coding: utf-8 -*-
"""
 Python module to read OpenDTU solar inverter data and render a status widget

 For more information see https://github.com/tbnobody/OpenDTU

 Features
    * Reads live data from the OpenDTU livedata API (HTTP Basic auth)
    * Optional power draw reading from a Tasmota or Shelly power meter
    * Fetches inverter and power meter at the same time
    * Caches the last good response and shows it when the device is offline
    * Optimistic mode - shows cache younger than 2 minutes at once and
      refreshes in the background
    * Settings in a shared JSON file, optionally shadowed by a local copy

 Classes
    OpenDTU(config_path, local_path, cache_path, timeout, optimistic, settings_ttl)

 Parameters
    config_path = None        # Settings file (default $DTU_CONFIG_PATH or ~/.pyopendtu)
    local_path = None         # Local settings copy (default $DTU_LOCAL_PATH, disabled if unset)
    cache_path = None         # Cache file (default $DTU_CACHE_PATH or ~/.cache/pyopendtu)
    timeout = 10              # Timeout for HTTP calls in seconds
    optimistic = True         # Show young cache entries at once and refresh in background
    settings_ttl = 300        # Seconds a local settings copy is trusted

 Functions
    settings()                # Return Settings (creates default file on first run)
    refresh()                 # Return RefreshResult (FRESH, STALE_FALLBACK or HARD_FAIL)
    widget(size, color)       # Return (rendered widget text, RefreshResult)

 Requirements
    This module requires the following modules: requests, python-dateutil
    pip install requests python-dateutil
"""
import logging
import sys
from typing import Optional, Tuple

version_tuple = (0, 3, 0)
version = __version__ = '%d.%d.%d' % version_tuple
__author__ = 'pyopendtu'

from pyopendtu.cache import CacheEntry, CacheStore, StorageResult
from pyopendtu.client import DTUClient, FetchResult
from pyopendtu.exceptions import (DecodeFailure, InvalidConfigurationParameter, NetworkFailure,
                                  PyOpenDTUException, SettingsFileError, StorageFailure)
from pyopendtu.models import InverterStatus, classify_power, classify_power_draw, power_draw_value
from pyopendtu.refresh import FRESH, HARD_FAIL, STALE_FALLBACK, Refresher, RefreshResult
from pyopendtu.settings import Settings, SettingsStore
from pyopendtu import widget as _widget

log = logging.getLogger(__name__)
log.debug('%s version %s', __name__, __version__)
log.debug('Python %s on %s', sys.version, sys.platform)


def set_debug(toggle=True, color=True):
    """Enable verbose logging"""
    if toggle:
        if color:
            logging.basicConfig(format='\x1b[31;1m%(levelname)s:%(message)s\x1b[0m', level=logging.DEBUG)
        else:
            logging.basicConfig(format='%(levelname)s:%(message)s', level=logging.DEBUG)
        log.setLevel(logging.DEBUG)
        log.debug("%s [%s]\n" % (__name__, __version__))
    else:
        log.setLevel(logging.NOTSET)


class OpenDTU(object):
    def __init__(self, config_path=None, local_path=None, cache_path=None, timeout=10,
                 optimistic=True, settings_ttl=300, poolmaxsize=10):
        """
        Represents an OpenDTU device and its optional power meter.

        Args:
            config_path  = Settings file path (shared / synced location)
            local_path   = Local settings copy path (None disables the local copy)
            cache_path   = Cache file path (local, not synced)
            timeout      = Seconds for the timeout on http requests
            optimistic   = If True, show a cache entry younger than 2 minutes and refresh in background
            settings_ttl = Seconds the local settings copy is trusted
            poolmaxsize  = Pool max size for http connection re-use (persistent connections disabled if zero)
        """
        if not timeout or timeout <= 0:
            raise InvalidConfigurationParameter(f"timeout must be positive, got {timeout!r}")
        self.timeout = timeout
        self.optimistic = optimistic
        self.store = SettingsStore(config_path, local_path, ttl=settings_ttl)
        self.cache = CacheStore(cache_path)
        self.client = DTUClient(timeout=timeout, poolmaxsize=poolmaxsize)

    def settings(self) -> Settings:
        """Load settings, creating the default file on first run"""
        return self.store.load()

    def refresh(self, settings: Optional[Settings] = None) -> RefreshResult:
        """Fetch fresh data or fall back to the cache"""
        settings = settings or self.settings()
        if settings.is_placeholder():
            log.warning(f"Settings still contain placeholder values - edit {self.store.path}")
        refresher = Refresher(settings, self.client, self.cache, optimistic=self.optimistic,
                              timeout=self.timeout)
        return refresher.run()

    def widget(self, size="small", color=True) -> Tuple[str, RefreshResult]:
        """Return the rendered widget text and the RefreshResult it was drawn from"""
        settings = self.settings()
        result = self.refresh(settings)
        return _widget.render(result, settings, size=size, color=color), result

    def close(self):
        self.client.close()
