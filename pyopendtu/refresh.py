# pyOpenDTU Module - Refresh Orchestrator
# -*- coding: utf-8 -*-
"""
 Decides where the widget data comes from on each run

 States
    FRESH           # Data just fetched, or cache young enough to show as live
    STALE_FALLBACK  # Fetch failed, showing the last cached entry
    HARD_FAIL       # Fetch failed and nothing is cached

 Optimistic path
    If the cache entry is younger than fresh_window seconds it is returned at
    once and a single background refresh is started. The background refresh
    has no return channel to the current run and nothing waits for it; it
    only updates the cache for the next run. Its errors are only logged.

 Fetch path
    The inverter and (if showPowerDraw is set) the power meter are fetched
    at the same time. The meter is best effort - its failure only drops the
    meter reading. A failed or malformed inverter response falls back to
    the cache.
"""
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional

from pyopendtu.cache import CacheStore, StorageResult, now_ms
from pyopendtu.client import DTUClient, FetchResult
from pyopendtu.exceptions import DecodeFailure, NetworkFailure
from pyopendtu.models import InverterStatus, power_draw_value

log = logging.getLogger(__name__)

FRESH = "FRESH"
STALE_FALLBACK = "STALE_FALLBACK"
HARD_FAIL = "HARD_FAIL"

FRESH_WINDOW = 120  # seconds a cache entry is shown as live data

MSG_CONNECTION_FAILED = "Verbindung fehlgeschlagen / Connection failed"
MSG_DECODE_FAILED = "Unerwartete Antwort vom Gerät / Unexpected response from device"
MSG_NO_CACHE = "Keine zwischengespeicherten Daten / No cached data available"
MSG_STALE = "Zeige zwischengespeicherte Daten / Showing cached data"


class RefreshResult:
    def __init__(self, state: str, dtu: Any = None, power_draw: Any = None, timestamp: Optional[int] = None,
                 from_cache: bool = False, message: Optional[str] = None,
                 storage: Optional[StorageResult] = None, background: Optional["BackgroundRefresh"] = None):
        self.state = state
        self.dtu = dtu
        self.power_draw = power_draw
        self.timestamp = timestamp  # epoch ms the data is "as of"
        self.from_cache = from_cache
        self.message = message
        self.storage = storage
        self.background = background

    @property
    def stale(self) -> bool:
        return self.state == STALE_FALLBACK

    def __repr__(self):
        return f"RefreshResult({self.state}, timestamp={self.timestamp}, from_cache={self.from_cache})"


class BackgroundRefresh:
    """Detached fetch-and-save, started from the optimistic path"""

    def __init__(self, target):
        self.error: Optional[BaseException] = None
        self.storage: Optional[StorageResult] = None
        self._target = target
        # Non-daemon so a CLI run lets it finish writing the cache before exit
        self.thread = threading.Thread(target=self._run, name="pyopendtu-refresh")

    def start(self) -> "BackgroundRefresh":
        self.thread.start()
        return self

    def _run(self):
        try:
            self.storage = self._target()
        except Exception as exc:
            self.error = exc
            log.error(f"Background refresh failed: {exc}")

    def join(self, timeout: Optional[float] = None) -> bool:
        self.thread.join(timeout)
        return not self.thread.is_alive()


class Refresher:
    def __init__(self, settings, client: DTUClient, cache: CacheStore, optimistic: bool = True,
                 fresh_window: float = FRESH_WINDOW, timeout: Optional[float] = None, clock=time.time):
        self.settings = settings
        self.client = client
        self.cache = cache
        self.optimistic = optimistic
        self.fresh_window = fresh_window
        self.timeout = timeout
        self.clock = clock

    def run(self) -> RefreshResult:
        if self.optimistic:
            entry = self.cache.load()
            age = entry.age_ms(now_ms(self.clock)) if entry is not None else None
            # A future timestamp (clock set back) is never treated as fresh
            if age is not None and 0 <= age < self.fresh_window * 1000:
                log.debug(f"Cache is {age} ms old - refreshing in background")
                background = BackgroundRefresh(self._fetch_and_save).start()
                return RefreshResult(FRESH, entry.dtu, entry.power_draw, entry.timestamp,
                                     from_cache=True, background=background)
        return self.refresh_now()

    def refresh_now(self) -> RefreshResult:
        headline = MSG_CONNECTION_FAILED
        try:
            dtu, power_draw = self._fetch_all()
            storage = self.cache.save(dtu, power_draw)
            return RefreshResult(FRESH, dtu, power_draw, now_ms(self.clock), storage=storage)
        except NetworkFailure as exc:
            log.error(f"Unable to fetch OpenDTU data: {exc}")
        except DecodeFailure as exc:
            log.error(f"Unexpected OpenDTU response: {exc}")
            headline = MSG_DECODE_FAILED
        except Exception as exc:
            log.error(f"Refresh failed: {exc}")
        return self._fallback(headline)

    def _fallback(self, headline: str = MSG_CONNECTION_FAILED) -> RefreshResult:
        entry = self.cache.load()
        if entry is None:
            return RefreshResult(HARD_FAIL, message=f"{headline}\n{MSG_NO_CACHE}")
        log.info(f"Showing cached data from {entry.timestamp}")
        return RefreshResult(STALE_FALLBACK, entry.dtu, entry.power_draw, entry.timestamp,
                             from_cache=True, message=MSG_STALE)

    def _fetch_all(self):
        """Fetch inverter and power meter together and validate the responses

        Returns (dtu payload, power draw payload or None). A failed inverter
        fetch raises NetworkFailure or DecodeFailure.
        """
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="pyopendtu") as executor:
            dtu_future = executor.submit(self.client.fetch_inverter, self.settings, self.timeout)
            meter_future = None
            if self.settings.showPowerDraw:
                meter_future = executor.submit(self.client.fetch_powermeter, self.settings, self.timeout)
            dtu: FetchResult = dtu_future.result()
            meter: Optional[FetchResult] = meter_future.result() if meter_future else None

        dtu.raise_for_error()
        # Raises DecodeFailure on an unexpected shape - never cache a bad payload
        InverterStatus.from_payload(dtu.payload)

        power_draw = None
        if meter is not None:
            if meter.ok:
                try:
                    power_draw_value(self.settings.powermeter, meter.payload)
                    power_draw = meter.payload
                except DecodeFailure as exc:
                    log.error(f"Ignoring power meter response: {exc}")
            else:
                log.debug(f"No power meter reading this run: {meter.error}")
        return dtu.payload, power_draw

    def _fetch_and_save(self) -> StorageResult:
        dtu, power_draw = self._fetch_all()
        return self.cache.save(dtu, power_draw)
