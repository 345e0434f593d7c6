# pyOpenDTU Module - HTTP Client
# -*- coding: utf-8 -*-
"""
 HTTP client for the OpenDTU livedata API and Tasmota / Shelly power meters

 Every call returns a FetchResult - failures (network, timeout, non-2xx,
 invalid JSON) are logged and returned as values, never raised. No retries
 are done here.
"""
import logging
from typing import Any, Optional

import requests
import urllib3
from requests.auth import HTTPBasicAuth

from pyopendtu.exceptions import DecodeFailure, NetworkFailure

log = logging.getLogger(__name__)

urllib3.disable_warnings()  # Local devices commonly use self-signed certificates

API_TIMEOUT = 10  # Seconds to wait for a device response

NETWORK = "network"
DECODE = "decode"


class FetchResult:
    """Outcome of one HTTP call - a payload on success or an error message"""

    def __init__(self, ok: bool, payload: Any = None, error: Optional[str] = None, kind: Optional[str] = None):
        self.ok = ok
        self.payload = payload
        self.error = error
        self.kind = kind

    @classmethod
    def success(cls, payload: Any) -> "FetchResult":
        return cls(True, payload=payload)

    @classmethod
    def failure(cls, error: str, kind: str = NETWORK) -> "FetchResult":
        return cls(False, error=error, kind=kind)

    def __bool__(self):
        return self.ok

    def raise_for_error(self):
        """Raise NetworkFailure or DecodeFailure for a failed result"""
        if self.ok:
            return
        if self.kind == DECODE:
            raise DecodeFailure(self.error)
        raise NetworkFailure(self.error)

    def __repr__(self):
        if self.ok:
            return "FetchResult(ok)"
        return f"FetchResult({self.kind}: {self.error})"


class DTUClient:
    def __init__(self, timeout: float = API_TIMEOUT, poolmaxsize: int = 10):
        self.timeout = timeout
        self.poolmaxsize = poolmaxsize
        if self.poolmaxsize > 0:
            # Create session object for http connection re-use
            self.session = requests.Session()
            # noinspection PyUnresolvedReferences
            a = requests.adapters.HTTPAdapter(pool_maxsize=self.poolmaxsize)
            self.session.mount('http://', a)
            self.session.mount('https://', a)
        else:
            # Disable http persistent connections
            self.session = requests

    def fetch(self, url: str, user: str, password: str, timeout: Optional[float] = None,
              params: Optional[dict] = None) -> FetchResult:
        timeout = timeout or self.timeout
        log.debug(f' -- Request {url} (params={params}, timeout={timeout}s)')
        try:
            r = self.session.get(url, params=params, auth=HTTPBasicAuth(user, password),
                                 verify=False, timeout=timeout)
        except requests.exceptions.Timeout:
            err = f'Timeout waiting for {url}'
            log.error(err)
            return FetchResult.failure(err)
        except requests.exceptions.ConnectionError:
            err = f'Unable to connect to {url}'
            log.error(err)
            return FetchResult.failure(err)
        except Exception as exc:
            err = f'Unknown error connecting to {url}: {exc}'
            log.error(err)
            return FetchResult.failure(err)

        if r.status_code == 401 or r.status_code == 403:
            err = f'{r.status_code} Unauthorized at {url} - check user and password'
            log.error(err)
            return FetchResult.failure(err)
        if not 200 <= r.status_code < 300:
            err = f'{r.status_code} HTTP error from {url}'
            log.error(err)
            return FetchResult.failure(err)
        try:
            payload = r.json()
        except ValueError as exc:
            err = f'Invalid JSON from {url}: {exc}'
            log.error(err)
            return FetchResult.failure(err, DECODE)
        return FetchResult.success(payload)

    def fetch_inverter(self, settings, timeout: Optional[float] = None) -> FetchResult:
        return self.fetch(settings.dtuApiUrl, settings.dtuUser, settings.dtuPass, timeout,
                          params={"inv": settings.inverterSerial})

    def fetch_powermeter(self, settings, timeout: Optional[float] = None) -> FetchResult:
        url, user, password = settings.powermeter_endpoint()
        return self.fetch(url, user, password, timeout)

    def close(self):
        if isinstance(self.session, requests.Session):
            self.session.close()
