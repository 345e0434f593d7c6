from unittest.mock import MagicMock, patch

import pytest
import requests

from pyopendtu.client import DECODE, NETWORK, DTUClient, FetchResult
from pyopendtu.exceptions import DecodeFailure, NetworkFailure


def response(status=200, payload=None, invalid_json=False):
    r = MagicMock()
    r.status_code = status
    if invalid_json:
        r.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")
    else:
        r.json.return_value = payload
    return r


@pytest.fixture
def client():
    c = DTUClient(timeout=3)
    c.session = MagicMock()
    return c


def test_fetch_success_uses_basic_auth_and_timeout(client, dtu_payload):
    client.session.get.return_value = response(payload=dtu_payload)
    result = client.fetch("http://dtu/api/livedata/status/", "admin", "secret")
    assert result.ok and result
    assert result.payload == dtu_payload
    kwargs = client.session.get.call_args.kwargs
    assert kwargs["timeout"] == 3
    assert kwargs["auth"].username == "admin"
    assert kwargs["auth"].password == "secret"


def test_fetch_timeout_override(client):
    client.session.get.return_value = response(payload={})
    client.fetch("http://dtu/", "u", "p", timeout=7)
    assert client.session.get.call_args.kwargs["timeout"] == 7


@pytest.mark.parametrize("exc", [
    requests.exceptions.Timeout("timed out"),
    requests.exceptions.ConnectionError("refused"),
    RuntimeError("boom"),
])
def test_fetch_errors_are_values(client, exc):
    client.session.get.side_effect = exc
    result = client.fetch("http://dtu/", "u", "p")
    assert not result
    assert result.kind == NETWORK
    assert "http://dtu/" in result.error


@pytest.mark.parametrize("status", [401, 403, 404, 500, 503])
def test_fetch_http_errors(client, status):
    client.session.get.return_value = response(status=status)
    result = client.fetch("http://dtu/", "u", "p")
    assert not result.ok
    assert str(status) in result.error


def test_fetch_invalid_json(client):
    client.session.get.return_value = response(invalid_json=True)
    result = client.fetch("http://dtu/", "u", "p")
    assert not result.ok
    assert result.kind == DECODE


def test_fetch_inverter_adds_serial(client, settings, dtu_payload):
    client.session.get.return_value = response(payload=dtu_payload)
    client.fetch_inverter(settings)
    args, kwargs = client.session.get.call_args
    assert args[0] == settings.dtuApiUrl
    assert kwargs["params"] == {"inv": "114182912345"}


def test_fetch_powermeter_uses_selected_meter(client, settings):
    client.session.get.return_value = response(payload={})
    client.fetch_powermeter(settings)
    assert client.session.get.call_args.args[0] == settings.tasmotaApiUrl


def test_no_pool_uses_requests_module(dtu_payload):
    c = DTUClient(poolmaxsize=0)
    with patch('pyopendtu.client.requests.get', return_value=response(payload=dtu_payload)) as get:
        result = c.fetch("http://dtu/", "u", "p")
    assert result.payload == dtu_payload
    get.assert_called_once()
    c.close()


def test_raise_for_error():
    FetchResult.success({}).raise_for_error()
    with pytest.raises(NetworkFailure):
        FetchResult.failure("down").raise_for_error()
    with pytest.raises(DecodeFailure):
        FetchResult.failure("bad json", DECODE).raise_for_error()
