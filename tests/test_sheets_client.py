"""
Tests for the Google Sheets client: timeouts, retries and error mapping.
The HTTP session is a mock, so nothing leaves the process.
"""
from unittest.mock import MagicMock

import pytest
import requests

from app.cache import UpstreamFetchFailure
from app.sheets_client import SheetRangeNotFound, SheetsClient


def _response(status=200, payload=None, reason="OK"):
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 400
    response.reason = reason
    response.json.return_value = payload if payload is not None else {}
    return response


def _client(session, **kwargs):
    return SheetsClient(
        api_key="key", base_url="https://sheets.test/v4", timeout=2.5,
        max_attempts=3, backoff=0, session=session, **kwargs,
    )


def test_fetch_values_returns_rows_and_passes_timeout():
    session = MagicMock()
    session.get.return_value = _response(payload={"values": [["ID"], ["1"]]})

    rows = _client(session).fetch_values("sheet-1", "bars-template!A:R")

    assert rows == [["ID"], ["1"]]
    args, kwargs = session.get.call_args
    assert args[0] == "https://sheets.test/v4/spreadsheets/sheet-1/values/bars-template!A:R"
    assert kwargs["params"] == {"key": "key"}
    assert kwargs["timeout"] == 2.5


def test_empty_range_is_empty_list():
    session = MagicMock()
    session.get.return_value = _response(payload={"range": "A:R"})
    assert _client(session).fetch_values("sheet-1", "A:R") == []


def test_missing_configuration_fails_without_request():
    session = MagicMock()
    client = SheetsClient(api_key="", session=session)
    with pytest.raises(UpstreamFetchFailure):
        client.fetch_values("sheet-1", "A:R")
    with pytest.raises(UpstreamFetchFailure):
        _client(session).fetch_values(None, "A:R")
    session.get.assert_not_called()


def test_transient_errors_are_retried():
    session = MagicMock()
    session.get.side_effect = [
        requests.Timeout("read timed out"),
        _response(status=503, reason="Service Unavailable"),
        _response(payload={"values": [["ID"]]}),
    ]
    assert _client(session).fetch_values("sheet-1", "A:R") == [["ID"]]
    assert session.get.call_count == 3


def test_retries_exhausted_raise_fetch_failure():
    session = MagicMock()
    session.get.side_effect = requests.ConnectionError("refused")
    with pytest.raises(UpstreamFetchFailure):
        _client(session).fetch_values("sheet-1", "A:R")
    assert session.get.call_count == 3


def test_client_errors_are_not_retried():
    session = MagicMock()
    session.get.return_value = _response(status=403, reason="Forbidden")
    with pytest.raises(UpstreamFetchFailure, match="403"):
        _client(session).fetch_values("sheet-1", "A:R")
    assert session.get.call_count == 1


def test_invalid_json_is_fetch_failure():
    session = MagicMock()
    bad = _response()
    bad.json.side_effect = ValueError("Expecting value")
    session.get.return_value = bad
    with pytest.raises(UpstreamFetchFailure):
        _client(session).fetch_values("sheet-1", "A:R")


def test_bad_range_is_range_not_found():
    session = MagicMock()
    session.get.return_value = _response(status=400, reason="Bad Request")
    with pytest.raises(SheetRangeNotFound):
        _client(session).fetch_values("menu-1", "Wine!A:Z")
    assert session.get.call_count == 1
