"""Signed Planyo calls: hashing, clock-drift retry and placeholder lookups."""

import hashlib
import json
from datetime import datetime

import pytest
import requests

from deposit_hold.core.exceptions import PlanyoError
from deposit_hold.services import planyo_client
from deposit_hold.services.planyo_client import (
    PlanyoClient,
    PlanyoConfig,
    callback_hash,
    drift_timestamp,
    planyo_hash,
    verify_callback,
)


class FakeResponse:
    def __init__(self, payload=None, text=None, status_code=200):
        self.status_code = status_code
        self.text = text if text is not None else json.dumps(payload)

    def json(self):
        return json.loads(self.text)


class Recorder:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def __call__(self, url, params=None, timeout=None):
        self.calls.append(dict(params))
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def _drift(ts):
    return FakeResponse({"response_code": 1, "response_message": f"Invalid timestamp. Current timestamp is {ts}"})


OK_RESERVATION = {
    "response_code": 0,
    "response_message": "",
    "data": {
        "name": "Transit Custom",
        "start_time": "2026-10-19 09:00:00",
        "end_time": "2026-10-20 09:00:00",
        "first_name": "Sam",
        "last_name": "Smith",
        "email": "sam@example.com",
        "status": "7",
        "total_price": "240.00",
    },
}


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(planyo_client.time, "time", lambda: 1760000000.4)
    return PlanyoClient(PlanyoConfig(api_key="key", hash_key="secret", site_id="42"))


def test_planyo_hash_is_md5_of_secret_timestamp_method():
    expected = hashlib.md5(b"secret1760000000get_reservation_data").hexdigest()
    assert planyo_hash("secret", 1760000000, "get_reservation_data") == expected


def test_signed_params_include_hash_and_skip_none(client):
    params = client.signed_params("list_reservations", 1760000000, {"site_id": None, "start_time": "x"})
    assert params["hash_timestamp"] == "1760000000"
    assert params["hash_key"] == planyo_hash("secret", 1760000000, "list_reservations")
    assert params["api_key"] == "key"
    assert "site_id" not in params
    assert params["start_time"] == "x"


@pytest.mark.parametrize(
    "message, expected",
    [
        ("Invalid timestamp. Current timestamp is 1760000123", 1760000123),
        ("hash_timestamp out of range (current timestamp: 1760000999)", 1760000999),
        ("Invalid API key", None),
        ("", None),
    ],
)
def test_drift_timestamp_parsing(message, expected):
    assert drift_timestamp(message) == expected


def test_drift_error_retries_once_with_server_timestamp(client, monkeypatch):
    rec = Recorder(_drift(1760000500), FakeResponse(OK_RESERVATION))
    monkeypatch.setattr(planyo_client.requests, "get", rec)

    result = client.call("get_reservation_data", reservation_id="1")

    assert result.ok
    assert len(rec.calls) == 2
    assert rec.calls[0]["hash_timestamp"] == "1760000000"
    assert rec.calls[1]["hash_timestamp"] == "1760000500"
    assert rec.calls[1]["hash_key"] == planyo_hash("secret", 1760000500, "get_reservation_data")


def test_second_drift_failure_is_not_retried_again(client, monkeypatch):
    rec = Recorder(_drift(1760000500), _drift(1760000600))
    monkeypatch.setattr(planyo_client.requests, "get", rec)

    result = client.call("get_reservation_data", reservation_id="1")

    assert not result.ok
    assert len(rec.calls) == 2
    assert result.raw["response_message"].endswith("1760000600")


def test_other_errors_are_not_retried(client, monkeypatch):
    rec = Recorder(FakeResponse({"response_code": 3, "response_message": "Invalid API key"}))
    monkeypatch.setattr(planyo_client.requests, "get", rec)

    result = client.call("get_reservation_data", reservation_id="1")

    assert not result.ok
    assert result.code == 3
    assert len(rec.calls) == 1


def test_non_json_response_becomes_error_result(client, monkeypatch):
    monkeypatch.setattr(planyo_client.requests, "get", Recorder(FakeResponse(text="<html>502</html>", status_code=502)))

    result = client.call("get_reservation_data", reservation_id="1")

    assert not result.ok
    assert result.code == -1
    assert result.raw == "<html>502</html>"


def test_transport_error_becomes_error_result(client, monkeypatch):
    monkeypatch.setattr(planyo_client.requests, "get", Recorder(requests.ConnectionError("boom")))

    result = client.call("get_reservation_data", reservation_id="1")

    assert not result.ok
    assert "boom" in result.message


def test_unconfigured_client_does_not_call_out(monkeypatch):
    rec = Recorder()
    monkeypatch.setattr(planyo_client.requests, "get", rec)

    booking = PlanyoClient(PlanyoConfig(api_key="", hash_key="")).get_reservation("9")

    assert rec.calls == []
    assert booking.email is None


def test_get_reservation_maps_fields(client, monkeypatch):
    monkeypatch.setattr(planyo_client.requests, "get", Recorder(FakeResponse(OK_RESERVATION)))

    booking = client.get_reservation(55)

    assert booking.booking_id == "55"
    assert booking.resource == "Transit Custom"
    assert booking.customer_name == "Sam Smith"
    assert booking.email == "sam@example.com"
    assert booking.status == 7
    assert booking.total_price == "240.00"


@pytest.mark.parametrize(
    "response",
    [
        FakeResponse({"response_code": 0, "data": None}),
        FakeResponse({"response_code": 0, "data": []}),
        FakeResponse(text="not json"),
        FakeResponse({"response_code": 4, "response_message": "Reservation not found"}),
    ],
)
def test_get_reservation_failure_returns_placeholder(client, monkeypatch, response):
    monkeypatch.setattr(planyo_client.requests, "get", Recorder(response))

    booking = client.get_reservation("77")

    assert booking.to_dict() == {
        "bookingID": "77",
        "resource": "N/A",
        "start": "N/A",
        "end": "N/A",
        "firstName": "",
        "lastName": "",
        "email": None,
        "status": None,
        "totalPrice": None,
        "amountPaid": None,
        "currency": None,
    }


def test_list_reservations_sends_window_and_site(client, monkeypatch):
    rec = Recorder(FakeResponse({"response_code": 0, "data": {"results": [{"reservation_id": "1"}, "junk"]}}))
    monkeypatch.setattr(planyo_client.requests, "get", rec)

    rows = client.list_reservations(datetime(2026, 10, 19), datetime(2026, 10, 19, 23, 59, 59))

    assert rows == [{"reservation_id": "1"}]
    assert rec.calls[0]["start_time"] == "2026-10-19 00:00:00"
    assert rec.calls[0]["end_time"] == "2026-10-19 23:59:59"
    assert rec.calls[0]["site_id"] == "42"


def test_list_reservations_raises_on_failure(client, monkeypatch):
    monkeypatch.setattr(planyo_client.requests, "get", Recorder(FakeResponse({"response_code": 3, "response_message": "Invalid API key"})))

    with pytest.raises(PlanyoError):
        client.list_reservations(datetime(2026, 10, 19), datetime(2026, 10, 20))


def test_callback_hash_verification():
    params = {"reservation": "1001", "notification_type": "reservation_confirmed", "status": "7"}
    concat = "reservation_confirmed" + "1001" + "7" + "planyo-secret"  # sorted by key
    signed = {**params, "hash": hashlib.md5(concat.encode()).hexdigest()}

    assert callback_hash(params, "planyo-secret") == signed["hash"]
    assert verify_callback(signed, "planyo-secret")
    assert not verify_callback({**signed, "reservation": "1002"}, "planyo-secret")
    assert not verify_callback(params, "planyo-secret")
