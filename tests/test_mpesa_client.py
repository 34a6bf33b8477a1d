"""Daraja client helpers: phone normalization, signing, and gateway errors."""

import base64
from datetime import datetime, timezone

import httpx
import pytest

from welfund.common.errors import UpstreamAuthError, UpstreamBusinessError
from welfund.services.mpesa.client import (
    build_password,
    daraja_timestamp,
    normalize_phone,
    parse_transaction_date,
)


@pytest.mark.parametrize("local", ["0712345678", "0112345678", "0700000001"])
def test_leading_zero_becomes_country_code(local):
    assert normalize_phone(local) == "254" + local[1:]


@pytest.mark.parametrize("already", ["254712345678", "254112345678"])
def test_international_numbers_pass_through(already):
    assert normalize_phone(already) == already


def test_bare_subscriber_number_is_prefixed():
    assert normalize_phone("712345678") == "254712345678"


def test_spaces_and_plus_are_stripped():
    assert normalize_phone("+254 712 345 678") == "254712345678"


@pytest.mark.parametrize("bad", ["", "07abc", "not a number"])
def test_invalid_phone_rejected(bad):
    with pytest.raises(ValueError):
        normalize_phone(bad)


def test_password_is_base64_of_shortcode_passkey_timestamp():
    password = build_password("174379", "passkey", "20240916143022")
    assert base64.b64decode(password).decode() == "174379passkey20240916143022"


def test_timestamp_is_east_africa_time():
    assert daraja_timestamp(datetime(2024, 9, 16, 11, 30, 22, tzinfo=timezone.utc)) == "20240916143022"


def test_transaction_date_parsed_to_utc():
    parsed = parse_transaction_date(20240916143022)
    assert parsed == datetime(2024, 9, 16, 11, 30, 22, tzinfo=timezone.utc)


def test_push_payload_fields(gateway):
    result = gateway.client().stk_push("42", 500, "254712345678")

    assert result["CheckoutRequestID"] == "ws_CO_191220191020363925"
    token_request = gateway.requests[0]
    assert token_request.headers["authorization"] == "Basic " + base64.b64encode(b"ck:cs").decode()
    assert token_request.url.params["grant_type"] == "client_credentials"

    push_request = gateway.requests[1]
    assert push_request.headers["authorization"] == "Bearer tok-123"
    body = gateway.push_bodies[0]
    assert set(body) == {
        "BusinessShortCode",
        "Password",
        "Timestamp",
        "TransactionType",
        "Amount",
        "PartyA",
        "PartyB",
        "PhoneNumber",
        "CallBackURL",
        "AccountReference",
        "TransactionDesc",
    }
    assert body["Amount"] == 500
    assert body["PartyA"] == body["PhoneNumber"] == "254712345678"
    assert body["PartyB"] == body["BusinessShortCode"] == "174379"
    assert body["AccountReference"] == "TNS42"
    assert base64.b64decode(body["Password"]).decode() == "174379pk" + body["Timestamp"]


def test_missing_token_is_upstream_auth_error(gateway):
    gateway.token_response = httpx.Response(400, json={"errorCode": "400.008.01", "errorMessage": "Invalid Authentication"})
    with pytest.raises(UpstreamAuthError):
        gateway.client().stk_push("42", 500, "254712345678")
    assert gateway.push_bodies == []


def test_rejected_push_is_upstream_business_error(gateway):
    gateway.push_response = httpx.Response(
        500, json={"requestId": "1", "errorCode": "500.001.1001", "errorMessage": "Unable to lock subscriber"}
    )
    with pytest.raises(UpstreamBusinessError, match="Unable to lock subscriber"):
        gateway.client().stk_push("42", 500, "254712345678")


def test_transport_error_is_reported_not_retried(gateway):
    def boom(request):
        gateway.requests.append(request)
        raise httpx.ConnectTimeout("timed out", request=request)

    client = gateway.client()
    client.transport = httpx.MockTransport(boom)
    with pytest.raises(UpstreamAuthError):
        client.stk_push("42", 500, "254712345678")
    assert len(gateway.requests) == 1
