"""Shared fixtures: a throwaway SQLite database and a fake Daraja gateway."""

import json
import os
import tempfile

# Settings are read at import time, so the environment must be ready first.
_DB_DIR = tempfile.mkdtemp(prefix="welfund-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR}/welfund.db"
os.environ["API_KEY"] = "test-key"
os.environ["SUPER_ADMIN_EMAIL"] = "root@welfund.test"
os.environ["OTEL_EXPORTER_OTLP_ENDPOINT"] = ""

import httpx  # noqa: E402
import pytest  # noqa: E402

from welfund.common.db import Base, SessionLocal, engine  # noqa: E402
from welfund.services.ledger import models as ledger_models  # noqa: E402,F401
from welfund.services.ledger.service import LedgerService  # noqa: E402
from welfund.services.mpesa import models as mpesa_models  # noqa: E402,F401
from welfund.services.mpesa.client import DarajaClient  # noqa: E402


@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture
def session_factory():
    return SessionLocal


@pytest.fixture
def ledger():
    return LedgerService(SessionLocal)


@pytest.fixture
def approved_member(ledger):
    member = ledger.register_member("Jane", "Wanjiku", "jane@example.org", "0712345678")
    return ledger.approve_member(member.id)


class FakeGateway:
    """Records requests and answers like the Daraja sandbox."""

    def __init__(self) -> None:
        self.token_response = httpx.Response(200, json={"access_token": "tok-123", "expires_in": "3599"})
        self.push_response = httpx.Response(
            200,
            json={
                "MerchantRequestID": "29115-34620561-1",
                "CheckoutRequestID": "ws_CO_191220191020363925",
                "ResponseCode": "0",
                "ResponseDescription": "Success. Request accepted for processing",
                "CustomerMessage": "Success. Request accepted for processing",
            },
        )
        self.requests: list[httpx.Request] = []

    @property
    def push_bodies(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.url.path.endswith("/processrequest")]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/oauth/v1/generate":
            return self.token_response
        if request.url.path == "/mpesa/stkpush/v1/processrequest":
            return self.push_response
        return httpx.Response(404, json={"errorMessage": "not found"})

    def client(self) -> DarajaClient:
        return DarajaClient(
            consumer_key="ck",
            consumer_secret="cs",
            shortcode="174379",
            passkey="pk",
            callback_url="https://example.org/mpesa/callback",
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture
def gateway():
    return FakeGateway()


def stk_callback(checkout_request_id: str, result_code: int = 0, amount: int = 500, receipt: str = "NLJ7RT61SV") -> dict:
    callback = {
        "MerchantRequestID": "29115-34620561-1",
        "CheckoutRequestID": checkout_request_id,
        "ResultCode": result_code,
        "ResultDesc": "The service request is processed successfully." if result_code == 0 else "Request cancelled by user",
    }
    if result_code == 0:
        callback["CallbackMetadata"] = {
            "Item": [
                {"Name": "Amount", "Value": amount},
                {"Name": "MpesaReceiptNumber", "Value": receipt},
                {"Name": "Balance"},
                {"Name": "TransactionDate", "Value": 20240916143022},
                {"Name": "PhoneNumber", "Value": 254712345678},
            ]
        }
    return {"Body": {"stkCallback": callback}}


@pytest.fixture
def make_callback():
    return stk_callback
