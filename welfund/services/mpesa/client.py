"""Thin Daraja (Safaricom MPESA) API client for Lipa na M-Pesa Online.

Only the two calls the STK push flow needs are implemented: the OAuth token
fetch and the push request itself. Each call opens a short-lived httpx client
with the configured timeout; nothing is retried.
"""

import base64
from datetime import datetime, timedelta, timezone

import httpx

from welfund.common.config import settings
from welfund.common.errors import UpstreamAuthError, UpstreamBusinessError
from welfund.common.logging import logger


BASE_URLS = {
    "sandbox": "https://sandbox.safaricom.co.ke",
    "production": "https://api.safaricom.co.ke",
}
TOKEN_PATH = "/oauth/v1/generate"
STK_PUSH_PATH = "/mpesa/stkpush/v1/processrequest"

# Daraja timestamps are East Africa Time, which has no DST.
EAT = timezone(timedelta(hours=3), "EAT")
DARAJA_TIME_FORMAT = "%Y%m%d%H%M%S"


def normalize_phone(phone: str) -> str:
    """Convert a local phone number to the 2547XXXXXXXX form the gateway expects."""

    cleaned = (phone or "").replace(" ", "").replace("-", "").lstrip("+")
    if not cleaned.isdigit():
        raise ValueError(f"invalid phone number {phone!r}")
    if cleaned.startswith("0"):
        return "254" + cleaned[1:]
    if cleaned.startswith("254"):
        return cleaned
    return "254" + cleaned


def daraja_timestamp(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.astimezone(EAT).strftime(DARAJA_TIME_FORMAT)


def build_password(shortcode: str, passkey: str, timestamp: str) -> str:
    """Base64 of shortcode + passkey + timestamp, as the push endpoint requires."""

    return base64.b64encode(f"{shortcode}{passkey}{timestamp}".encode()).decode()


def parse_transaction_date(value) -> datetime:
    """Parse a callback `TransactionDate` (YYYYMMDDHHmmss, EAT) into an aware UTC datetime."""

    return datetime.strptime(str(value), DARAJA_TIME_FORMAT).replace(tzinfo=EAT).astimezone(timezone.utc)


class DarajaClient:
    """Issues STK push requests against one Daraja environment."""

    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        shortcode: str,
        passkey: str,
        callback_url: str,
        environment: str = "sandbox",
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if environment not in BASE_URLS:
            raise ValueError(f"environment must be one of {sorted(BASE_URLS)}, got {environment!r}")
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.shortcode = str(shortcode)
        self.passkey = passkey
        self.callback_url = callback_url
        self.base_url = BASE_URLS[environment]
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, transport: httpx.BaseTransport | None = None) -> "DarajaClient":
        return cls(
            consumer_key=settings.mpesa_consumer_key,
            consumer_secret=settings.mpesa_consumer_secret,
            shortcode=settings.mpesa_shortcode,
            passkey=settings.mpesa_passkey,
            callback_url=settings.mpesa_callback_url,
            environment=settings.mpesa_environment,
            timeout=settings.mpesa_timeout_seconds,
            transport=transport,
        )

    def _client(self) -> httpx.Client:
        return httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    def get_access_token(self) -> str:
        """Fetch a short-lived bearer token with HTTP Basic client credentials."""

        try:
            with self._client() as client:
                resp = client.get(
                    TOKEN_PATH,
                    params={"grant_type": "client_credentials"},
                    auth=(self.consumer_key, self.consumer_secret),
                )
            payload = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("mpesa_token_request_failed error=%s", exc)
            raise UpstreamAuthError(f"token request failed: {exc}") from exc

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            logger.error("mpesa_token_missing status=%s", resp.status_code)
            raise UpstreamAuthError("Failed to get access token")
        return token

    def build_push_payload(self, member_id: str, amount: int, phone: str, timestamp: str) -> dict:
        return {
            "BusinessShortCode": self.shortcode,
            "Password": build_password(self.shortcode, self.passkey, timestamp),
            "Timestamp": timestamp,
            "TransactionType": "CustomerPayBillOnline",
            "Amount": amount,
            "PartyA": phone,
            "PartyB": self.shortcode,
            "PhoneNumber": phone,
            "CallBackURL": self.callback_url,
            "AccountReference": f"TNS{member_id}",
            "TransactionDesc": "Membership Payment",
        }

    def stk_push(self, member_id: str, amount: int, phone: str) -> dict:
        """Send one STK push; returns the gateway body when `ResponseCode` is "0"."""

        token = self.get_access_token()
        payload = self.build_push_payload(member_id, amount, phone, daraja_timestamp())
        try:
            with self._client() as client:
                resp = client.post(
                    STK_PUSH_PATH,
                    json=payload,
                    headers={"Authorization": f"Bearer {token}"},
                )
            body = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("mpesa_stk_push_request_failed error=%s", exc)
            raise UpstreamBusinessError(f"STK push request failed: {exc}") from exc

        if not isinstance(body, dict) or str(body.get("ResponseCode")) != "0":
            body = body if isinstance(body, dict) else {}
            message = body.get("errorMessage") or body.get("ResponseDescription") or "STK push failed"
            logger.error(
                "mpesa_stk_push_rejected status=%s response_code=%s message=%s",
                resp.status_code,
                body.get("ResponseCode") or body.get("errorCode"),
                message,
            )
            raise UpstreamBusinessError(message)
        return body
