"""POST a gateway-shaped STK callback to a running MPESA service.

Useful for exercising success, failure and duplicate-delivery paths without a
real phone in the loop.
"""

import argparse
import json
from datetime import datetime, timedelta, timezone

import httpx


def build_callback(checkout_request_id: str, result_code: int, amount: int, receipt: str, phone: str) -> dict:
    """Return a webhook body in the shape the gateway sends."""

    callback = {
        "MerchantRequestID": f"sim-{checkout_request_id}",
        "CheckoutRequestID": checkout_request_id,
        "ResultCode": result_code,
        "ResultDesc": "The service request is processed successfully."
        if result_code == 0
        else "Request cancelled by user",
    }
    if result_code == 0:
        eat_now = datetime.now(timezone(timedelta(hours=3)))
        callback["CallbackMetadata"] = {
            "Item": [
                {"Name": "Amount", "Value": amount},
                {"Name": "MpesaReceiptNumber", "Value": receipt},
                {"Name": "TransactionDate", "Value": int(eat_now.strftime("%Y%m%d%H%M%S"))},
                {"Name": "PhoneNumber", "Value": int(phone)},
            ]
        }
    return {"Body": {"stkCallback": callback}}


def main() -> None:
    """Parse CLI args and deliver the callback `--times` times."""

    parser = argparse.ArgumentParser(description="Send a simulated STK callback to the MPESA service.")
    parser.add_argument("--mpesa-url", default="http://localhost:8001")
    parser.add_argument("--checkout-request-id", required=True)
    parser.add_argument("--result-code", type=int, default=0)
    parser.add_argument("--amount", type=int, default=1)
    parser.add_argument("--receipt", default="SIM0000001")
    parser.add_argument("--phone", default="254700000000")
    parser.add_argument("--times", type=int, default=1, help="Deliver repeatedly to test duplicates")
    args = parser.parse_args()

    body = build_callback(args.checkout_request_id, args.result_code, args.amount, args.receipt, args.phone)
    with httpx.Client(timeout=10.0) as client:
        for attempt in range(1, args.times + 1):
            resp = client.post(f"{args.mpesa_url}/mpesa/callback", json=body)
            resp.raise_for_status()
            print(f"delivery={attempt} response={json.dumps(resp.json())}")


if __name__ == "__main__":
    main()
