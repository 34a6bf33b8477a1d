"""API request/response schemas for the MPESA service, including the webhook body."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field


class StkPushRequest(BaseModel):
    """Payment initiation payload from the member-facing client."""

    member_id: str = Field(min_length=1)
    amount: int = Field(gt=0, description="Whole Kenya shillings")
    phone_number: str = Field(min_length=9, max_length=16)


class StkPushResponse(BaseModel):
    success: bool
    message: str
    checkout_request_id: str


class PaymentStatusResponse(BaseModel):
    checkout_request_id: str
    member_id: str
    amount: Decimal
    phone_number: str
    status: str
    mpesa_receipt_number: str | None = None
    result_code: str | None = None
    result_desc: str | None = None
    transaction_date: datetime | None = None


class CallbackItem(BaseModel):
    Name: str
    Value: Any = None


class MetadataBlock(BaseModel):
    Item: list[CallbackItem] = Field(default_factory=list)


class StkCallback(BaseModel):
    MerchantRequestID: str | None = None
    CheckoutRequestID: str
    ResultCode: int
    ResultDesc: str = ""
    CallbackMetadata: MetadataBlock | None = None

    def metadata_value(self, name: str) -> Any:
        if self.CallbackMetadata is None:
            return None
        for item in self.CallbackMetadata.Item:
            if item.Name == name:
                return item.Value
        return None


class CallbackBody(BaseModel):
    stkCallback: StkCallback


class CallbackEnvelope(BaseModel):
    """Webhook body posted by the gateway: `{"Body": {"stkCallback": {...}}}`."""

    Body: CallbackBody
