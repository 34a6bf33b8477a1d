"""MPESA payment request persistence model."""

from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import JSON, DateTime, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from welfund.common.db import Base


class MpesaPayment(Base):
    """One STK push, correlated to its webhook by `checkout_request_id`."""

    __tablename__ = "mpesa_payments"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    member_id: Mapped[str] = mapped_column(String, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    phone_number: Mapped[str] = mapped_column(String)
    checkout_request_id: Mapped[str] = mapped_column(String, unique=True, index=True)
    merchant_request_id: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, default="pending", index=True)
    mpesa_receipt_number: Mapped[str | None] = mapped_column(String, nullable=True)
    result_code: Mapped[str | None] = mapped_column(String, nullable=True)
    result_desc: Mapped[str | None] = mapped_column(String, nullable=True)
    transaction_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    raw_callback: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
