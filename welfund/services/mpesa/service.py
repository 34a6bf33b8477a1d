"""STK push initiation and gateway callback reconciliation.

A payment request is created `pending` when the gateway accepts the push and is
moved to `completed` or `failed` exactly once by its callback. Success also
posts a confirmed `mpesa` contribution in the same transaction, so a status
change is never committed without its ledger entry.
"""

from decimal import Decimal

from pydantic import ValidationError
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from welfund.common.errors import PaymentError, PersistenceError
from welfund.common.logging import checkout_request_id_ctx, logger, member_id_ctx
from welfund.common.metrics import (
    duplicate_callbacks_skipped_total,
    mpesa_callbacks_total,
    stk_push_failures_total,
    stk_push_latency_seconds,
    stk_push_requests_total,
)
from welfund.common.state_machine import COMPLETED, FAILED, PENDING, is_terminal, validate_transition
from welfund.services.ledger.models import Member
from welfund.services.ledger.service import LedgerService
from welfund.services.mpesa.client import DarajaClient, normalize_phone, parse_transaction_date
from welfund.services.mpesa.models import MpesaPayment
from welfund.services.mpesa.schemas import CallbackEnvelope, StkPushRequest


class MpesaService:
    """Owns the `mpesa_payments` table and the pending -> terminal transition."""

    def __init__(self, session_factory, client: DarajaClient, ledger: LedgerService, service_name: str = "mpesa") -> None:
        self.session_factory = session_factory
        self.client = client
        self.ledger = ledger
        self.service_name = service_name

    def initiate_payment(self, req: StkPushRequest) -> MpesaPayment:
        """Push a payment prompt to the member's phone and record it as pending.

        Raises `ValueError` for bad input and a `PaymentError` subclass for
        gateway or persistence failures. Nothing is retried.
        """

        member_id_ctx.set(req.member_id)
        stk_push_requests_total.labels(service=self.service_name).inc()
        phone = normalize_phone(req.phone_number)
        with self.session_factory() as db:
            if db.get(Member, req.member_id) is None:
                raise ValueError("member not found")

        try:
            with stk_push_latency_seconds.labels(service=self.service_name).time():
                result = self.client.stk_push(req.member_id, req.amount, phone)
        except PaymentError as exc:
            stk_push_failures_total.labels(service=self.service_name, error_type=exc.error_type).inc()
            raise

        checkout_request_id = result["CheckoutRequestID"]
        checkout_request_id_ctx.set(checkout_request_id)
        try:
            with self.session_factory() as db:
                payment = MpesaPayment(
                    member_id=req.member_id,
                    amount=Decimal(req.amount),
                    phone_number=phone,
                    checkout_request_id=checkout_request_id,
                    merchant_request_id=result.get("MerchantRequestID"),
                    status=PENDING,
                )
                db.add(payment)
                db.commit()
        except SQLAlchemyError as exc:
            logger.error("mpesa_payment_persist_failed error=%s", exc)
            stk_push_failures_total.labels(
                service=self.service_name,
                error_type=PersistenceError.error_type,
            ).inc()
            raise PersistenceError("Failed to save payment record") from exc

        logger.info("stk_push_sent amount=%s phone=%s", req.amount, phone)
        return payment

    def get_payment(self, checkout_request_id: str) -> MpesaPayment | None:
        with self.session_factory() as db:
            return db.execute(
                select(MpesaPayment).where(MpesaPayment.checkout_request_id == checkout_request_id)
            ).scalar_one_or_none()

    def _callback_fields(self, callback) -> dict:
        values = {
            "result_code": str(callback.ResultCode),
            "result_desc": callback.ResultDesc,
        }
        if callback.ResultCode != 0:
            return values
        receipt = callback.metadata_value("MpesaReceiptNumber")
        if receipt:
            values["mpesa_receipt_number"] = str(receipt)
        transaction_date = callback.metadata_value("TransactionDate")
        if transaction_date:
            try:
                values["transaction_date"] = parse_transaction_date(transaction_date)
            except ValueError:
                logger.warning("mpesa_callback_bad_transaction_date value=%s", transaction_date)
        return values

    def handle_callback(self, body: dict) -> str:
        """Apply one gateway webhook; returns the outcome label and never raises.

        Outcomes: `completed`, `failed`, `unmatched` (unknown checkout id),
        `duplicate` (payment already terminal), `invalid` (malformed body),
        `error` (database failure, nothing committed).
        """

        try:
            callback = CallbackEnvelope.model_validate(body).Body.stkCallback
        except ValidationError as exc:
            logger.error("mpesa_callback_invalid error=%s", exc)
            return self._count("invalid")

        checkout_request_id_ctx.set(callback.CheckoutRequestID)
        target = COMPLETED if callback.ResultCode == 0 else FAILED
        try:
            with self.session_factory() as db:
                payment = db.execute(
                    select(MpesaPayment).where(MpesaPayment.checkout_request_id == callback.CheckoutRequestID)
                ).scalar_one_or_none()
                if payment is None:
                    logger.warning("mpesa_callback_unmatched result_code=%s", callback.ResultCode)
                    return self._count("unmatched")
                member_id_ctx.set(payment.member_id)
                if is_terminal(payment.status):
                    return self._skip_duplicate(payment.status)

                validate_transition(payment.status, target)
                result = db.execute(
                    update(MpesaPayment)
                    .where(MpesaPayment.id == payment.id, MpesaPayment.status == PENDING)
                    .values(status=target, raw_callback=body, **self._callback_fields(callback))
                )
                if result.rowcount != 1:
                    db.rollback()
                    return self._skip_duplicate("concurrent")

                if target == COMPLETED:
                    self.ledger.post_contribution(
                        db,
                        member_id=payment.member_id,
                        amount=payment.amount,
                        contribution_type="mpesa",
                        status="confirmed",
                        reference_number=callback.metadata_value("MpesaReceiptNumber"),
                        checkout_request_id=payment.checkout_request_id,
                    )
                db.commit()
        except SQLAlchemyError as exc:
            logger.exception("mpesa_callback_persist_failed error=%s", exc)
            return self._count("error")

        logger.info(
            "mpesa_callback_applied status=%s result_code=%s result_desc=%s",
            target,
            callback.ResultCode,
            callback.ResultDesc,
        )
        return self._count(target)

    def _skip_duplicate(self, status: str) -> str:
        logger.info("duplicate callback skipped current_status=%s", status)
        duplicate_callbacks_skipped_total.labels(service=self.service_name).inc()
        return self._count("duplicate")

    def _count(self, outcome: str) -> str:
        mpesa_callbacks_total.labels(service=self.service_name, outcome=outcome).inc()
        return outcome
