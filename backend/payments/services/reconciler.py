"""
Payment state transitions.

Every transition is a single conditional ``UPDATE`` restricted to the states
it may leave from, so a client polling verify and a Paystack webhook racing
on the same reference cannot both apply it. ``completed`` is absorbing with
respect to failure events.

    pending -> processing -> completed -> refunded
    pending -> completed (Paystack confirms a record that never reached processing)
    pending | processing | failed -> failed
    pending | processing -> cancelled (staff only)
"""
from __future__ import annotations

import logging
import time
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from bookings.models import Booking
from bookings.services.confirmation import confirm_booking_payment, mark_booking_refunded
from payments.exceptions import ConflictError, DomainError
from payments.models import Payment
from payments.services.emails import send_payment_receipt_email
from payments.services.paystack import get_client

logger = logging.getLogger(__name__)

CHARGE_SUCCESS = "charge.success"
CHARGE_FAILED = "charge.failed"

COMPLETABLE_STATUSES = (Payment.PENDING, Payment.PROCESSING)
FAILABLE_STATUSES = (Payment.PENDING, Payment.PROCESSING, Payment.FAILED)
CANCELLABLE_STATUSES = (Payment.PENDING, Payment.PROCESSING)


def generate_reference() -> str:
    return f"PAY_{int(time.time() * 1000)}_{uuid4().hex[:9].upper()}"


def _transition(payment: Payment, *, from_statuses, **changes) -> bool:
    changes["updated_at"] = timezone.now()
    updated = Payment.objects.filter(pk=payment.pk, status__in=from_statuses).update(**changes)
    payment.refresh_from_db()
    return bool(updated)


def _ensure_no_active_payment(booking: Booking, exclude_pk=None) -> None:
    active = Payment.objects.filter(booking=booking, status__in=Payment.ACTIVE_STATUSES)
    if exclude_pk is not None:
        active = active.exclude(pk=exclude_pk)
    if active.exists():
        raise ConflictError()


def initialize_payment(
    *,
    user,
    booking: Booking,
    amount: Decimal,
    payment_method: str = Payment.CARD,
    currency: str = "NGN",
    reference: str | None = None,
    client=None,
) -> Payment:
    """
    Create a payment for ``booking`` and, for online methods, open a Paystack transaction.

    Cash payments stay ``pending`` until reconciled by staff. If Paystack
    rejects the initialize call the record is left ``pending`` and the
    ``ProviderError`` propagates; a pending record does not block a retry.
    """
    online = payment_method != Payment.CASH
    if online and client is None:
        client = get_client()

    customer_name = user.full_name or booking.full_name
    try:
        with transaction.atomic():
            Booking.objects.select_for_update().get(pk=booking.pk)
            _ensure_no_active_payment(booking)
            payment = Payment.objects.create(
                user=user,
                booking=booking,
                reference=reference or generate_reference(),
                amount=amount,
                currency=currency,
                payment_method=payment_method,
                provider=Payment.PROVIDER_PAYSTACK if online else Payment.PROVIDER_CASH,
                description=f"Payment for {booking.get_test_type_display()} - {booking.booking_id}",
                metadata={
                    "booking_reference": booking.booking_id,
                    "test_type": booking.test_type,
                    "customer_name": customer_name,
                    "customer_email": user.email,
                },
            )
    except IntegrityError as exc:
        raise ConflictError("A payment with this reference already exists.") from exc

    logger.info("Payment %s created for booking %s (%s)", payment.reference, booking.booking_id, payment_method)
    if not online:
        return payment

    initialized = client.initialize_transaction(
        amount=payment.amount,
        email=user.email,
        reference=payment.reference,
        currency=payment.currency,
        metadata={
            "payment_id": payment.pk,
            "booking_id": booking.pk,
            "custom_fields": [
                {
                    "display_name": "Test Type",
                    "variable_name": "test_type",
                    "value": booking.test_type,
                },
                {
                    "display_name": "Booking Reference",
                    "variable_name": "booking_reference",
                    "value": booking.booking_id,
                },
            ],
        },
    )

    try:
        with transaction.atomic():
            Booking.objects.select_for_update().get(pk=booking.pk)
            _ensure_no_active_payment(booking, exclude_pk=payment.pk)
            _transition(
                payment,
                from_statuses=[Payment.PENDING],
                status=Payment.PROCESSING,
                access_code=initialized.access_code,
                authorization_url=initialized.authorization_url,
                provider_response=initialized.raw,
            )
    except IntegrityError as exc:
        raise ConflictError() from exc

    return payment


def mark_completed(payment: Payment, *, transaction_id: str | None, provider_response: dict | None = None) -> Payment:
    now = timezone.now()
    try:
        with transaction.atomic():
            completed = _transition(
                payment,
                from_statuses=COMPLETABLE_STATUSES,
                status=Payment.COMPLETED,
                transaction_id=transaction_id,
                provider_response=provider_response or {},
                paid_at=now,
                verified=True,
                verified_at=now,
            )
    except IntegrityError:
        # Another payment already holds the booking or the transaction id.
        payment.refresh_from_db()
        logger.warning(
            "Payment %s not completed; it conflicts with another payment on booking %s (transaction %s)",
            payment.reference,
            payment.booking_id,
            transaction_id,
        )
        return payment
    if not completed:
        logger.info("Payment %s is %s; completion ignored", payment.reference, payment.status)
        return payment

    logger.info("Payment %s completed (transaction %s)", payment.reference, transaction_id)
    confirm_booking_payment(payment)
    send_payment_receipt_email(payment)
    return payment


def mark_failed(payment: Payment, *, reason: str, provider_response: dict | None = None) -> Payment:
    failed = _transition(
        payment,
        from_statuses=FAILABLE_STATUSES,
        status=Payment.FAILED,
        failure_reason=reason[:255],
        provider_response=provider_response or {},
        retry_count=F("retry_count") + 1,
    )
    if failed:
        logger.info("Payment %s failed: %s", payment.reference, reason)
    else:
        logger.info("Payment %s is %s; failure ignored", payment.reference, payment.status)
    return payment


def verify_payment(payment: Payment, *, client=None) -> Payment:
    """Re-check an online payment with Paystack and apply the outcome."""
    if not payment.is_online or payment.status not in COMPLETABLE_STATUSES:
        return payment

    client = client or get_client()
    verified = client.verify_transaction(payment.reference)
    if verified.succeeded:
        return mark_completed(
            payment,
            transaction_id=verified.transaction_id,
            provider_response=verified.raw,
        )
    if verified.failed:
        reason = verified.raw.get("gateway_response") or "Payment verification failed"
        return mark_failed(payment, reason=reason, provider_response=verified.raw)

    logger.info("Payment %s still %s at Paystack", payment.reference, verified.status or "unknown")
    return payment


def handle_webhook_event(event: dict) -> Payment | None:
    """
    Apply an authenticated Paystack webhook event.

    Unknown references and unhandled event types are ignored so that the
    provider still receives an acknowledgement.
    """
    event_type = event.get("event")
    data = event.get("data") or {}
    if event_type not in (CHARGE_SUCCESS, CHARGE_FAILED):
        logger.info("Ignoring Paystack event %s", event_type)
        return None

    reference = data.get("reference")
    payment = Payment.objects.filter(reference=reference).first() if reference else None
    if payment is None:
        logger.info("Ignoring %s for unknown reference %s", event_type, reference)
        return None

    if event_type == CHARGE_SUCCESS:
        if payment.status == Payment.COMPLETED:
            return payment
        transaction_id = data.get("id")
        return mark_completed(
            payment,
            transaction_id=str(transaction_id) if transaction_id is not None else None,
            provider_response=data,
        )

    reason = data.get("gateway_response") or "Payment failed"
    return mark_failed(payment, reason=reason, provider_response=data)


def refund_payment(payment: Payment, *, amount: Decimal, reason: str = "") -> Payment:
    amount = Decimal(str(amount))
    if payment.status != Payment.COMPLETED:
        raise DomainError("Can only refund completed payments.")
    if amount <= 0:
        raise DomainError("Refund amount must be greater than zero.")
    if amount > payment.amount:
        raise DomainError("Refund amount cannot exceed payment amount.")

    refunded = _transition(
        payment,
        from_statuses=[Payment.COMPLETED],
        status=Payment.REFUNDED,
        refund_amount=amount,
        refund_reason=reason,
        refunded_at=timezone.now(),
    )
    if not refunded:
        raise DomainError("Can only refund completed payments.")

    logger.info("Payment %s refunded (%s %s)", payment.reference, amount, payment.currency)
    mark_booking_refunded(payment)
    return payment


def cancel_payment(payment: Payment, *, reason: str = "") -> Payment:
    cancelled = _transition(
        payment,
        from_statuses=CANCELLABLE_STATUSES,
        status=Payment.CANCELLED,
        failure_reason=reason or "Cancelled",
    )
    if not cancelled:
        raise DomainError(f"Cannot cancel a {payment.status} payment.")
    logger.info("Payment %s cancelled: %s", payment.reference, reason or "no reason given")
    return payment


def cancel_stale_payments(days: int = 7) -> int:
    """Cancel pending payments created more than ``days`` days ago."""
    now = timezone.now()
    count = Payment.objects.filter(
        status=Payment.PENDING,
        created_at__lt=now - timedelta(days=days),
    ).update(
        status=Payment.CANCELLED,
        failure_reason=f"Pending for more than {days} days",
        updated_at=now,
    )
    if count:
        logger.info("Cancelled %s stale pending payments", count)
    return count
