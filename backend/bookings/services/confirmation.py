import logging

from django.db import DatabaseError
from django.utils import timezone

from bookings.models import Booking

logger = logging.getLogger(__name__)


def confirm_booking_payment(payment) -> bool:
    """
    Mark the payment's booking as confirmed and paid.

    Safe to call more than once for the same payment. Returns False when the
    booking could not be updated; the payment itself is left untouched and the
    gap is only logged.
    """
    try:
        updated = Booking.objects.filter(pk=payment.booking_id).update(
            status=Booking.CONFIRMED,
            payment_status=Booking.PAID,
            updated_at=timezone.now(),
        )
    except DatabaseError:
        logger.exception(
            "Failed to confirm booking %s for payment %s", payment.booking_id, payment.reference
        )
        return False

    if not updated:
        logger.warning(
            "Booking %s not found while confirming payment %s", payment.booking_id, payment.reference
        )
        return False

    logger.info("Booking %s confirmed by payment %s", payment.booking_id, payment.reference)
    return True


def mark_booking_refunded(payment) -> bool:
    try:
        updated = Booking.objects.filter(pk=payment.booking_id).update(
            payment_status=Booking.REFUNDED,
            updated_at=timezone.now(),
        )
    except DatabaseError:
        logger.exception(
            "Failed to mark booking %s refunded for payment %s", payment.booking_id, payment.reference
        )
        return False

    if not updated:
        logger.warning(
            "Booking %s not found while refunding payment %s", payment.booking_id, payment.reference
        )
    return bool(updated)
