from __future__ import annotations

import logging
from smtplib import SMTPException

from django.conf import settings
from django.core.mail import send_mail

from payments.models import Payment

logger = logging.getLogger(__name__)


def send_payment_receipt_email(payment: Payment) -> bool:
    """Email the payer a receipt; delivery problems are logged, never raised."""
    booking = payment.booking
    recipient = payment.user.email or booking.email
    if not recipient:
        logger.warning("No recipient for payment receipt %s", payment.reference)
        return False

    subject = f"Payment received for booking {booking.booking_id}"
    body_lines = [
        f"Hi {payment.user.full_name or booking.full_name or recipient},",
        "",
        f"We have received your payment of {payment.amount} {payment.currency}.",
        f"Reference: {payment.reference}",
        f"Test: {booking.get_test_type_display()}",
        f"Appointment: {booking.appointment_date:%B %d, %Y} at {booking.appointment_time}",
        "",
        "Your booking is now confirmed. Please arrive 15 minutes before your appointment.",
        "",
        "Goldbond Laboratories",
    ]
    try:
        send_mail(
            subject,
            "\n".join(body_lines),
            settings.DEFAULT_FROM_EMAIL,
            [recipient],
            fail_silently=False,
        )
    except (SMTPException, OSError) as exc:
        logger.warning("Could not send receipt for payment %s: %s", payment.reference, exc)
        return False
    return True
