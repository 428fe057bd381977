import random
import time

from django.conf import settings
from django.db import models


APPOINTMENT_SLOTS = [
    "07:00", "08:00", "09:00", "10:00", "11:00",
    "14:00", "15:00", "16:00", "17:00", "18:00",
]


def generate_booking_code() -> str:
    return f"MLAB{int(time.time() * 1000)}{random.randint(0, 999):03d}"


class Booking(models.Model):
    """A laboratory test appointment; paid for through zero or more payment attempts."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    STATUSES = [
        (PENDING, "Pending"),
        (CONFIRMED, "Confirmed"),
        (COMPLETED, "Completed"),
        (CANCELLED, "Cancelled"),
    ]

    UNPAID = "unpaid"
    PAID = "paid"
    REFUNDED = "refunded"
    PAYMENT_STATUSES = [
        (UNPAID, "Unpaid"),
        (PAID, "Paid"),
        (REFUNDED, "Refunded"),
    ]

    TEST_TYPES = [
        ("blood", "Blood Test"),
        ("thyroid", "Thyroid Panel"),
        ("diabetes", "Diabetes Screening"),
        ("lipid", "Lipid Profile"),
        ("liver", "Liver Function"),
        ("kidney", "Kidney Function"),
        ("vitamin", "Vitamin Panel"),
        ("other", "Other"),
    ]

    LOCATIONS = [
        ("home", "Home Collection"),
        ("lab1", "Lab 1"),
        ("lab2", "Lab 2"),
        ("lab3", "Lab 3"),
    ]

    booking_id = models.CharField(max_length=40, unique=True, default=generate_booking_code, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bookings",
    )
    full_name = models.CharField(max_length=200)
    email = models.EmailField()
    phone = models.CharField(max_length=30)
    test_type = models.CharField(max_length=20, choices=TEST_TYPES)
    appointment_date = models.DateField()
    appointment_time = models.CharField(max_length=5)
    location = models.CharField(max_length=10, choices=LOCATIONS)
    address = models.CharField(max_length=255, blank=True)
    notes = models.TextField(max_length=500, blank=True)
    status = models.CharField(max_length=12, choices=STATUSES, default=PENDING)
    payment_status = models.CharField(max_length=12, choices=PAYMENT_STATUSES, default=UNPAID)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-appointment_date", "-id"]
        indexes = [
            models.Index(fields=["email"], name="booking_email_idx"),
            models.Index(fields=["appointment_date"], name="booking_appt_date_idx"),
        ]

    def __str__(self):
        return f"{self.booking_id} ({self.get_test_type_display()})"
