from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q


class Payment(models.Model):
    """
    One payment attempt for a booking.

    The record carries no transition logic; status changes go through
    ``payments.services.reconciler`` so concurrent verify and webhook calls
    share a single set of conditional updates.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    STATUSES = [
        (PENDING, "Pending"),
        (PROCESSING, "Processing"),
        (COMPLETED, "Completed"),
        (FAILED, "Failed"),
        (CANCELLED, "Cancelled"),
        (REFUNDED, "Refunded"),
    ]
    ACTIVE_STATUSES = (PROCESSING, COMPLETED)

    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    USSD = "ussd"
    QR = "qr"
    MOBILE_MONEY = "mobile_money"
    CASH = "cash"
    METHODS = [
        (CARD, "Card"),
        (BANK_TRANSFER, "Bank Transfer"),
        (USSD, "USSD"),
        (QR, "QR"),
        (MOBILE_MONEY, "Mobile Money"),
        (CASH, "Cash"),
    ]

    PROVIDER_PAYSTACK = "paystack"
    PROVIDER_CASH = "cash"
    PROVIDERS = [
        (PROVIDER_PAYSTACK, "Paystack"),
        (PROVIDER_CASH, "Cash"),
    ]

    CURRENCIES = [
        ("NGN", "Nigerian Naira"),
        ("USD", "US Dollar"),
        ("EUR", "Euro"),
        ("GBP", "British Pound"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payments",
    )
    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="payments",
    )
    reference = models.CharField(max_length=100, unique=True, editable=False)
    transaction_id = models.CharField(max_length=100, unique=True, null=True, blank=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])
    currency = models.CharField(max_length=3, choices=CURRENCIES, default="NGN")
    payment_method = models.CharField(max_length=20, choices=METHODS, default=CARD)
    provider = models.CharField(max_length=20, choices=PROVIDERS, default=PROVIDER_PAYSTACK)
    status = models.CharField(max_length=12, choices=STATUSES, default=PENDING)
    access_code = models.CharField(max_length=100, blank=True)
    authorization_url = models.URLField(max_length=500, blank=True)
    provider_response = models.JSONField(default=dict, blank=True)
    description = models.CharField(max_length=255, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    failure_reason = models.CharField(max_length=255, blank=True)
    retry_count = models.PositiveIntegerField(default=0)
    verified = models.BooleanField(default=False)
    paid_at = models.DateTimeField(null=True, blank=True)
    verified_at = models.DateTimeField(null=True, blank=True)
    refund_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    refund_reason = models.CharField(max_length=255, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "status"], name="payment_user_status_idx"),
            models.Index(fields=["status", "-created_at"], name="payment_status_created_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["booking"],
                condition=Q(status__in=["processing", "completed"]),
                name="unique_active_payment_per_booking",
            ),
        ]

    def __str__(self):
        return f"{self.reference} - {self.amount} {self.currency} - {self.status}"

    @property
    def is_online(self) -> bool:
        return self.payment_method != self.CASH
