from django.contrib import admin

from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("reference", "booking", "user", "amount", "currency", "payment_method", "status", "paid_at")
    list_filter = ("status", "payment_method", "currency", "verified")
    search_fields = ("reference", "transaction_id", "booking__booking_id", "user__email")
    readonly_fields = (
        "reference",
        "transaction_id",
        "status",
        "provider_response",
        "paid_at",
        "verified",
        "verified_at",
        "retry_count",
        "refund_amount",
        "refunded_at",
    )

    def has_delete_permission(self, request, obj=None):
        return False
