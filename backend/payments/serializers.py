from decimal import Decimal

from django.conf import settings
from rest_framework import serializers

from bookings.models import Booking
from payments.models import Payment


class PaymentSerializer(serializers.ModelSerializer):
    booking_id = serializers.CharField(source="booking.booking_id", read_only=True)
    test_type = serializers.CharField(source="booking.test_type", read_only=True)
    appointment_date = serializers.DateField(source="booking.appointment_date", read_only=True)

    class Meta:
        model = Payment
        fields = [
            "id",
            "reference",
            "transaction_id",
            "booking",
            "booking_id",
            "test_type",
            "appointment_date",
            "amount",
            "currency",
            "payment_method",
            "provider",
            "status",
            "authorization_url",
            "access_code",
            "description",
            "verified",
            "paid_at",
            "verified_at",
            "failure_reason",
            "retry_count",
            "refund_amount",
            "refund_reason",
            "refunded_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PaymentInitializeSerializer(serializers.Serializer):
    booking_id = serializers.CharField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0.01"))
    payment_method = serializers.ChoiceField(choices=Payment.METHODS, default=Payment.CARD)
    currency = serializers.ChoiceField(choices=Payment.CURRENCIES, required=False)
    reference = serializers.CharField(max_length=100, required=False, allow_blank=False)

    def validate_reference(self, value: str) -> str:
        if Payment.objects.filter(reference=value).exists():
            raise serializers.ValidationError("A payment with this reference already exists.")
        return value

    def validate(self, attrs):
        attrs.setdefault("currency", settings.PAYMENT_DEFAULT_CURRENCY)
        request = self.context["request"]
        lookup = Booking.objects.filter(user=request.user)
        booking_id = attrs.pop("booking_id")
        booking = lookup.filter(booking_id=booking_id).first()
        if booking is None and booking_id.isdigit():
            booking = lookup.filter(pk=int(booking_id)).first()
        attrs["booking"] = booking
        return attrs


class RefundSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0.01"))
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class PaymentListQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(min_value=1, required=False, default=1)
    limit = serializers.IntegerField(min_value=1, max_value=100, required=False, default=10)
    status = serializers.ChoiceField(choices=Payment.STATUSES, required=False)
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
