from django.utils import timezone
from rest_framework import serializers

from bookings.models import APPOINTMENT_SLOTS, Booking


class BookingSerializer(serializers.ModelSerializer):
    test_type_display = serializers.CharField(source="get_test_type_display", read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "booking_id",
            "full_name",
            "email",
            "phone",
            "test_type",
            "test_type_display",
            "appointment_date",
            "appointment_time",
            "location",
            "address",
            "notes",
            "status",
            "payment_status",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "booking_id", "status", "payment_status", "created_at", "updated_at"]

    def validate_full_name(self, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise serializers.ValidationError("Name must be at least 2 characters.")
        return value

    def validate_email(self, value: str) -> str:
        return value.strip().lower()

    def validate_appointment_date(self, value):
        if value < timezone.localdate():
            raise serializers.ValidationError("Appointment date must be in the future.")
        return value

    def validate_appointment_time(self, value: str) -> str:
        if value not in APPOINTMENT_SLOTS:
            raise serializers.ValidationError("Choose one of the available appointment slots.")
        return value

    def validate(self, attrs):
        if attrs.get("location") == "home" and not attrs.get("address", "").strip():
            raise serializers.ValidationError({"address": "Address is required for home collection."})

        taken = Booking.objects.filter(
            appointment_date=attrs["appointment_date"],
            appointment_time=attrs["appointment_time"],
            location=attrs["location"],
        ).exclude(status=Booking.CANCELLED)
        if self.instance is not None:
            taken = taken.exclude(pk=self.instance.pk)
        if taken.exists():
            raise serializers.ValidationError(
                {"appointment_time": "This slot is already booked at the selected location."}
            )
        return attrs


class SlotQuerySerializer(serializers.Serializer):
    location = serializers.ChoiceField(choices=Booking.LOCATIONS, required=False, default="lab1")
