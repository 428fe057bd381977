from datetime import date

from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from bookings.models import APPOINTMENT_SLOTS, Booking
from bookings.serializers import BookingSerializer, SlotQuerySerializer


class BookingViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated]
    lookup_field = "booking_id"
    filterset_fields = ["status", "payment_status", "test_type", "location"]
    ordering_fields = ["appointment_date", "created_at"]

    def get_queryset(self):
        queryset = Booking.objects.all()
        if self.request.user.is_staff:
            return queryset
        return queryset.filter(user=self.request.user)

    def perform_create(self, serializer):
        serializer.save(user=self.request.user)

    @action(detail=True, methods=["post"])
    def cancel(self, request, booking_id=None):
        booking = self.get_object()
        if booking.status == Booking.COMPLETED:
            return Response(
                {"detail": "Completed bookings cannot be cancelled."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        if booking.status != Booking.CANCELLED:
            booking.status = Booking.CANCELLED
            booking.save(update_fields=["status", "updated_at"])
        return Response(self.get_serializer(booking).data)

    @action(
        detail=False,
        methods=["get"],
        url_path=r"slots/(?P<day>\d{4}-\d{2}-\d{2})",
        permission_classes=[permissions.AllowAny],
    )
    def slots(self, request, day=None):
        try:
            appointment_date = date.fromisoformat(day)
        except ValueError:
            raise ValidationError({"date": "Use the YYYY-MM-DD format."})

        query = SlotQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        location = query.validated_data["location"]

        booked = list(
            Booking.objects.filter(appointment_date=appointment_date, location=location)
            .exclude(status=Booking.CANCELLED)
            .values_list("appointment_time", flat=True)
        )
        return Response(
            {
                "date": day,
                "location": location,
                "available_slots": [slot for slot in APPOINTMENT_SLOTS if slot not in booked],
                "booked_slots": booked,
            }
        )
