from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("booking_id", "full_name", "test_type", "appointment_date", "appointment_time", "location", "status", "payment_status")
    list_filter = ("status", "payment_status", "test_type", "location")
    search_fields = ("booking_id", "full_name", "email", "phone")
    readonly_fields = ("booking_id",)
