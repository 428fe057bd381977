import bookings.models
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "booking_id",
                    models.CharField(
                        default=bookings.models.generate_booking_code,
                        editable=False,
                        max_length=40,
                        unique=True,
                    ),
                ),
                ("full_name", models.CharField(max_length=200)),
                ("email", models.EmailField(max_length=254)),
                ("phone", models.CharField(max_length=30)),
                (
                    "test_type",
                    models.CharField(
                        choices=[
                            ("blood", "Blood Test"),
                            ("thyroid", "Thyroid Panel"),
                            ("diabetes", "Diabetes Screening"),
                            ("lipid", "Lipid Profile"),
                            ("liver", "Liver Function"),
                            ("kidney", "Kidney Function"),
                            ("vitamin", "Vitamin Panel"),
                            ("other", "Other"),
                        ],
                        max_length=20,
                    ),
                ),
                ("appointment_date", models.DateField()),
                ("appointment_time", models.CharField(max_length=5)),
                (
                    "location",
                    models.CharField(
                        choices=[
                            ("home", "Home Collection"),
                            ("lab1", "Lab 1"),
                            ("lab2", "Lab 2"),
                            ("lab3", "Lab 3"),
                        ],
                        max_length=10,
                    ),
                ),
                ("address", models.CharField(blank=True, max_length=255)),
                ("notes", models.TextField(blank=True, max_length=500)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("confirmed", "Confirmed"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        max_length=12,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("unpaid", "Unpaid"),
                            ("paid", "Paid"),
                            ("refunded", "Refunded"),
                        ],
                        default="unpaid",
                        max_length=12,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="bookings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-appointment_date", "-id"],
                "indexes": [
                    models.Index(fields=["email"], name="booking_email_idx"),
                    models.Index(fields=["appointment_date"], name="booking_appt_date_idx"),
                ],
            },
        ),
    ]
