from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone

from accounts.models import User
from bookings.models import Booking
from payments.models import Payment


SEED_PASSWORD = "Goldbond123!"
SUPERUSER_EMAIL = "admin@goldbondlabs.test"
SUPERUSER_PASSWORD = "AdminGoldbond123!"


class Command(BaseCommand):
    help = "Populate the local development database with sample data."

    def handle(self, *args, **options):
        if not settings.DEBUG:
            raise CommandError("Refusing to seed data while DEBUG is False.")

        with transaction.atomic():
            self.stdout.write(self.style.MIGRATE_HEADING("Creating users"))
            ada = self._ensure_user(
                email="ada@example.test",
                first_name="Ada",
                last_name="Okafor",
                phone="0803-000-0001",
            )
            tunde = self._ensure_user(
                email="tunde@example.test",
                first_name="Tunde",
                last_name="Bello",
                phone="0803-000-0002",
            )

            self.stdout.write(self.style.MIGRATE_HEADING("Ensuring admin superuser"))
            self._ensure_superuser()

            self.stdout.write(self.style.MIGRATE_HEADING("Creating bookings & payments"))
            today = timezone.localdate()
            paid_booking = self._ensure_booking(
                user=ada,
                test_type="lipid",
                appointment_date=today + timedelta(days=3),
                appointment_time="09:00",
                location="lab1",
                status=Booking.CONFIRMED,
                payment_status=Booking.PAID,
            )
            unpaid_booking = self._ensure_booking(
                user=ada,
                test_type="thyroid",
                appointment_date=today + timedelta(days=10),
                appointment_time="14:00",
                location="lab2",
            )
            home_booking = self._ensure_booking(
                user=tunde,
                test_type="diabetes",
                appointment_date=today + timedelta(days=5),
                appointment_time="07:00",
                location="home",
                address="12 Marina Road, Lagos",
            )

            now = timezone.now()
            self._ensure_payment(
                reference="PAY_SEED_ADA_LIPID",
                user=ada,
                booking=paid_booking,
                transaction_id="seed_4099260516",
                amount=Decimal("15000.00"),
                payment_method=Payment.CARD,
                status=Payment.COMPLETED,
                verified=True,
                paid_at=now,
                verified_at=now,
                description=f"Payment for Lipid Profile - {paid_booking.booking_id}",
            )
            self._ensure_payment(
                reference="PAY_SEED_ADA_THYROID",
                user=ada,
                booking=unpaid_booking,
                amount=Decimal("12000.00"),
                payment_method=Payment.CARD,
                status=Payment.FAILED,
                failure_reason="Declined",
                retry_count=1,
            )
            self._ensure_payment(
                reference="PAY_SEED_TUNDE_DIABETES",
                user=tunde,
                booking=home_booking,
                amount=Decimal("8500.00"),
                payment_method=Payment.CASH,
                provider=Payment.PROVIDER_CASH,
                status=Payment.PENDING,
            )

        self.stdout.write(self.style.SUCCESS("Development seed data created."))
        self.stdout.write(self.style.NOTICE(f"Sample login accounts use password: {SEED_PASSWORD}"))
        self.stdout.write(self.style.NOTICE(f"Admin superuser {SUPERUSER_EMAIL} password: {SUPERUSER_PASSWORD}"))

    def _ensure_user(self, email: str, first_name: str, last_name: str, phone: str) -> User:
        user, created = User.objects.get_or_create(
            email=email,
            defaults={
                "username": email,
                "first_name": first_name,
                "last_name": last_name,
                "phone": phone,
            },
        )
        if created or not user.has_usable_password():
            user.set_password(SEED_PASSWORD)
            user.save(update_fields=["password"])
        return user

    def _ensure_booking(self, *, user: User, test_type: str, location: str, **fields) -> Booking:
        """Reuse the user's seed booking for this test and location."""
        booking, _ = Booking.objects.get_or_create(
            user=user,
            test_type=test_type,
            location=location,
            defaults={
                "full_name": user.full_name,
                "email": user.email,
                "phone": user.phone,
                **fields,
            },
        )
        return booking

    def _ensure_payment(self, *, reference: str, **fields) -> Payment:
        payment, _ = Payment.objects.get_or_create(reference=reference, defaults=fields)
        return payment

    def _ensure_superuser(self) -> User:
        user, created = User.objects.get_or_create(
            email=SUPERUSER_EMAIL,
            defaults={
                "username": SUPERUSER_EMAIL,
                "first_name": "Admin",
                "last_name": "User",
                "role": User.ROLE_ADMIN,
                "is_staff": True,
                "is_superuser": True,
            },
        )
        flag_updates = {}
        if not user.is_staff:
            flag_updates["is_staff"] = True
        if not user.is_superuser:
            flag_updates["is_superuser"] = True
        if flag_updates:
            for attr, value in flag_updates.items():
                setattr(user, attr, value)
            user.save(update_fields=list(flag_updates.keys()))
        if created or not user.has_usable_password():
            user.set_password(SUPERUSER_PASSWORD)
            user.save(update_fields=["password"])
        return user
