from django.conf import settings
from django.core.management.base import BaseCommand

from payments.services.reconciler import cancel_stale_payments


class Command(BaseCommand):
    help = "Cancel payments that have been pending for longer than the given number of days."

    def add_arguments(self, parser):
        parser.add_argument(
            "--days",
            type=int,
            default=settings.PAYMENT_STALE_AFTER_DAYS,
            help="Age in days after which a pending payment is cancelled.",
        )

    def handle(self, *args, **options):
        count = cancel_stale_payments(days=options["days"])
        self.stdout.write(self.style.SUCCESS(f"Cancelled {count} stale pending payment(s)."))
