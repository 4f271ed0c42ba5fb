# ledger/management/commands/sync_payments_to_ledger.py

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from common.dates import day_bounds, parse_date_param
from common.errors import ValidationError
from ledger.models import LedgerEntry
from ledger.services.posting import post_payment_to_ledger
from payments.models import Payment


class Command(BaseCommand):
    help = "Create missing ledger entries for successful payments (orders and bookings)."

    def add_arguments(self, parser):
        parser.add_argument("--from", dest="date_from", help="Start date YYYY-MM-DD (optional)")
        parser.add_argument("--to", dest="date_to", help="End date YYYY-MM-DD (optional)")
        parser.add_argument("--dry-run", action="store_true", help="Show actions without writing to DB")

    def handle(self, *args, **options):
        try:
            date_from = parse_date_param(options.get("date_from"), "--from")
            date_to = parse_date_param(options.get("date_to"), "--to")
        except ValidationError as exc:
            raise CommandError(exc.message) from exc

        dry_run = bool(options.get("dry_run"))
        start, end = day_bounds(date_from, date_to)

        payments = (
            Payment.objects.filter(status=Payment.STATUS_SUCCESS)
            .select_related("order", "booking")
            .order_by("paid_at", "created_at")
        )
        if start and end:
            payments = payments.filter(paid_at__gte=start, paid_at__lt=end)

        posted_ids = set(
            LedgerEntry.objects.filter(reversal_of__isnull=True)
            .exclude(payment_id="")
            .values_list("payment_id", flat=True)
        )

        self.stdout.write(self.style.MIGRATE_HEADING("Sync payments -> ledger"))
        if start and end:
            self.stdout.write(f"Window: {start.isoformat()} -> {end.isoformat()}")
        else:
            self.stdout.write("Window: ALL TIME")
        if dry_run:
            self.stdout.write("DRY RUN: no database changes will be saved.")

        posted = skipped = failed = 0
        for payment in payments:
            target = payment.target
            if str(payment.id) in posted_ids or target is None or target.refunded_at:
                skipped += 1
                continue

            if dry_run:
                self.stdout.write(f"Would post {payment.tx_ref} ({payment.amount} {payment.currency})")
                posted += 1
                continue

            try:
                with transaction.atomic():
                    post_payment_to_ledger(payment, force=True)
                posted += 1
            except ValidationError as exc:
                failed += 1
                self.stderr.write(self.style.ERROR(f"Failed {payment.tx_ref}: {exc.message}"))

        self.stdout.write(self.style.SUCCESS(f"Posted: {posted}  Skipped: {skipped}  Failed: {failed}"))
