"""
Management command to audit lot running totals against the ledger.

Usage:
    python manage.py verify_ledger
    python manage.py verify_ledger --fix
"""

from django.core.management.base import BaseCommand

from bondman import ledger
from bondman.models import Lot


class Command(BaseCommand):
    """Verify ledger command."""

    help = 'Compares every lot quantity with the sum of its transactions'

    def add_arguments(self, parser):
        parser.add_argument(
            '--fix',
            action='store_true',
            help='Repair drifted lots from their ledger',
        )

    def handle(self, *args, **options):
        drifted = []
        for lot in Lot.objects.order_by('pk'):
            expected = lot.ledger_total()
            if expected != lot._quantity:
                drifted.append(lot.pk)
                self.stdout.write(
                    self.style.WARNING(f'Lot {lot.pk}: cached {lot._quantity}, ledger {expected}')
                )
                if options['fix']:
                    ledger.recalculate(lot.pk)

        if not drifted:
            self.stdout.write(self.style.SUCCESS('All lots match their ledger'))
        elif options['fix']:
            self.stdout.write(self.style.SUCCESS(f'{len(drifted)} lot(s) repaired'))
        else:
            self.stdout.write(self.style.ERROR(f'{len(drifted)} lot(s) drifted'))
