"""
Management command to compare unit balances with the audit ledger.

Usage:
    python manage.py check_ledger_drift
    python manage.py check_ledger_drift --fail-on-drift
"""

from django.core.management.base import BaseCommand, CommandError

from stockledger.service import StockLedger


class Command(BaseCommand):
    """Check ledger drift command."""

    help = 'Verifica divergências entre saldos e a trilha de auditoria'

    def add_arguments(self, parser):
        parser.add_argument(
            '--fail-on-drift',
            action='store_true',
            help='Encerra com erro se houver divergência'
        )

    def handle(self, *args, **options):
        with StockLedger.connect() as ledger:
            reports = ledger.check_drift()

        for report in reports:
            self.stdout.write(
                f'{report.lpn}: saldo {report.recorded}, '
                f'razão {report.ledger} (diferença {report.difference})'
            )

        if not reports:
            self.stdout.write(self.style.SUCCESS('Nenhuma divergência encontrada'))
            return

        message = f'{len(reports)} divergência(s) encontrada(s)'
        if options['fail_on_drift']:
            raise CommandError(message)
        self.stdout.write(self.style.WARNING(message))
