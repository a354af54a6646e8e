"""
Tests for ledger drift detection.
"""

from decimal import Decimal
from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError


pytestmark = pytest.mark.django_db


class TestCheckDrift:
    """Tests for StockLedger.check_drift()."""

    def test_consistent_store(self, ledger, actor, receive):
        receive('NZ-1001', '10')
        ledger.withdraw([{'lpn': 'NZ-1001', 'quantity': '3', 'reason': 'Ajuste'}], actor)

        assert ledger.check_drift() == []

    def test_unit_without_entries(self, ledger, orphan_unit, caplog):
        """A unit written behind the ledger's back is reported."""
        orphan_unit('NZ-5000', '4')

        [report] = ledger.check_drift()

        assert report.lpn == 'NZ-5000'
        assert report.recorded == Decimal('4')
        assert report.ledger == Decimal('0')
        assert report.difference == Decimal('4')
        assert 'stockledger.drift' in caplog.text


class TestCheckLedgerDriftCommand:
    """Tests for the check_ledger_drift management command."""

    def test_no_drift(self, receive):
        receive('NZ-1001', '10')
        out = StringIO()

        call_command('check_ledger_drift', stdout=out)

        assert 'Nenhuma divergência' in out.getvalue()

    def test_reports_drift(self, orphan_unit):
        orphan_unit('NZ-5000', '4')
        out = StringIO()

        call_command('check_ledger_drift', stdout=out)

        assert 'NZ-5000' in out.getvalue()

    def test_fail_on_drift(self, orphan_unit):
        orphan_unit('NZ-5000', '4')

        with pytest.raises(CommandError):
            call_command('check_ledger_drift', '--fail-on-drift', stdout=StringIO())
