"""
Tests for ReconciliationEngine.compute_diff() and the commit that follows it.
"""

from decimal import Decimal

import pytest

from stockledger.adapters.django_orm import DjangoBackend
from stockledger.exceptions import StorageError, ValidationError
from stockledger.mapping import unit_to_row
from stockledger.models import AuditAction, AuditEntry, ReconciliationStatus, StockUnit
from stockledger.protocols.records import ReconciliationRow, UnitRecord
from stockledger.services import ReconciliationEngine
from stockledger.service import StockLedger


class FailingDeleteBackend(DjangoBackend):
    """Backend whose unit deletes always fail."""

    def delete_unit(self, lpn, version=None):
        raise StorageError('BACKEND_FAILURE', detail='delete rejected')


@pytest.fixture
def engine():
    return ReconciliationEngine()


@pytest.fixture
def current():
    """Units as currently stored."""
    return [
        UnitRecord(lpn='NZ-2000', sku='LIN-001', name='Linho', quantity=Decimal('5.0'),
                   zone='A', level='1', version=3),
        UnitRecord(lpn='NZ-3000', sku='SED-002', name='Seda', quantity=Decimal('8'),
                   zone='B', level='2', version=1),
    ]


class TestComputeDiff:
    """Tests for classification rules."""

    def test_identical_snapshot_is_unchanged(self, engine, current):
        """A snapshot equal to the store yields only UNCHANGED rows."""
        snapshot = [unit_to_row(unit) for unit in current]

        rows = engine.compute_diff(snapshot, current)

        assert [row.status for row in rows] == ['UNCHANGED', 'UNCHANGED']
        assert all(row.diff == () for row in rows)

    def test_same_quantity_is_unchanged(self, engine, current):
        """NZ-2000 at 5.0 in both snapshot and store is UNCHANGED."""
        rows = engine.compute_diff(
            [{'id': 'NZ-2000', 'quantity': 5.0}, {'lpn': 'NZ-3000'}],
            current,
        )

        assert rows[0].unit.lpn == 'NZ-2000'
        assert rows[0].status == ReconciliationStatus.UNCHANGED

    def test_omitted_unit_is_deleted(self, engine, current):
        """NZ-3000 missing from the snapshot is DELETED."""
        rows = engine.compute_diff([{'lpn': 'NZ-2000', 'quantity': '5'}], current)

        deleted = [row for row in rows if row.status == ReconciliationStatus.DELETED]
        assert [row.unit.lpn for row in deleted] == ['NZ-3000']
        assert deleted[0].unit == current[1]

    def test_changed_fields_listed(self, engine, current):
        """CHANGED rows carry the names of the differing fields."""
        rows = engine.compute_diff(
            [{'lpn': 'NZ-2000', 'quantity': '4', 'coluna': 'C'}, {'lpn': 'NZ-3000'}],
            current,
        )

        assert rows[0].status == ReconciliationStatus.CHANGED
        assert rows[0].diff == ('quantity', 'zone')
        assert rows[0].unit.quantity == Decimal('4')
        assert rows[0].unit.zone == 'C'
        assert rows[0].unit.version == 3

    def test_quantity_within_epsilon_is_unchanged(self, engine, current):
        """Differences up to 0.001 are not changes."""
        rows = engine.compute_diff(
            [{'lpn': 'NZ-2000', 'quantity': '5.0009'}, {'lpn': 'NZ-3000'}],
            current,
        )

        assert rows[0].status == ReconciliationStatus.UNCHANGED

    def test_unknown_lpn_is_new(self, engine, current):
        """Rows whose LPN is not stored are NEW, without a version."""
        rows = engine.compute_diff(
            [{'lpn': 'nz-4000', 'sku': 'alg-3', 'quantity': '12', 'version': 9}],
            current,
        )

        assert rows[0].status == ReconciliationStatus.NEW
        assert rows[0].unit.lpn == 'NZ-4000'
        assert rows[0].unit.sku == 'ALG-3'
        assert rows[0].unit.version is None

    def test_row_without_lpn_is_new(self, engine, current):
        """A row with a SKU but no LPN is NEW and gets an LPN at commit."""
        rows = engine.compute_diff([{'sku': 'ALG-3', 'quantity': '1'}], current)

        assert rows[0].status == ReconciliationStatus.NEW
        assert rows[0].unit.lpn == ''

    def test_placeholder_lpn_treated_as_missing(self, engine, current):
        """PROJETADO rows are NEW rows without LPN, never duplicates."""
        rows = engine.compute_diff(
            [{'lpn': 'PROJETADO', 'sku': 'A'}, {'lpn': 'PROJETADO', 'sku': 'B'}],
            current,
        )

        assert [row.unit.lpn for row in rows[:2]] == ['', '']

    def test_rows_without_lpn_and_sku_are_dropped(self, engine, current, caplog):
        """Rows with neither identifier are skipped and logged."""
        rows = engine.compute_diff(
            [{'name': 'linha solta'}, {'lpn': 'NZ-2000'}, {'lpn': 'NZ-3000'}],
            current,
        )

        assert len(rows) == 2
        assert 'stockledger.reconciliation.dropped_rows' in caplog.text

    def test_duplicate_lpn_rejected(self, engine, current):
        """The same LPN twice in one snapshot is an error."""
        with pytest.raises(ValidationError) as exc:
            engine.compute_diff([{'lpn': 'NZ-5'}, {'lpn': 'NZ-9', 'sku': 'X'}, {'lpn': 'nz-5'}], current)

        assert exc.value.code == 'DUPLICATE_IDENTIFIER'
        assert exc.value.data == {'item': 3, 'lpn': 'NZ-5'}

    def test_invalid_number_reports_row(self, engine, current):
        with pytest.raises(ValidationError) as exc:
            engine.compute_diff([{'lpn': 'NZ-2000', 'quantity': 'dez'}], current)

        assert exc.value.code == 'INVALID_NUMBER'
        assert exc.value.data['item'] == 1

    def test_output_order(self, engine, current):
        """Snapshot rows keep input order; DELETED rows follow, sorted by LPN."""
        current = current + [UnitRecord(lpn='NZ-1000', sku='Z', version=1)]
        rows = engine.compute_diff(
            [{'lpn': 'NZ-9000', 'sku': 'N'}, {'lpn': 'NZ-2000'}],
            current,
        )

        assert [(row.unit.lpn, row.status) for row in rows] == [
            ('NZ-9000', 'NEW'),
            ('NZ-2000', 'UNCHANGED'),
            ('NZ-1000', 'DELETED'),
            ('NZ-3000', 'DELETED'),
        ]

    def test_idempotent(self, engine, current):
        """Running twice on the same inputs gives the same result."""
        snapshot = [
            {'lpn': 'NZ-2000', 'quantity': '1'},
            {'sku': 'NEW-1', 'quantity': '2'},
        ]

        assert engine.compute_diff(snapshot, current) == engine.compute_diff(snapshot, current)


class TestReconciliationRowCoerce:
    """Tests for ReconciliationRow.coerce()."""

    def test_from_plain_dict(self):
        row = ReconciliationRow.coerce({
            'item': {'lpn': 'NZ-1', 'sku': 'X', 'version': 2},
            'status': 'changed',
            'diff': ['sku'],
        })

        assert row.status == 'CHANGED'
        assert row.unit.version == 2
        assert row.diff == ('sku',)

    def test_invalid_status(self):
        with pytest.raises(ValidationError) as exc:
            ReconciliationRow.coerce({'unit': {'lpn': 'NZ-1'}, 'status': 'MAYBE'})

        assert exc.value.code == 'INVALID_STATUS'


@pytest.mark.django_db
class TestCommitReconciliation:
    """Tests for StockLedger.commit_reconciliation()."""

    def test_full_cycle(self, ledger, actor, receive):
        """NEW rows are inserted, DELETED rows removed, UNCHANGED skipped."""
        receive('NZ-2000', '5.0')
        receive('NZ-3000', '8')
        snapshot = [
            {'lpn': 'NZ-2000', 'quantity': '5'},
            {'lpn': 'NZ-2001', 'sku': 'SED-9', 'quantity': '7'},
            {'sku': 'ALG-1', 'quantity': '3'},
        ]

        diff = ledger.compute_diff(snapshot)
        assert diff.success
        assert [row.status for row in diff.rows] == ['UNCHANGED', 'NEW', 'NEW', 'DELETED']

        result = ledger.commit_reconciliation(diff.rows, actor)

        assert result.success, result.message
        assert result.data['counts'] == {'NEW': 2, 'CHANGED': 0, 'DELETED': 1, 'UNCHANGED': 0}
        assert set(StockUnit.objects.values_list('lpn', flat=True)) == {
            'NZ-2000', 'NZ-2001', 'NZ-00000001',
        }
        actions = sorted(entry.action for entry in result.entries)
        assert actions == ['BULK_CREATE', 'BULK_CREATE', 'BULK_DELETE']
        assert ledger.check_drift() == []

    def test_deleted_unit_keeps_history(self, ledger, actor, receive):
        """A hard delete leaves a compensating BULK_DELETE entry."""
        receive('NZ-3000', '8')

        result = ledger.commit_reconciliation(ledger.compute_diff([]).rows, actor)

        assert result.success, result.message
        assert ledger.unit('NZ-3000') is None
        history = ledger.history('NZ-3000')
        assert [entry.action for entry in history] == ['BULK_DELETE', 'ENTRY_REGISTERED']
        assert history[0].delta == Decimal('-8')

    def test_changed_row_updates_and_bumps_version(self, ledger, actor, receive):
        receive('NZ-2000', '5')

        diff = ledger.compute_diff([{'lpn': 'NZ-2000', 'quantity': '4.5', 'nome': 'Linho Lavado'}])
        result = ledger.commit_reconciliation(diff.rows, actor)

        assert result.success, result.message
        unit = ledger.unit('NZ-2000')
        assert unit.quantity == Decimal('4.5')
        assert unit.name == 'Linho Lavado'
        assert unit.version == 2
        entry = result.entries[0]
        assert entry.action == AuditAction.BULK_UPDATE
        assert entry.delta == Decimal('-0.5')
        assert 'quantity' in entry.narrative and 'name' in entry.narrative

    def test_stale_diff_is_rejected(self, ledger, actor, receive):
        """A unit changed after the diff makes the whole commit fail."""
        receive('NZ-2000', '5')
        receive('NZ-3000', '8')
        diff = ledger.compute_diff([{'lpn': 'NZ-2000', 'quantity': '1'}, {'lpn': 'NZ-3000'}])
        ledger.withdraw([{'lpn': 'NZ-2000', 'quantity': '1', 'reason': 'Ajuste'}], actor)
        entries_before = AuditEntry.objects.count()

        result = ledger.commit_reconciliation(diff.rows, actor)

        assert not result.success
        assert result.code == 'STALE_VERSION'
        assert ledger.unit('NZ-2000').quantity == Decimal('4')
        assert AuditEntry.objects.count() == entries_before

    def test_new_lpn_taken_since_diff(self, ledger, actor, receive):
        diff = ledger.compute_diff([{'lpn': 'NZ-7000', 'sku': 'X', 'quantity': '1'}])
        receive('NZ-7000', '2')

        result = ledger.commit_reconciliation(diff.rows, actor)

        assert not result.success
        assert result.code == 'IDENTIFIER_TAKEN'

    def test_only_unchanged_rows_write_nothing(self, ledger, actor, receive):
        receive('NZ-2000', '5')
        entries_before = AuditEntry.objects.count()

        diff = ledger.compute_diff([{'lpn': 'NZ-2000'}])
        result = ledger.commit_reconciliation(diff.rows, actor)

        assert result.success
        assert result.entries == ()
        assert AuditEntry.objects.count() == entries_before

    def test_duplicate_snapshot_reported(self, ledger):
        diff = ledger.compute_diff([{'lpn': 'NZ-1'}, {'lpn': 'NZ-1'}])

        assert not diff.success
        assert diff.code == 'DUPLICATE_IDENTIFIER'
        assert 'Item 2' in diff.message

    def test_snapshot_lpns_kept_and_settle(self, ledger, actor):
        """Legacy LPNs from the snapshot are inserted as given; a second diff is clean."""
        snapshot = [
            {'lpn': 'NZ-12', 'sku': 'LIN-1', 'quantity': '3'},
            {'id': 'l-77', 'sku': 'SED-2', 'quantity': '1,5'},
        ]

        diff = ledger.compute_diff(snapshot)
        result = ledger.commit_reconciliation(diff.rows, actor)

        assert result.success, result.message
        assert result.lpns == ('NZ-12', 'L-77')
        again = ledger.compute_diff(snapshot)
        assert [(row.unit.lpn, row.status) for row in again.rows] == [
            ('NZ-12', 'UNCHANGED'),
            ('L-77', 'UNCHANGED'),
        ]

    def test_placeholder_lpn_gets_allocated(self, ledger, actor):
        diff = ledger.compute_diff([{'lpn': 'PROJETADO', 'sku': 'LIN-1', 'quantity': '3'}])

        result = ledger.commit_reconciliation(diff.rows, actor)

        assert result.lpns == ('NZ-00000001',)

    def test_storage_failure_mid_commit_rolls_back(self, actor, receive):
        """An insert already written is undone when a later delete fails."""
        receive('NZ-3000', '8')
        before = list(StockUnit.objects.values()), AuditEntry.objects.count()
        ledger = StockLedger(FailingDeleteBackend())
        diff = ledger.compute_diff([{'lpn': 'NZ-4000', 'sku': 'ALG-3', 'quantity': '2'}])
        assert [row.status for row in diff.rows] == ['NEW', 'DELETED']

        result = ledger.commit_reconciliation(diff.rows, actor)

        assert result.code == 'BACKEND_FAILURE'
        assert result.message.startswith('Item 2 NZ-3000')
        assert (list(StockUnit.objects.values()), AuditEntry.objects.count()) == before
