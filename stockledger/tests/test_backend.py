"""
Tests for the Django ORM backend and backend loading.
"""

from decimal import Decimal

import pytest
from django.core.exceptions import ImproperlyConfigured

from stockledger.adapters import load_backend
from stockledger.adapters.django_orm import DjangoBackend
from stockledger.exceptions import ConflictError, NotFoundError, StorageError
from stockledger.protocols import PersistenceBackend
from stockledger.service import StockLedger


def unit_row(lpn='NZ-1001', **fields):
    row = {'lpn': lpn, 'sku': 'LIN-001', 'quantity': Decimal('10'), 'version': None}
    row.update(fields)
    return row


class TestLoadBackend:
    """Tests for load_backend()."""

    def test_default_backend(self):
        backend = load_backend()

        assert isinstance(backend, DjangoBackend)
        assert isinstance(backend, PersistenceBackend)

    def test_new_instance_each_call(self):
        assert load_backend() is not load_backend()

    def test_bad_path(self, settings):
        settings.STOCKLEDGER = {'BACKEND': 'stockledger.adapters.nowhere.Backend'}

        with pytest.raises(ImproperlyConfigured):
            load_backend()

    def test_not_a_backend(self):
        with pytest.raises(ImproperlyConfigured):
            load_backend('stockledger.services.ReconciliationEngine')

    def test_facade_uses_configured_backend(self):
        assert isinstance(StockLedger().backend, DjangoBackend)


@pytest.mark.django_db
class TestDjangoBackend:
    """Tests for DjangoBackend writes."""

    def test_insert_sets_version(self, backend):
        [row] = backend.upsert_units([unit_row()])

        assert row['version'] == 1
        assert row['quantity'] == Decimal('10')

    def test_insert_existing_lpn_conflicts(self, backend):
        backend.upsert_units([unit_row()])

        with pytest.raises(ConflictError) as exc:
            backend.upsert_units([unit_row()])

        assert exc.value.code == 'IDENTIFIER_TAKEN'

    def test_versioned_update(self, backend):
        backend.upsert_units([unit_row()])

        [row] = backend.upsert_units([unit_row(quantity=Decimal('7'), version=1)])

        assert row['version'] == 2
        assert row['quantity'] == Decimal('7')

    def test_stale_update_conflicts(self, backend):
        backend.upsert_units([unit_row()])
        backend.upsert_units([unit_row(version=1)])

        with pytest.raises(ConflictError) as exc:
            backend.upsert_units([unit_row(quantity=Decimal('1'), version=1)])

        assert exc.value.code == 'STALE_VERSION'
        assert backend.get_unit('NZ-1001')['quantity'] == Decimal('10')

    def test_update_missing_unit(self, backend):
        with pytest.raises(NotFoundError):
            backend.upsert_units([unit_row(version=1)])

    def test_delete(self, backend):
        backend.upsert_units([unit_row()])

        with pytest.raises(ConflictError):
            backend.delete_unit('NZ-1001', version=5)
        backend.delete_unit('NZ-1001', version=1)

        assert backend.get_unit('NZ-1001') is None
        with pytest.raises(NotFoundError):
            backend.delete_unit('NZ-1001')

    def test_negative_quantity_is_storage_error(self, backend):
        """The database constraint backs the non-negative balance rule."""
        with pytest.raises(StorageError) as exc:
            backend.upsert_units([unit_row(quantity=Decimal('-1'))])

        assert exc.value.code == 'BACKEND_FAILURE'
        assert exc.value.data['operation'] == 'upsert_units'

    def test_lock_units_ordered(self, backend):
        backend.upsert_units([unit_row('NZ-2002'), unit_row('NZ-1001')])

        with backend.atomic():
            rows = backend.lock_units(['NZ-2002', 'NZ-1001', 'NZ-9999'])

        assert [row['lpn'] for row in rows] == ['NZ-1001', 'NZ-2002']

    def test_next_sequence_per_prefix(self, backend):
        assert backend.next_sequence('NZ') == 1
        assert backend.next_sequence('NZ') == 2
        assert backend.next_sequence('TX') == 1

    def test_close_inside_transaction_keeps_connection(self, backend):
        backend.close()

        assert backend.list_units() == []
