"""
Pytest fixtures for Stockledger tests.
"""

from decimal import Decimal

import pytest

from stockledger.adapters.django_orm import DjangoBackend
from stockledger.models import StockUnit
from stockledger.protocols import Actor
from stockledger.service import StockLedger


@pytest.fixture
def actor():
    """Warehouse clerk performing the operations."""
    return Actor(name='Ana Souza', email='ana@example.com', role='estoquista')


@pytest.fixture
def backend(db):
    """Django ORM backend on the test database."""
    return DjangoBackend()


@pytest.fixture
def ledger(backend):
    """StockLedger facade wired to the test backend."""
    return StockLedger(backend)


@pytest.fixture
def item():
    """Build an inbound item with sensible defaults."""
    def _item(**fields):
        data = {
            'sku': 'LIN-001',
            'name': 'Linho Cru',
            'category': 'Tecidos',
            'supplier': 'Tecelagem Sul',
            'quantity': '50',
            'lot': 'L01',
            'document_ref': 'NF-100',
            'unit_cost': '12.50',
            'standard_quantity': '50',
            'zone': 'A',
            'level': '1',
        }
        data.update(fields)
        return data
    return _item


@pytest.fixture
def receive(ledger, actor, item):
    """Receive one unit through the ledger and return its record."""
    def _receive(lpn, quantity, **fields):
        result = ledger.receive([item(lpn=lpn, quantity=quantity, **fields)], actor)
        assert result.success, result.message
        return ledger.unit(result.lpns[0])
    return _receive


@pytest.fixture
def orphan_unit(db):
    """Create a unit directly in the table, bypassing the ledger."""
    def _orphan(lpn, quantity, **fields):
        return StockUnit.objects.create(
            lpn=lpn,
            sku=fields.pop('sku', 'LIN-001'),
            quantity=Decimal(quantity),
            **fields,
        )
    return _orphan
