"""
Tests for field-name mapping and value parsing.
"""

from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

import pytest

from stockledger.exceptions import ValidationError
from stockledger.mapping import (
    entry_from_row,
    entry_to_row,
    normalize_unit_row,
    status_for,
    to_decimal,
    to_quantity,
    unit_from_row,
    unit_to_row,
)
from stockledger.models.enums import AuditAction, UnitStatus
from stockledger.protocols.records import Actor, EntryRecord, UnitRecord


class TestToDecimal:
    """Tests for to_decimal()."""

    @pytest.mark.parametrize('value, expected', [
        ('10.5', Decimal('10.5')),
        ('10,5', Decimal('10.5')),
        (' 1.234,50 ', Decimal('1234.50')),
        (7, Decimal('7')),
        (0.1, Decimal('0.1')),
        (Decimal('3.000'), Decimal('3.000')),
    ])
    def test_accepts_common_formats(self, value, expected):
        """Dot or comma decimal separators are both accepted."""
        assert to_decimal(value) == expected

    @pytest.mark.parametrize('value', [
        'abc', 'NaN', 'inf', True, float('nan'), float('-inf'), Decimal('sNaN'),
    ])
    def test_rejects_garbage(self, value):
        """Non-numeric input raises INVALID_NUMBER."""
        with pytest.raises(ValidationError) as exc:
            to_decimal(value, 'quantity')

        assert exc.value.code == 'INVALID_NUMBER'
        assert exc.value.data['field'] == 'quantity'


class TestToColumn:
    """Tests for to_column() / to_quantity()."""

    @pytest.mark.parametrize('value, expected', [
        ('2.0006', Decimal('2.001')),
        ('2.0004', Decimal('2.000')),
        (0.0005, Decimal('0.001')),
        ('999999999.999', Decimal('999999999.999')),
    ])
    def test_rounds_to_stored_decimals(self, value, expected):
        assert to_quantity(value) == expected

    @pytest.mark.parametrize('value', ['1e15', '1000000000', '-1000000000', '1e40'])
    def test_rejects_values_the_column_cannot_hold(self, value):
        with pytest.raises(ValidationError) as exc:
            to_quantity(value, 'counted')

        assert exc.value.code == 'INVALID_NUMBER'
        assert exc.value.data['field'] == 'counted'

    def test_unit_columns_use_their_own_precision(self):
        values = normalize_unit_row({'unit_cost': '9.999', 'width': '1.5204'})

        assert values['unit_cost'] == Decimal('10.00')
        assert values['width'] == Decimal('1.520')


class TestUnitMapping:
    """Tests for unit row normalization."""

    def test_legacy_names_are_read(self):
        """Legacy spreadsheet columns map to canonical names."""
        values = normalize_unit_row({
            'id': ' nz-1001 ',
            'materialCode': 'lin-001',
            'nome': 'Linho Cru',
            'quantMl': '10,5',
            'coluna': 'B',
            'prateleira': '3',
            'nfControle': 'NF-9',
            'statusRolo': 'ROLO ABERTO',
            'metragemPadrao': '50',
            'nCaixa': 'CX-2',
        })

        assert values == {
            'lpn': 'NZ-1001',
            'sku': 'LIN-001',
            'name': 'Linho Cru',
            'quantity': Decimal('10.5'),
            'zone': 'B',
            'level': '3',
            'document_ref': 'NF-9',
            'status': UnitStatus.OPEN,
            'standard_quantity': Decimal('50'),
            'box': 'CX-2',
        }

    def test_canonical_name_wins_over_alias(self):
        """When both spellings are present, the canonical one is used."""
        values = normalize_unit_row({'quantity': '2', 'quant_ml': '9'})

        assert values['quantity'] == Decimal('2')

    def test_blank_cells_are_omitted(self):
        """None and blank strings count as not provided."""
        values = normalize_unit_row({'lpn': 'NZ-1001', 'name': '  ', 'zone': None})

        assert values == {'lpn': 'NZ-1001'}

    def test_unit_from_row_applies_defaults(self):
        """Omitted width and status get defaults."""
        unit = unit_from_row({'lpn': 'NZ-1001', 'sku': 'LIN-001', 'quantity': '0'})

        assert unit.width == Decimal('1.52')
        assert unit.status == UnitStatus.DEPLETED
        assert unit.version is None

    def test_unit_to_row_writes_canonical_names(self):
        """Writing never produces legacy names."""
        unit = unit_from_row({'id': 'NZ-1001', 'materialCode': 'X', 'quantMl': '3'})

        row = unit_to_row(unit)

        assert row['lpn'] == 'NZ-1001'
        assert row['quantity'] == Decimal('3')
        assert row['version'] is None
        assert 'quantMl' not in row
        assert 'created_at' not in row

    def test_location(self):
        """Location joins zone and level."""
        assert UnitRecord(lpn='NZ-1001', zone='A', level='2').location == 'A-2'


class TestEntryMapping:
    """Tests for audit entry normalization."""

    def test_legacy_action_names(self):
        """Legacy action names translate to AuditAction."""
        entry = entry_from_row({
            'acao': 'SAIDA_VENDA',
            'lpn': 'nz-1001',
            'quantidade': '-4',
            'valorOperacao': '12.5',
            'nfControle': 'PED-1',
            'usuario': 'ana@example.com',
        })

        assert entry.action == AuditAction.WITHDRAWAL_SALE
        assert entry.lpn == 'NZ-1001'
        assert entry.delta == Decimal('-4')
        assert entry.value == Decimal('12.5')
        assert entry.document_ref == 'PED-1'
        assert entry.actor_email == 'ana@example.com'

    def test_unknown_action_kept_raw(self):
        """Unrecognized actions are preserved as given."""
        assert entry_from_row({'action': 'custom_thing'}).action == 'CUSTOM_THING'

    def test_entry_to_row_truncates_narrative(self):
        """Narratives are capped at 500 characters."""
        row = entry_to_row(EntryRecord(action='MANUAL_EDIT', narrative='x' * 600, id=7))

        assert len(row['narrative']) == 500
        assert 'id' not in row

    def test_timestamp_parsed(self):
        """ISO timestamps become datetimes."""
        entry = entry_from_row({'action': 'BULK_CREATE', 'timestamp': '2024-03-01T10:00:00Z'})

        assert entry.timestamp == datetime(2024, 3, 1, 10, tzinfo=dt_timezone.utc)


class TestStatusFor:
    """Tests for status_for()."""

    def test_depleted_within_epsilon(self):
        assert status_for(Decimal('0.0005'), Decimal('50')) == UnitStatus.DEPLETED

    def test_closed_at_standard(self):
        assert status_for(Decimal('50'), Decimal('50')) == UnitStatus.CLOSED

    def test_open_below_standard(self):
        assert status_for(Decimal('49'), Decimal('50')) == UnitStatus.OPEN

    def test_opened_roll_stays_open(self):
        """A withdrawal opens the roll even if it is still above standard."""
        assert status_for(Decimal('60'), Decimal('50'), opened=True) == UnitStatus.OPEN


class TestActorCoerce:
    """Tests for Actor.coerce()."""

    def test_from_name_and_dict(self):
        assert Actor.coerce('Ana') == Actor(name='Ana')
        assert Actor.coerce({'email': 'ana@example.com'}).name == 'ana@example.com'

    @pytest.mark.parametrize('value', [None, 3, ['Ana']])
    def test_unsupported_value(self, value):
        with pytest.raises(ValidationError) as exc:
            Actor.coerce(value)

        assert exc.value.code == 'INVALID_ACTOR'
