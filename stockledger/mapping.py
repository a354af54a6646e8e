"""
Field mapping — the one place where naming drift is handled.

Rows may arrive with canonical snake_case names, camelCase names, or the
legacy column names of the warehouse database (`quant_ml`, `coluna`,
`prateleira`, `nf_controle`, `statusRolo`, ...). Reading accepts any of them;
writing always produces canonical names.

Usage:
    unit = unit_from_row({'lpn': 'nz-1001', 'quantMl': '10,5', 'coluna': 'A'})
    unit.quantity      # Decimal('10.5')
    unit_to_row(unit)  # {'lpn': 'NZ-1001', 'quantity': Decimal('10.5'), 'zone': 'A', ...}
"""

from dataclasses import asdict, fields
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable

from django.utils.dateparse import parse_datetime

from stockledger.conf import stockledger_settings
from stockledger.exceptions import ValidationError
from stockledger.models.enums import AuditAction, UnitStatus
from stockledger.protocols.records import CountRecord, EntryRecord, UnitRecord


# canonical name → accepted spellings (canonical first)
UNIT_ALIASES = {
    'lpn': ('lpn', 'identifier', 'id', 'LPN'),
    'sku': ('sku', 'material_code', 'materialCode', 'SKU'),
    'name': ('name', 'nome', 'descricao'),
    'category': ('category', 'categoria'),
    'brand': ('brand', 'marca'),
    'supplier': ('supplier', 'fornecedor'),
    'lot': ('lot', 'lote'),
    'document_ref': ('document_ref', 'documentRef', 'nf_controle', 'nfControle'),
    'unit_cost': ('unit_cost', 'unitCost', 'custo_unitario', 'custoUnitario'),
    'width': ('width', 'largura_l', 'larguraL'),
    'quantity': ('quantity', 'quant_ml', 'quantMl'),
    'zone': ('zone', 'coluna'),
    'level': ('level', 'prateleira'),
    'box': ('box', 'n_caixa', 'nCaixa'),
    'status': ('status', 'status_rolo', 'statusRolo'),
    'standard_quantity': ('standard_quantity', 'standardQuantity', 'metragem_padrao', 'metragemPadrao'),
    'min_quantity': ('min_quantity', 'minQuantity', 'estoque_minimo', 'estoqueMinimo'),
    'note': ('note', 'observacao'),
    'inbound_reason': ('inbound_reason', 'inboundReason', 'motivo_entrada', 'motivoEntrada'),
    'responsible': ('responsible', 'responsavel'),
    'version': ('version',),
    'created_at': ('created_at', 'createdAt', 'data_entrada', 'dataEntrada'),
    'updated_at': ('updated_at', 'updatedAt', 'ult_atuali', 'ultAtuali'),
}

ENTRY_ALIASES = {
    'id': ('id',),
    'timestamp': ('timestamp',),
    'actor_name': ('actor_name', 'actorName'),
    'actor_email': ('actor_email', 'actorEmail', 'usuario'),
    'actor_role': ('actor_role', 'actorRole'),
    'action': ('action', 'acao'),
    'sku': ('sku',),
    'lpn': ('lpn',),
    'lot': ('lot', 'lote'),
    'name': ('name', 'nome'),
    'delta': ('delta', 'quantidade'),
    'value': ('value', 'valor_operacao', 'valorOperacao'),
    'narrative': ('narrative', 'detalhes'),
    'document_ref': ('document_ref', 'documentRef', 'nf_controle', 'nfControle'),
    'kind': ('kind', 'tipo'),
    'category': ('category', 'categoria'),
    'reason': ('reason', 'motivo'),
    'counterparty': ('counterparty', 'cliente'),
    'batch_ref': ('batch_ref', 'batchRef'),
}

COUNT_ALIASES = {
    'reference': ('reference', 'id'),
    'started_at': ('started_at', 'startTime', 'start_time'),
    'finished_at': ('finished_at', 'endTime', 'end_time'),
    'responsible': ('responsible',),
    'items_count': ('items_count', 'itemsCount'),
    'surplus_count': ('surplus_count', 'posAdjustments', 'pos_adjustments'),
    'shortfall_count': ('shortfall_count', 'negAdjustments', 'neg_adjustments'),
    'note': ('note', 'observation'),
    'duration_seconds': ('duration_seconds', 'durationSeconds'),
}

LEGACY_STATUS = {
    'ROLO FECHADO': UnitStatus.CLOSED,
    'ROLO ABERTO': UnitStatus.OPEN,
    'ESGOTADO': UnitStatus.DEPLETED,
}

LEGACY_ACTIONS = {
    'ENTRADA_REGISTRADA': AuditAction.ENTRY_REGISTERED,
    'SAIDA_VENDA': AuditAction.WITHDRAWAL_SALE,
    'SAIDA_TROCA': AuditAction.WITHDRAWAL_EXCHANGE,
    'SAIDA_DEFEITO': AuditAction.WITHDRAWAL_DAMAGE,
    'SAIDA_AJUSTE': AuditAction.WITHDRAWAL_ADJUSTMENT,
    'SAIDA_AUDITORIA': AuditAction.WITHDRAWAL_AUDIT,
    'CARGA_INICIAL': AuditAction.BULK_CREATE,
    'ATUALIZACAO_MASSA': AuditAction.BULK_UPDATE,
    'REMOCAO_MASSA': AuditAction.BULK_DELETE,
    'EDICAO_CADASTRO': AuditAction.MANUAL_EDIT,
    'INVENTARIO_OK': AuditAction.COUNT_CONFIRMED,
}

NARRATIVE_LIMIT = 500

# (max_digits, decimal_places) of the DecimalField columns
DECIMAL_COLUMNS = {
    'unit_cost': (12, 2),
    'width': (8, 3),
    'quantity': (12, 3),
    'standard_quantity': (12, 3),
    'min_quantity': (12, 3),
    'delta': (12, 3),
    'value': (14, 2),
}


# ══════════════════════════════════════════════════════════════
# VALUE CONVERTERS
# ══════════════════════════════════════════════════════════════

def to_decimal(value: Any, field: str = '') -> Decimal:
    """Parse Decimal/int/float/str ('10.5' or '10,5') into a finite Decimal."""
    if isinstance(value, bool):
        raise ValidationError('INVALID_NUMBER', field=field, value=value)
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, int):
        number = Decimal(value)
    elif isinstance(value, float):
        number = Decimal(str(value))
    else:
        text = str(value).strip().replace(' ', '')
        if ',' in text and '.' in text:
            text = text.replace('.', '').replace(',', '.')
        else:
            text = text.replace(',', '.')
        try:
            number = Decimal(text)
        except InvalidOperation:
            raise ValidationError('INVALID_NUMBER', field=field, value=str(value)) from None
    if not number.is_finite():
        raise ValidationError('INVALID_NUMBER', field=field, value=str(value))
    return number


def to_column(value: Any, field: str = '', max_digits: int = 12,
              decimal_places: int = 3) -> Decimal:
    """
    Parse like to_decimal(), then fit the value to a DecimalField.

    Extra decimals are rounded (half up) to `decimal_places`; values with
    more integer digits than the column holds are INVALID_NUMBER.
    """
    number = to_decimal(value, field)
    exponent = Decimal(1).scaleb(-decimal_places)
    try:
        number = number.quantize(exponent, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError('INVALID_NUMBER', field=field, value=str(value)) from None
    if abs(number) >= Decimal(10) ** (max_digits - decimal_places):
        raise ValidationError('INVALID_NUMBER', field=field, value=str(value))
    return number


def _column(max_digits: int, decimal_places: int) -> Callable[[Any, str], Decimal]:
    return lambda v, f: to_column(v, f, max_digits, decimal_places)


def to_quantity(value: Any, field: str = 'quantity') -> Decimal:
    """A quantity as stored: at most 9 integer digits and 3 decimals."""
    return to_column(value, field, *DECIMAL_COLUMNS['quantity'])


def to_datetime(value: Any, field: str = '') -> datetime:
    if isinstance(value, datetime):
        return value
    parsed = parse_datetime(str(value).strip().replace('Z', '+00:00'))
    if parsed is None:
        raise ValidationError('INVALID_NUMBER', field=field, value=str(value))
    return parsed


def normalize_lpn(value: Any) -> str:
    """Trim and upper-case an LPN (or SKU)."""
    if value is None:
        return ''
    return str(value).strip().upper()


def to_status(value: Any, field: str = '') -> str | None:
    text = str(value).strip()
    if text.upper() in LEGACY_STATUS:
        return LEGACY_STATUS[text.upper()].value
    if text.lower() in UnitStatus.values:
        return text.lower()
    return None


def to_action(value: Any, field: str = '') -> str:
    text = str(value).strip().upper()
    if text in LEGACY_ACTIONS:
        return LEGACY_ACTIONS[text].value
    return text


def _text(value: Any, field: str = '') -> str:
    return str(value).strip()


def _int(value: Any, field: str = '') -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError('INVALID_NUMBER', field=field, value=str(value)) from None


UNIT_CONVERTERS: dict[str, Callable[[Any, str], Any]] = {
    'lpn': lambda v, f: normalize_lpn(v),
    'sku': lambda v, f: normalize_lpn(v),
    'unit_cost': _column(*DECIMAL_COLUMNS['unit_cost']),
    'width': _column(*DECIMAL_COLUMNS['width']),
    'quantity': _column(*DECIMAL_COLUMNS['quantity']),
    'standard_quantity': _column(*DECIMAL_COLUMNS['standard_quantity']),
    'min_quantity': _column(*DECIMAL_COLUMNS['min_quantity']),
    'status': to_status,
    'version': _int,
    'created_at': to_datetime,
    'updated_at': to_datetime,
}

ENTRY_CONVERTERS: dict[str, Callable[[Any, str], Any]] = {
    'id': _int,
    'timestamp': to_datetime,
    'action': to_action,
    'lpn': lambda v, f: normalize_lpn(v),
    'sku': lambda v, f: normalize_lpn(v),
    'delta': _column(*DECIMAL_COLUMNS['delta']),
    'value': _column(*DECIMAL_COLUMNS['value']),
}

COUNT_CONVERTERS: dict[str, Callable[[Any, str], Any]] = {
    'reference': _text,
    'started_at': to_datetime,
    'finished_at': to_datetime,
    'items_count': _int,
    'surplus_count': _int,
    'shortfall_count': _int,
    'duration_seconds': _int,
}


def _normalize(row: dict[str, Any], aliases, converters) -> dict[str, Any]:
    """
    Pick the first present spelling of every field and convert it.

    None and blank strings count as "not provided" and are left out.
    """
    result = {}
    for canonical, spellings in aliases.items():
        for spelling in spellings:
            if spelling not in row:
                continue
            value = row[spelling]
            if value is None or (isinstance(value, str) and not value.strip()):
                continue
            converted = converters.get(canonical, _text)(value, canonical)
            if converted is not None:
                result[canonical] = converted
            break
    return result


# ══════════════════════════════════════════════════════════════
# STATUS
# ══════════════════════════════════════════════════════════════

def status_for(quantity: Decimal, standard_quantity: Decimal = Decimal('0'),
               opened: bool = False) -> str:
    """
    Lifecycle status for a balance.

    depleted if quantity <= epsilon; open right after a withdrawal;
    closed when at or above the standard quantity; open otherwise.
    """
    epsilon = stockledger_settings.QUANTITY_EPSILON
    if quantity <= epsilon:
        return UnitStatus.DEPLETED.value
    if opened:
        return UnitStatus.OPEN.value
    if quantity >= standard_quantity:
        return UnitStatus.CLOSED.value
    return UnitStatus.OPEN.value


# ══════════════════════════════════════════════════════════════
# UNITS
# ══════════════════════════════════════════════════════════════

def normalize_unit_row(row: dict[str, Any]) -> dict[str, Any]:
    """Canonical keys for the fields present in `row` (no defaults)."""
    return _normalize(row, UNIT_ALIASES, UNIT_CONVERTERS)


def unit_from_row(row: dict[str, Any]) -> UnitRecord:
    """Build a UnitRecord from any accepted spelling, applying defaults."""
    values = normalize_unit_row(row)
    values.setdefault('lpn', '')
    values.setdefault('width', stockledger_settings.DEFAULT_WIDTH)
    if 'status' not in values:
        values['status'] = status_for(
            values.get('quantity', Decimal('0')),
            values.get('standard_quantity', Decimal('0')),
        )
    return UnitRecord(**values)


def unit_to_row(unit: UnitRecord) -> dict[str, Any]:
    """Canonical row for writing. `version` is always present (None = insert)."""
    row = {k: v for k, v in asdict(unit).items() if v is not None}
    row['version'] = unit.version
    return row


def merge_unit(unit: UnitRecord, changes: dict[str, Any]) -> UnitRecord:
    """Overlay canonical `changes` on `unit`, keeping identity and version."""
    allowed = {f.name for f in fields(UnitRecord)} - {'lpn', 'version', 'created_at', 'updated_at'}
    values = asdict(unit)
    values.update({k: v for k, v in changes.items() if k in allowed})
    return UnitRecord(**values)


# ══════════════════════════════════════════════════════════════
# AUDIT ENTRIES
# ══════════════════════════════════════════════════════════════

def entry_from_row(row: dict[str, Any]) -> EntryRecord:
    values = _normalize(row, ENTRY_ALIASES, ENTRY_CONVERTERS)
    values.setdefault('action', '')
    return EntryRecord(**values)


def entry_to_row(entry: EntryRecord) -> dict[str, Any]:
    row = {k: v for k, v in asdict(entry).items() if v is not None}
    row.pop('id', None)
    row['narrative'] = row.get('narrative', '')[:NARRATIVE_LIMIT]
    return row


# ══════════════════════════════════════════════════════════════
# COUNT SESSIONS
# ══════════════════════════════════════════════════════════════

def count_from_row(row: dict[str, Any]) -> CountRecord:
    values = _normalize(row, COUNT_ALIASES, COUNT_CONVERTERS)
    values.setdefault('reference', '')
    return CountRecord(**values)


def count_to_row(record: CountRecord) -> dict[str, Any]:
    return {k: v for k, v in asdict(record).items() if v is not None}
