"""
Django ORM Backend.

Implements PersistenceBackend on top of the Stockledger models.

Vocabulary mapping:
    Stockledger             →  Django
    ─────────────────────────────────────────
    atomic()                →  transaction.atomic(using=...)
    lock_units()            →  select_for_update(), ordered by lpn
    upsert_units()          →  create() / versioned filter().update()
    delete_unit()           →  versioned filter().delete()
    next_sequence()         →  LpnSequence row lock + F() increment
    insert_entries()        →  AuditEntry.save() (insert only)
"""

import functools
import logging
from decimal import Decimal
from typing import Iterable

from django.db import DatabaseError, IntegrityError, connections, transaction
from django.db.models import F, Sum

from stockledger.conf import stockledger_settings
from stockledger.exceptions import ConflictError, NotFoundError, StorageError
from stockledger.models import AuditEntry, CountSession, LpnSequence, StockUnit
from stockledger.protocols.backend import Row

logger = logging.getLogger('stockledger')


UNIT_FIELDS = tuple(
    f.name for f in StockUnit._meta.concrete_fields if not f.primary_key
)
ENTRY_FIELDS = tuple(f.name for f in AuditEntry._meta.concrete_fields)
COUNT_FIELDS = tuple(
    f.name for f in CountSession._meta.concrete_fields if not f.primary_key
)


def _guarded(method):
    """Surface driver errors as StorageError(BACKEND_FAILURE)."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except DatabaseError as exc:
            logger.warning(
                "stockledger.backend.failure",
                extra={"operation": method.__name__, "detail": str(exc)},
            )
            raise StorageError(
                'BACKEND_FAILURE',
                operation=method.__name__,
                detail=str(exc),
            ) from exc

    return wrapper


class DjangoBackend:
    """
    PersistenceBackend backed by the Django database `using`.

    Example:
        backend = DjangoBackend()
        with backend.atomic():
            rows = backend.lock_units(['NZ-00000001'])
            backend.upsert_units([{**rows[0], 'quantity': Decimal('5')}])
    """

    def __init__(self, using: str | None = None):
        self.using = using or stockledger_settings.DATABASE_ALIAS

    def __repr__(self) -> str:
        return f"DjangoBackend(using={self.using!r})"

    def atomic(self):
        return transaction.atomic(using=self.using)

    @property
    def _units(self):
        return StockUnit.objects.using(self.using)

    @property
    def _entries(self):
        return AuditEntry.objects.using(self.using)

    # ══════════════════════════════════════════════════════════════
    # UNITS
    # ══════════════════════════════════════════════════════════════

    @_guarded
    def list_units(self) -> list[Row]:
        return list(self._units.order_by('lpn').values(*UNIT_FIELDS))

    @_guarded
    def get_unit(self, lpn: str) -> Row | None:
        return self._units.filter(lpn=lpn).values(*UNIT_FIELDS).first()

    @_guarded
    def lock_units(self, lpns: Iterable[str]) -> list[Row]:
        wanted = sorted(set(lpns))
        if not wanted:
            return []
        with self.atomic():
            return list(
                self._units.select_for_update()
                .filter(lpn__in=wanted)
                .order_by('lpn')
                .values(*UNIT_FIELDS)
            )

    @_guarded
    def existing_lpns(self, lpns: Iterable[str]) -> set[str]:
        wanted = set(lpns)
        if not wanted:
            return set()
        return set(self._units.filter(lpn__in=wanted).values_list('lpn', flat=True))

    @_guarded
    def upsert_units(self, rows: list[Row]) -> list[Row]:
        written = []
        with self.atomic():
            for row in rows:
                if row.get('version') is None:
                    written.append(self._insert_unit(row))
                else:
                    written.append(self._update_unit(row))
        return written

    def _insert_unit(self, row: Row) -> Row:
        lpn = row['lpn']
        values = {k: v for k, v in row.items() if k in UNIT_FIELDS and k != 'version'}
        if self._units.filter(lpn=lpn).exists():
            raise ConflictError('IDENTIFIER_TAKEN', lpn=lpn)
        try:
            with self.atomic():
                self._units.create(**values, version=1)
        except IntegrityError as exc:
            if self._units.filter(lpn=lpn).exists():
                raise ConflictError('IDENTIFIER_TAKEN', lpn=lpn) from exc
            raise
        return self.get_unit(lpn)

    def _update_unit(self, row: Row) -> Row:
        lpn = row['lpn']
        version = row['version']
        values = {
            k: v for k, v in row.items()
            if k in UNIT_FIELDS and k not in ('lpn', 'version')
        }
        updated = self._units.filter(lpn=lpn, version=version).update(
            **values, version=F('version') + 1,
        )
        if not updated:
            self._raise_missing_or_stale(lpn, version)
        return self.get_unit(lpn)

    def _raise_missing_or_stale(self, lpn: str, version: int) -> None:
        current = self._units.filter(lpn=lpn).values_list('version', flat=True).first()
        if current is None:
            raise NotFoundError('UNIT_NOT_FOUND', lpn=lpn)
        raise ConflictError('STALE_VERSION', lpn=lpn, expected=version, current=current)

    @_guarded
    def delete_unit(self, lpn: str, version: int | None = None) -> None:
        qs = self._units.filter(lpn=lpn)
        if version is not None:
            qs = qs.filter(version=version)
        deleted, _ = qs.delete()
        if not deleted:
            if version is None:
                raise NotFoundError('UNIT_NOT_FOUND', lpn=lpn)
            self._raise_missing_or_stale(lpn, version)

    @_guarded
    def next_sequence(self, prefix: str) -> int:
        sequences = LpnSequence.objects.using(self.using)
        with self.atomic():
            sequence, _ = sequences.select_for_update().get_or_create(prefix=prefix)
            sequences.filter(pk=sequence.pk).update(last_value=F('last_value') + 1)
            sequence.refresh_from_db(fields=['last_value'])
            return sequence.last_value

    # ══════════════════════════════════════════════════════════════
    # AUDIT ENTRIES
    # ══════════════════════════════════════════════════════════════

    @_guarded
    def insert_entries(self, rows: list[Row]) -> list[Row]:
        created = []
        with self.atomic():
            for row in rows:
                entry = AuditEntry(**{k: v for k, v in row.items() if k in ENTRY_FIELDS and k != 'id'})
                entry.save(using=self.using)
                created.append(entry.pk)
        by_pk = {row['id']: row for row in self._entries.filter(pk__in=created).values(*ENTRY_FIELDS)}
        return [by_pk[pk] for pk in created]

    @_guarded
    def query_entries(
        self,
        lpn: str | None = None,
        sku: str | None = None,
        document_ref: str | None = None,
        action: str | None = None,
        batch_ref: str | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        qs = self._entries.newest_first()
        if lpn is not None:
            qs = qs.for_lpn(lpn)
        if sku is not None:
            qs = qs.filter(sku=sku)
        if document_ref is not None:
            qs = qs.filter(document_ref=document_ref)
        if action is not None:
            qs = qs.filter(action=action)
        if batch_ref is not None:
            qs = qs.filter(batch_ref=batch_ref)
        rows = qs.values(*ENTRY_FIELDS)
        if limit is not None:
            rows = rows[:limit]
        return list(rows)

    @_guarded
    def entry_totals(self) -> dict[str, Decimal]:
        totals = (
            self._entries.exclude(lpn='')
            .order_by()
            .values('lpn')
            .annotate(total=Sum('delta'))
        )
        return {row['lpn']: row['total'] or Decimal('0') for row in totals}

    # ══════════════════════════════════════════════════════════════
    # COUNT SESSIONS
    # ══════════════════════════════════════════════════════════════

    @_guarded
    def insert_count_session(self, row: Row) -> Row:
        values = {k: v for k, v in row.items() if k in COUNT_FIELDS}
        try:
            with self.atomic():
                session = CountSession.objects.using(self.using).create(**values)
        except IntegrityError as exc:
            raise ConflictError('IDENTIFIER_TAKEN', reference=values.get('reference')) from exc
        return {name: getattr(session, name) for name in COUNT_FIELDS}

    @_guarded
    def list_count_sessions(self) -> list[Row]:
        return list(CountSession.objects.using(self.using).values(*COUNT_FIELDS))

    def close(self) -> None:
        connection = connections[self.using]
        if connection.in_atomic_block:
            return
        connection.close()
