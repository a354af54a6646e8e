"""
LPN allocation.

Numbers come from a per-prefix LpnSequence row, so two calls never hand out
the same number. A generated LPN can still clash with one imported from a
legacy system; those are skipped and the next number is drawn.
"""

import logging
import re
from typing import Iterable

from stockledger.conf import stockledger_settings
from stockledger.exceptions import StorageError
from stockledger.mapping import normalize_lpn

logger = logging.getLogger('stockledger')

# Marks rows planned in a spreadsheet but not yet labelled
PLACEHOLDER_LPN = 'PROJETADO'


class LpnGenerator:
    """Allocates LPNs of the form PREFIX-00000001."""

    def __init__(self, backend, store):
        self.backend = backend
        self.store = store

    @staticmethod
    def is_well_formed(lpn) -> bool:
        candidate = normalize_lpn(lpn)
        if not candidate or candidate == PLACEHOLDER_LPN:
            return False
        return re.fullmatch(stockledger_settings.LPN_PATTERN, candidate) is not None

    @staticmethod
    def format(number: int) -> str:
        prefix = stockledger_settings.LPN_PREFIX
        digits = stockledger_settings.LPN_DIGITS
        return f"{prefix}-{number:0{digits}d}"

    def generate(self, reserved: Iterable[str] = ()) -> str:
        """
        Draw the next free LPN.

        Raises:
            StorageError('LPN_EXHAUSTED'): If LPN_MAX_ATTEMPTS draws all collide
        """
        reserved = set(reserved)
        prefix = stockledger_settings.LPN_PREFIX
        attempts = stockledger_settings.LPN_MAX_ATTEMPTS

        for _ in range(attempts):
            candidate = self.format(self.backend.next_sequence(prefix))
            if candidate not in reserved and not self.store.existing([candidate]):
                return candidate
            logger.info(
                "stockledger.lpn.collision",
                extra={"lpn": candidate},
            )

        raise StorageError('LPN_EXHAUSTED', prefix=prefix, attempts=attempts)

    def generate_many(self, count: int, reserved: Iterable[str] = ()) -> list[str]:
        """Allocate `count` distinct LPNs, none of them in `reserved`."""
        taken = set(reserved)
        issued = []
        for _ in range(count):
            lpn = self.generate(reserved=taken)
            taken.add(lpn)
            issued.append(lpn)
        return issued
