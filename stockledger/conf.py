"""
Stockledger configuration.

Usage in settings.py:
    STOCKLEDGER = {
        "BACKEND": "stockledger.adapters.django_orm.DjangoBackend",
        "LPN_PREFIX": "NZ",
        "QUANTITY_EPSILON": "0.001",
        "BATCH_TIMEOUT_SECONDS": 30,
    }
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from django.conf import settings


@dataclass
class StockLedgerSettings:
    """Stockledger configuration settings."""

    # Persistence backend (dotted path to a PersistenceBackend class)
    BACKEND: str = "stockledger.adapters.django_orm.DjangoBackend"

    # Database alias used by the Django backend
    DATABASE_ALIAS: str = "default"

    # LPN format: PREFIX-000000NN
    LPN_PREFIX: str = "NZ"
    LPN_DIGITS: int = 8
    LPN_PATTERN: str = r"^[A-Z0-9]{1,6}-[A-Z0-9]{4,}$"

    # Draws before giving up when generated LPNs collide with existing ones
    LPN_MAX_ATTEMPTS: int = 5

    # Tolerance for quantity comparisons
    QUANTITY_EPSILON: Decimal = Decimal("0.001")

    # Nominal width applied when a unit omits it
    DEFAULT_WIDTH: Decimal = Decimal("1.52")

    MAX_BATCH_ITEMS: int = 1000

    # 0 = no timeout
    BATCH_TIMEOUT_SECONDS: float = 0

    def __post_init__(self):
        self.QUANTITY_EPSILON = Decimal(str(self.QUANTITY_EPSILON))
        self.DEFAULT_WIDTH = Decimal(str(self.DEFAULT_WIDTH))


def get_stockledger_settings() -> StockLedgerSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "STOCKLEDGER", {})
    return StockLedgerSettings(**{
        k: v for k, v in user_settings.items()
        if k in StockLedgerSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_stockledger_settings(), name)


stockledger_settings = _LazySettings()
