"""
Stockledger Adapters.

Implementations of PersistenceBackend.

Usage:
    from stockledger.adapters import load_backend

    backend = load_backend()  # a fresh instance on every call

Settings:
    STOCKLEDGER = {
        "BACKEND": "stockledger.adapters.django_orm.DjangoBackend",
    }
"""

from __future__ import annotations

import logging

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from stockledger.conf import stockledger_settings
from stockledger.protocols.backend import PersistenceBackend

logger = logging.getLogger(__name__)


def load_backend(path: str | None = None, **kwargs) -> PersistenceBackend:
    """
    Build a new backend from a dotted path (default: STOCKLEDGER['BACKEND']).

    Raises:
        ImproperlyConfigured: If the path is empty, cannot be imported, or
            the class does not implement PersistenceBackend
    """
    backend_path = path or stockledger_settings.BACKEND
    if not backend_path:
        raise ImproperlyConfigured(
            "STOCKLEDGER['BACKEND'] must be configured. "
            "Example: 'stockledger.adapters.django_orm.DjangoBackend'"
        )

    try:
        backend_class = import_string(backend_path)
    except ImportError as e:
        raise ImproperlyConfigured(
            f"Failed to import persistence backend '{backend_path}': {e}"
        ) from e

    backend = backend_class(**kwargs)
    if not isinstance(backend, PersistenceBackend):
        raise ImproperlyConfigured(
            f"'{backend_path}' does not implement PersistenceBackend"
        )
    logger.debug("Loaded persistence backend: %s", backend_path)
    return backend


__all__ = ["load_backend"]
