"""
Bondman configuration.

Usage in settings.py:
    BONDMAN = {
        "LOCK_STRATEGY": "auto",
        "DEFAULT_CARRIER": "GROUND",
        "SHIP_FROM": {"company": "Zone 12 Warehouse", "city": "Port City"},
    }
"""

from dataclasses import dataclass, field
from typing import Any

from django.conf import settings


def _default_ship_from() -> dict[str, str]:
    return {
        'company': 'Bonded Warehouse',
        'address': '',
        'city': '',
        'state': '',
        'zip': '',
        'country': 'US',
    }


@dataclass
class BondmanSettings:
    """Bondman configuration settings."""

    # Allocation guard: "auto" (advisory on PostgreSQL + process locks),
    # "advisory" (PostgreSQL only) or "process"
    LOCK_STRATEGY: str = 'auto'

    # Namespace for pg_advisory_xact_lock keys
    ADVISORY_LOCK_PREFIX: str = 'bondman'

    # Label defaults
    DEFAULT_CARRIER: str = 'GROUND'
    DEFAULT_SERVICE_TYPE: str = 'STANDARD'
    DEFAULT_LABEL_FORMAT: str = 'PDF'
    SHIP_FROM: dict[str, str] = field(default_factory=_default_ship_from)
    TRACKING_PREFIX: str = 'TRK'

    MAX_TRACKING_NUMBER_LENGTH: int = 100


def get_bondman_settings() -> BondmanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "BONDMAN", {})
    return BondmanSettings(**{
        k: v for k, v in user_settings.items()
        if k in BondmanSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_bondman_settings(), name)


bondman_settings = _LazySettings()
