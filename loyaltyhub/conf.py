"""
Loyalty Hub configuration.

Usage in settings.py:
    LOYALTYHUB = {
        "DEFAULT_WINDOW_DAYS": 28,
        "STRICT_PROMO_LIMITS": True,
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class LoyaltyHubSettings:
    """Loyalty Hub configuration settings."""

    # Rolling visit window used when a venue has no tier config
    DEFAULT_WINDOW_DAYS: int = 28

    # Member QR codes (prefix + random uppercase alphanumerics)
    QR_CODE_PREFIX: str = "LH"
    QR_CODE_LENGTH: int = 12
    QR_CODE_MAX_ATTEMPTS: int = 5

    # Lock the promo row and re-check usage limits when recording a sale
    STRICT_PROMO_LIMITS: bool = False

    # POS authentication header
    API_KEY_HEADER: str = "X-API-Key"

    # Base tier slug (fallback when a venue has no qualifying config)
    MEMBER_TIER_SLUG: str = "member"


def get_loyaltyhub_settings() -> LoyaltyHubSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "LOYALTYHUB", {})
    return LoyaltyHubSettings(**user_settings)


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_loyaltyhub_settings(), name)


loyaltyhub_settings = _LazySettings()
