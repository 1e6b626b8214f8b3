"""Visit aggregation - cross-venue visit counting over a rolling window."""

from datetime import datetime, timedelta

from django.db.models import Min
from django.utils import timezone

from loyaltyhub.conf import loyaltyhub_settings
from loyaltyhub.models import Visit, VenueTierConfig


def window_days_of(venue_id: int) -> int:
    """
    Rolling window configured at a venue.

    The minimum rolling_window_days across the venue's tier configs;
    DEFAULT_WINDOW_DAYS when the venue has none.
    """
    window = VenueTierConfig.objects.filter(venue_id=venue_id).aggregate(
        window=Min("rolling_window_days")
    )["window"]
    return window if window is not None else loyaltyhub_settings.DEFAULT_WINDOW_DAYS


def count_visits(
    customer_id: int,
    window_days: int,
    now: datetime | None = None,
) -> int:
    """
    Count a customer's visits at ALL venues within [now - window_days, now].

    Each recorded transaction counts as one visit; several sales on the
    same day are not collapsed.
    """
    now = now or timezone.now()
    return Visit.objects.filter(
        customer_id=customer_id,
        created_at__gte=now - timedelta(days=window_days),
        created_at__lte=now,
    ).count()
