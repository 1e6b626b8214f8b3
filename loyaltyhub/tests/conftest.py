"""Pytest fixtures for Loyalty Hub tests."""

from datetime import datetime, timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from loyaltyhub.models import (
    Customer,
    CustomerIdentifier,
    Promo,
    PromoType,
    Tier,
    Venue,
    VenueStaffRate,
    VenueTierConfig,
    Visit,
)

# Default per-venue tier table: slug -> (visits_required, wet %, dry %)
DEFAULT_THRESHOLDS = {
    "member": (0, "5", "5"),
    "loyalty": (4, "10", "10"),
    "regular": (8, "20", "15"),
}


@pytest.fixture
def now():
    """Wednesday 11 June 2025, 19:30 local time."""
    return datetime(2025, 6, 11, 19, 30, tzinfo=ZoneInfo("Europe/London"))


@pytest.fixture
def tiers(db):
    """Global catalog: Member(1) < Loyalty(2) < Regular(3)."""
    return {
        slug: Tier.objects.create(slug=slug, name=name, rank=rank)
        for slug, name, rank in (
            ("member", "Member", 1),
            ("loyalty", "Loyalty", 2),
            ("regular", "Regular", 3),
        )
    }


@pytest.fixture
def make_venue(db, tiers):
    """Factory: venue with tier configs and an optional staff rate."""

    def _make(slug, name=None, thresholds=None, staff=("50", "25"), window=28, **kwargs):
        venue = Venue.objects.create(slug=slug, name=name or slug.title(), **kwargs)
        if thresholds is None:
            thresholds = DEFAULT_THRESHOLDS
        for tier_slug, (visits, wet, dry) in thresholds.items():
            VenueTierConfig.objects.create(
                venue=venue,
                tier=tiers[tier_slug],
                visits_required=visits,
                rolling_window_days=window,
                wet_discount=Decimal(wet),
                dry_discount=Decimal(dry),
            )
        if staff:
            VenueStaffRate.objects.create(
                venue=venue,
                wet_discount=Decimal(staff[0]),
                dry_discount=Decimal(staff[1]),
            )
        return venue

    return _make


@pytest.fixture
def venue_home(make_venue):
    """Number Four: Loyalty at 2 visits."""
    return make_venue(
        "number-four",
        "Number Four",
        thresholds={
            "member": (0, "5", "0"),
            "loyalty": (2, "10", "5"),
            "regular": (8, "20", "10"),
        },
    )


@pytest.fixture
def venue_visit(make_venue):
    """High Street: Loyalty at 4 visits, Regular at 6."""
    return make_venue(
        "high-street",
        "High Street",
        thresholds={
            "member": (0, "5", "5"),
            "loyalty": (4, "12", "8"),
            "regular": (6, "25", "15"),
        },
        staff=("40", "30"),
    )


@pytest.fixture
def customer(db, venue_home):
    """Member whose home is Number Four, with one RFID fob."""
    cust = Customer.objects.create(
        home_venue=venue_home,
        name="Jane Smith",
        email="jane@example.com",
        qr_code="LHJANE0000001",
    )
    CustomerIdentifier.objects.create(customer=cust, value="0004521983", label="Blue fob")
    return cust


@pytest.fixture
def customer_b(db, venue_visit):
    return Customer.objects.create(
        home_venue=venue_visit,
        name="Tom Brown",
        email="tom@example.com",
        qr_code="LHTOM00000001",
    )


@pytest.fixture
def staff_customer(db, venue_home):
    return Customer.objects.create(
        home_venue=venue_home,
        name="Sam Staff",
        email="sam@example.com",
        qr_code="LHSTAFF000001",
        is_staff=True,
    )


@pytest.fixture
def make_visits(db, now):
    """Factory: n visits for a customer at a venue, dated `when` (default: yesterday)."""

    def _make(customer, venue, count, when=None):
        when = when or now - timedelta(days=1)
        visits = [
            Visit.objects.create(customer=customer, venue=venue, total_amount=Decimal("12.50"))
            for _ in range(count)
        ]
        Visit.objects.filter(pk__in=[v.pk for v in visits]).update(created_at=when)
        return visits

    return _make


@pytest.fixture
def promo_summer(db):
    """General promo code: 20% wet, 15% dry, all venues."""
    return Promo.objects.create(
        code="SUMMER",
        name="Summer Special",
        promo_type=PromoType.PROMO_CODE,
        wet_discount=Decimal("20"),
        dry_discount=Decimal("15"),
    )


@pytest.fixture
def bonus_double(db):
    """Loyalty bonus doubling the tier discount."""
    return Promo.objects.create(
        code="DOUBLE",
        name="Double Discount",
        promo_type=PromoType.LOYALTY_BONUS,
        bonus_multiplier=Decimal("2"),
        requires_membership=True,
    )
