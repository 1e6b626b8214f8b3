"""Tier resolution - best of home vs. visiting venue, staff override.

Algorithm (resolve):
    1. Staff: visiting venue's staff rates, discount_type="staff". Nothing
       else is computed.
    2. Count visits at ALL venues over the visiting venue's window.
    3. Best qualifying tier at the HOME venue for that count.
    4. Best qualifying tier at the VISITING venue for that count.
    5. Higher rank wins; home wins ties.
    6. Rates always come from the VISITING venue's config for the winner.

Example:
    Home requires 2 visits for Loyalty, visiting requires 4. With 3 visits
    the customer is Loyalty at home and Member at the visiting venue, so
    Loyalty wins and the visiting venue's Loyalty rates apply.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from loyaltyhub.conf import loyaltyhub_settings
from loyaltyhub.models import (
    Customer,
    DiscountType,
    Tier,
    Venue,
    VenueStaffRate,
    VenueTierConfig,
)
from loyaltyhub.services import visits as visit_service

logger = logging.getLogger(__name__)

STAFF_TIER_NAME = "Staff"


@dataclass(frozen=True)
class TierRef:
    """A tier as seen by resolution (tier_id is None for the synthetic fallback)."""

    tier_id: int | None
    name: str
    rank: int


@dataclass
class TierResult:
    """Resolved tier and discount rates for a customer at a visiting venue."""

    tier: str
    tier_id: int | None
    rank: int
    is_staff: bool
    wet_discount: Decimal
    dry_discount: Decimal
    discount_type: str
    visits: int
    window_days: int
    home_venue: str | None
    home_venue_id: int | None
    visiting_venue: str | None
    visiting_venue_id: int
    home_tier: str
    visiting_tier: str


@dataclass
class NextTierInfo:
    """Next tier reachable at a venue and the visits still needed."""

    tier: str
    rank: int
    visits_required: int
    visits_to_go: int


def member_tier() -> TierRef:
    """
    Base tier used when a venue has no qualifying config.

    Looks up the configured base slug, then rank 1; if the catalog has
    neither, returns a synthetic rank-1 "Member" with no id.
    """
    tier = (
        Tier.objects.filter(slug=loyaltyhub_settings.MEMBER_TIER_SLUG).first()
        or Tier.objects.filter(rank=1).first()
    )
    if tier is None:
        logger.warning("Tier catalog has no base tier; using synthetic Member")
        return TierRef(tier_id=None, name="Member", rank=1)
    return TierRef(tier_id=tier.pk, name=tier.name, rank=tier.rank)


def best_qualifying_tier(venue_id: int, visits: int) -> TierRef:
    """
    Highest-rank tier configured at venue with visits_required <= visits.

    Tiers the venue does not configure are unreachable there. Falls back to
    the base tier when nothing qualifies (a catalog inconsistency, logged).
    """
    config = (
        VenueTierConfig.objects.select_related("tier")
        .filter(venue_id=venue_id, visits_required__lte=visits)
        .order_by("-tier__rank")
        .first()
    )
    if config is None:
        logger.warning(
            "Venue %s has no tier config reachable with %s visits; "
            "falling back to base tier",
            venue_id,
            visits,
        )
        return member_tier()
    return TierRef(tier_id=config.tier_id, name=config.tier.name, rank=config.tier.rank)


def rates_for(venue_id: int, tier: TierRef) -> tuple[Decimal, Decimal]:
    """(wet, dry) configured at venue for tier; (0, 0) when not configured."""
    config = None
    if tier.tier_id is not None:
        config = VenueTierConfig.objects.filter(
            venue_id=venue_id, tier_id=tier.tier_id
        ).first()
    if config is None:
        logger.warning(
            "Venue %s has no rates for tier %s; using 0/0", venue_id, tier.name
        )
        return Decimal("0"), Decimal("0")
    return config.wet_discount, config.dry_discount


def resolve(
    customer_id: int,
    visiting_venue_id: int,
    now: datetime | None = None,
) -> TierResult | None:
    """
    Resolve tier and rates for an active customer at the visiting venue.

    Returns:
        TierResult, or None if the customer is not found/inactive
    """
    customer = (
        Customer.objects.select_related("home_venue")
        .filter(pk=customer_id, is_active=True)
        .first()
    )
    if customer is None:
        return None

    visiting_venue = Venue.objects.filter(pk=visiting_venue_id).first()
    visiting_name = visiting_venue.name if visiting_venue else None

    if customer.is_staff:
        return _staff_result(customer, visiting_venue_id, visiting_name)

    window_days = visit_service.window_days_of(visiting_venue_id)
    visits = visit_service.count_visits(customer.pk, window_days, now=now)

    home_tier = best_qualifying_tier(customer.home_venue_id, visits)
    visiting_tier = best_qualifying_tier(visiting_venue_id, visits)
    winner = home_tier if home_tier.rank >= visiting_tier.rank else visiting_tier

    wet, dry = rates_for(visiting_venue_id, winner)

    return TierResult(
        tier=winner.name,
        tier_id=winner.tier_id,
        rank=winner.rank,
        is_staff=False,
        wet_discount=wet,
        dry_discount=dry,
        discount_type=DiscountType.DISCOUNT,
        visits=visits,
        window_days=window_days,
        home_venue=customer.home_venue.name,
        home_venue_id=customer.home_venue_id,
        visiting_venue=visiting_name,
        visiting_venue_id=visiting_venue_id,
        home_tier=home_tier.name,
        visiting_tier=visiting_tier.name,
    )


def _staff_result(customer: Customer, venue_id: int, venue_name: str | None) -> TierResult:
    """Staff bypass: visiting venue's staff rates, no visit counting."""
    staff_rate = VenueStaffRate.objects.filter(venue_id=venue_id).first()
    wet = staff_rate.wet_discount if staff_rate else Decimal("0")
    dry = staff_rate.dry_discount if staff_rate else Decimal("0")

    return TierResult(
        tier=STAFF_TIER_NAME,
        tier_id=None,
        rank=0,
        is_staff=True,
        wet_discount=wet,
        dry_discount=dry,
        discount_type=DiscountType.STAFF,
        visits=0,
        window_days=0,
        home_venue=customer.home_venue.name,
        home_venue_id=customer.home_venue_id,
        visiting_venue=venue_name,
        visiting_venue_id=venue_id,
        home_tier=STAFF_TIER_NAME,
        visiting_tier=STAFF_TIER_NAME,
    )


def next_tier_info(
    customer_id: int,
    venue_id: int,
    now: datetime | None = None,
) -> NextTierInfo | None:
    """
    Next-higher tier configured at venue beyond the customer's tier there.

    The current tier is the venue's own best qualifying tier, not the
    home-vs-visiting winner, so a customer carried up by their home venue
    is still told how far they are from that tier at this venue.

    Returns:
        NextTierInfo, or None for staff, unknown customers and top-tier customers
    """
    customer = Customer.objects.filter(pk=customer_id, is_active=True).first()
    if customer is None or customer.is_staff:
        return None

    window_days = visit_service.window_days_of(venue_id)
    visits = visit_service.count_visits(customer.pk, window_days, now=now)
    current = best_qualifying_tier(venue_id, visits)

    config = (
        VenueTierConfig.objects.select_related("tier")
        .filter(venue_id=venue_id, tier__rank__gt=current.rank)
        .order_by("tier__rank")
        .first()
    )
    if config is None:
        return None

    return NextTierInfo(
        tier=config.tier.name,
        rank=config.tier.rank,
        visits_required=config.visits_required,
        visits_to_go=config.visits_required - visits,
    )
