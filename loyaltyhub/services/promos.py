"""Promo evaluation - validation, application and redemption tracking.

Validation order (first failure wins):
    existence -> active -> venue scope -> date range -> time of day
    -> day of week -> membership -> min spend -> usage limits

Promo types:
    promo_code     Fixed wet/dry percentages, discount_type="promo". Replaces
                   any tier discount. Offered through list_available().
    loyalty_bonus  Boosts the tier discount (additive, else multiplier),
                   capped at 100%. discount_type stays "discount". Never
                   offered; picked automatically by best_customer_bonus().
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from django.db.models import Q
from django.utils import timezone

from loyaltyhub.models import (
    WEEKDAYS,
    DiscountType,
    FixedDiscount,
    LoyaltyBonus,
    Promo,
    PromoType,
    PromoUsage,
    TargetedPromo,
)
from loyaltyhub.signals import promo_redeemed

logger = logging.getLogger(__name__)

MAX_PERCENT = Decimal("100")


@dataclass
class PromoSummary:
    """Promo details returned to the POS."""

    id: int
    code: str
    name: str
    description: str
    promo_type: str
    wet_discount: Decimal
    dry_discount: Decimal
    bonus_multiplier: Decimal
    bonus_add_wet: Decimal
    bonus_add_dry: Decimal
    min_spend: Decimal
    valid_until: datetime | None
    targeted: bool = False
    expires_at: datetime | None = None

    @classmethod
    def from_promo(cls, promo: Promo, assignment: TargetedPromo | None = None):
        return cls(
            id=promo.pk,
            code=promo.code,
            name=promo.name,
            description=promo.description,
            promo_type=promo.promo_type,
            wet_discount=Decimal(promo.wet_discount or 0),
            dry_discount=Decimal(promo.dry_discount or 0),
            bonus_multiplier=Decimal(promo.bonus_multiplier or 0),
            bonus_add_wet=Decimal(promo.bonus_add_wet or 0),
            bonus_add_dry=Decimal(promo.bonus_add_dry or 0),
            min_spend=Decimal(promo.min_spend or 0),
            valid_until=promo.valid_until,
            targeted=assignment is not None,
            expires_at=assignment.expires_at if assignment else None,
        )


@dataclass
class PromoValidation:
    """Promo validation result."""

    valid: bool
    code: str
    promo: PromoSummary | None = None
    error_code: str | None = None
    message: str | None = None


@dataclass
class PromoApplication:
    """Final discount after applying a promo."""

    success: bool
    code: str
    discount_type: str | None = None
    wet_discount: Decimal | None = None
    dry_discount: Decimal | None = None
    promo_name: str | None = None
    promo_type: str | None = None
    error_code: str | None = None
    reason: str | None = None
    message: str | None = None


@dataclass
class BestBonus:
    """Loyalty bonus giving the highest boosted wet+dry sum."""

    promo: PromoSummary
    wet_discount: Decimal
    dry_discount: Decimal


# ======================================================================
# Restriction checks
# ======================================================================


def _as_decimal(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value or 0))


def time_allows(promo: Promo, now: datetime) -> bool:
    """
    Wall-clock window check, bounds inclusive.

    Only start: valid from start to end of day. Only end: valid until end.
    A start later than end is not treated as crossing midnight: it matches
    nothing.
    """
    current = timezone.localtime(now).time()
    if promo.time_start and current < promo.time_start:
        return False
    if promo.time_end and current > promo.time_end:
        return False
    return True


def day_allows(promo: Promo, now: datetime) -> bool:
    """Empty valid_days = every day; else today's abbreviation must be listed."""
    days = promo.valid_day_set
    if not days:
        return True
    return WEEKDAYS[timezone.localtime(now).weekday()] in days


def usage_limit_reached(promo: Promo, customer_id: int | None) -> bool:
    """
    Whether prior redemptions exhaust the promo.

    max_uses counts every usage row; max_uses_per_customer counts the
    customer's rows and is skipped for guests. Unset (or 0) = unlimited.
    """
    if promo.max_uses:
        if PromoUsage.objects.filter(promo=promo).count() >= promo.max_uses:
            return True

    if promo.max_uses_per_customer and customer_id:
        used = PromoUsage.objects.filter(promo=promo, customer_id=customer_id).count()
        if used >= promo.max_uses_per_customer:
            return True

    return False


def _first_failure(
    promo: Promo,
    customer_id: int | None,
    venue_id: int,
    now: datetime,
    total_amount: Decimal | None = None,
) -> tuple[str, str] | None:
    """(error_code, message) for the first failing restriction, or None."""
    if not promo.is_active:
        return "PROMO_INACTIVE", "This promo code is no longer active"

    if promo.venue_id and promo.venue_id != venue_id:
        return "PROMO_WRONG_VENUE", "This promo is not valid at this location"

    if promo.valid_from and promo.valid_from > now:
        return "PROMO_NOT_STARTED", "This promo is not yet active"
    if promo.valid_until and promo.valid_until < now:
        return "PROMO_EXPIRED", "This promo has expired"

    if not time_allows(promo, now):
        return "PROMO_WRONG_TIME", "This promo is not valid at this time of day"

    if not day_allows(promo, now):
        return "PROMO_WRONG_DAY", "This promo is not valid today"

    if promo.requires_membership and not customer_id:
        return (
            "PROMO_MEMBERSHIP_REQUIRED",
            "This promo requires membership. Please scan your card first.",
        )

    if promo.min_spend and total_amount is not None and total_amount < promo.min_spend:
        return "PROMO_MIN_SPEND", f"Minimum spend of £{promo.min_spend:.2f} required"

    if usage_limit_reached(promo, customer_id):
        return "PROMO_USAGE_LIMIT", "This promo has reached its usage limit"

    return None


def get_by_code(code: str | None) -> Promo | None:
    """Case-insensitive promo lookup."""
    code = str(code or "").strip()
    if not code:
        return None
    return Promo.objects.filter(code__iexact=code).first()


def _venue_scope(venue_id: int) -> Q:
    return Q(venue__isnull=True) | Q(venue_id=venue_id)


def _live_assignments(customer_id: int, now: datetime):
    return (
        TargetedPromo.objects.select_related("promo")
        .filter(customer_id=customer_id)
        .filter(Q(expires_at__isnull=True) | Q(expires_at__gte=now))
        .order_by("pk")
    )


# ======================================================================
# Public API
# ======================================================================


def list_available(
    customer_id: int | None,
    venue_id: int,
    now: datetime | None = None,
) -> list[PromoSummary]:
    """
    promo_code promos the customer (or a guest) can use right now at venue.

    General (public) promos first, then promos assigned to the customer;
    a promo reachable both ways is listed once.
    """
    now = now or timezone.now()
    candidates = Promo.objects.filter(
        _venue_scope(venue_id),
        is_active=True,
        promo_type=PromoType.PROMO_CODE,
    )

    available = []
    seen = set()

    for promo in candidates.filter(is_public=True).order_by("pk"):
        if _first_failure(promo, customer_id, venue_id, now) is None:
            available.append(PromoSummary.from_promo(promo))
            seen.add(promo.pk)

    if customer_id:
        assignments = _live_assignments(customer_id, now).filter(promo__in=candidates)
        for assignment in assignments:
            promo = assignment.promo
            if promo.pk in seen:
                continue
            if _first_failure(promo, customer_id, venue_id, now) is None:
                available.append(PromoSummary.from_promo(promo, assignment))
                seen.add(promo.pk)

    return available


def validate(
    code: str,
    customer_id: int | None,
    venue_id: int,
    total_amount=None,
    now: datetime | None = None,
) -> PromoValidation:
    """
    Validate a promo code for a customer (None = guest) at venue.

    The min-spend check only runs when total_amount is given.
    """
    now = now or timezone.now()
    promo = get_by_code(code)

    if promo is None:
        return PromoValidation(
            valid=False,
            code=str(code or "").strip(),
            error_code="PROMO_NOT_FOUND",
            message="Promo code not found",
        )

    total = _as_decimal(total_amount) if total_amount is not None else None
    failure = _first_failure(promo, customer_id, venue_id, now, total)
    if failure:
        error_code, message = failure
        return PromoValidation(
            valid=False,
            code=promo.code,
            error_code=error_code,
            message=message,
        )

    return PromoValidation(valid=True, code=promo.code, promo=PromoSummary.from_promo(promo))


def boost(bonus: LoyaltyBonus, base_wet, base_dry) -> tuple[Decimal, Decimal]:
    """Apply a loyalty bonus to base rates: additive if set, else multiplier."""
    base_wet = _as_decimal(base_wet)
    base_dry = _as_decimal(base_dry)

    if bonus.is_additive:
        wet = base_wet + bonus.add_wet
        dry = base_dry + bonus.add_dry
    else:
        wet = base_wet * bonus.multiplier
        dry = base_dry * bonus.multiplier

    return min(wet, MAX_PERCENT), min(dry, MAX_PERCENT)


def apply(
    code: str,
    customer_id: int | None,
    venue_id: int,
    base_wet=0,
    base_dry=0,
    now: datetime | None = None,
) -> PromoApplication:
    """
    Apply a promo to the caller's base (tier) rates.

    loyalty_bonus: boosted base rates, discount_type stays "discount";
    fails with NO_BASE_DISCOUNT when both base rates are zero.
    promo_code: the promo's own rates, discount_type "promo"; the base
    rates are discarded, never summed.
    """
    validation = validate(code, customer_id, venue_id, now=now)
    if not validation.valid:
        return PromoApplication(
            success=False,
            code=validation.code,
            error_code="PROMO_INVALID",
            reason=validation.error_code,
            message=validation.message,
        )

    promo = Promo.objects.get(pk=validation.promo.id)
    terms = promo.terms

    if isinstance(terms, LoyaltyBonus):
        if _as_decimal(base_wet) <= 0 and _as_decimal(base_dry) <= 0:
            return PromoApplication(
                success=False,
                code=promo.code,
                error_code="NO_BASE_DISCOUNT",
                message="Loyalty bonus requires an existing tier discount",
            )
        wet, dry = boost(terms, base_wet, base_dry)
        discount_type = DiscountType.DISCOUNT
    elif isinstance(terms, FixedDiscount):
        wet, dry = terms.wet, terms.dry
        discount_type = DiscountType.PROMO
    else:
        raise TypeError(f"Unsupported promo terms: {type(terms).__name__}")

    return PromoApplication(
        success=True,
        code=promo.code,
        discount_type=discount_type,
        wet_discount=wet,
        dry_discount=dry,
        promo_name=promo.name,
        promo_type=promo.promo_type,
    )


def best_customer_bonus(
    customer_id: int | None,
    venue_id: int,
    base_wet,
    base_dry,
    now: datetime | None = None,
) -> BestBonus | None:
    """
    Loyalty bonus with the highest boosted wet+dry sum for this customer.

    Considers general bonuses and bonuses assigned to the customer. Ties go
    to the first promo evaluated (general before targeted, then by id).
    """
    if not customer_id:
        return None
    if _as_decimal(base_wet) <= 0 and _as_decimal(base_dry) <= 0:
        return None

    now = now or timezone.now()
    bonuses = Promo.objects.filter(
        _venue_scope(venue_id),
        is_active=True,
        promo_type=PromoType.LOYALTY_BONUS,
    )

    candidates = [(promo, None) for promo in bonuses.filter(is_public=True).order_by("pk")]
    seen = {promo.pk for promo, _ in candidates}
    for assignment in _live_assignments(customer_id, now).filter(promo__in=bonuses):
        if assignment.promo_id not in seen:
            candidates.append((assignment.promo, assignment))
            seen.add(assignment.promo_id)

    best = None
    best_total = None
    for promo, assignment in candidates:
        if _first_failure(promo, customer_id, venue_id, now) is not None:
            continue
        wet, dry = boost(promo.terms, base_wet, base_dry)
        if best_total is None or wet + dry > best_total:
            best_total = wet + dry
            best = BestBonus(
                promo=PromoSummary.from_promo(promo, assignment),
                wet_discount=wet,
                dry_discount=dry,
            )

    return best


def record_usage(
    code: str,
    customer_id: int | None,
    visit_id: int | None,
    discount_amount=0,
) -> bool:
    """
    Append one redemption to the usage ledger.

    Returns:
        False when the code does not resolve to a promo, True otherwise
    """
    promo = get_by_code(code)
    if promo is None:
        logger.warning("record_usage: unknown promo code %r", code)
        return False

    usage = PromoUsage.objects.create(
        promo=promo,
        customer_id=customer_id,
        visit_id=visit_id,
        discount_amount=_as_decimal(discount_amount),
    )
    promo_redeemed.send(sender=PromoUsage, usage=usage)
    return True
