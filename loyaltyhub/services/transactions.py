"""Transaction recording - sales ledger, line items and preference counters.

The visit row, its line items and any promo usage are written in one
database transaction; failure there is fatal for the call. Preference
counters are best-effort: each is updated in its own savepoint and a
failure is logged, never surfaced.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from loyaltyhub.conf import loyaltyhub_settings
from loyaltyhub.exceptions import LoyaltyError
from loyaltyhub.models import Customer, ProductPreference, Promo, Visit, VisitItem
from loyaltyhub.services import promos as promo_service
from loyaltyhub.signals import transaction_recorded

logger = logging.getLogger(__name__)

# Amount columns are DECIMAL(10, 2).
AMOUNT_LIMIT = Decimal("100000000")


@dataclass(frozen=True)
class SaleTotals:
    """Amounts of a completed sale."""

    total_amount: Decimal = Decimal("0")
    wet_total: Decimal = Decimal("0")
    dry_total: Decimal = Decimal("0")


@dataclass(frozen=True)
class DiscountInfo:
    """Discount the POS actually applied to the sale."""

    discount_amount: Decimal = Decimal("0")
    discount_type: str = ""
    tier_at_visit: str = ""


@dataclass(frozen=True)
class LineItem:
    """One product line of the sale."""

    product_name: str
    product_group: str = ""
    quantity: Decimal = Decimal("1")
    price: Decimal = Decimal("0")
    is_wet: bool = False


def record(
    customer_id: int,
    venue_id: int,
    totals: SaleTotals,
    discount: DiscountInfo,
    promo_code: str | None = None,
    line_items: list[LineItem] | tuple = (),
    ticket_id: str = "",
) -> int:
    """
    Record a completed sale and return its visit id.

    A ticket_id already recorded at this venue returns the existing visit id
    without writing anything. Not safe to retry blindly without a ticket_id.

    Raises:
        LoyaltyError: CUSTOMER_NOT_FOUND, INVALID_REQUEST (non-finite or oversized amount),
            TRANSACTION_FAILED, or PROMO_USAGE_LIMIT (only with STRICT_PROMO_LIMITS)
    """
    _check_amounts(totals, discount, line_items)

    if not Customer.objects.filter(pk=customer_id, is_active=True).exists():
        raise LoyaltyError("CUSTOMER_NOT_FOUND", customer_id=customer_id)

    ticket_id = (ticket_id or "").strip()
    if ticket_id:
        existing = _existing_visit_id(venue_id, ticket_id)
        if existing:
            logger.info("Ticket %s at venue %s already recorded as visit %s",
                        ticket_id, venue_id, existing)
            return existing

    promo_code = (promo_code or "").strip().upper()

    try:
        with transaction.atomic():
            if promo_code and loyaltyhub_settings.STRICT_PROMO_LIMITS:
                _enforce_usage_limits(promo_code, customer_id)

            visit = Visit.objects.create(
                customer_id=customer_id,
                venue_id=venue_id,
                ticket_id=ticket_id,
                total_amount=totals.total_amount,
                wet_total=totals.wet_total,
                dry_total=totals.dry_total,
                discount_amount=discount.discount_amount,
                discount_type=discount.discount_type,
                tier_at_visit=discount.tier_at_visit,
                promo_code=promo_code,
            )
            VisitItem.objects.bulk_create([
                VisitItem(
                    visit=visit,
                    product_name=item.product_name,
                    product_group=item.product_group,
                    quantity=item.quantity,
                    price=item.price,
                    is_wet=item.is_wet,
                )
                for item in line_items
            ])
            if promo_code:
                promo_service.record_usage(
                    promo_code, customer_id, visit.pk, discount.discount_amount
                )
    except IntegrityError as exc:
        existing = _existing_visit_id(venue_id, ticket_id) if ticket_id else None
        if existing:
            return existing
        logger.exception("Failed to record transaction for customer %s", customer_id)
        raise LoyaltyError("TRANSACTION_FAILED") from exc
    except DatabaseError as exc:
        logger.exception("Failed to record transaction for customer %s", customer_id)
        raise LoyaltyError("TRANSACTION_FAILED") from exc

    now = timezone.now()
    for item in line_items:
        _update_preference(customer_id, venue_id, item, now)

    transaction_recorded.send(sender=Visit, visit=visit)
    return visit.pk


def _check_amounts(totals: SaleTotals, discount: DiscountInfo, line_items) -> None:
    """Reject NaN, infinite and out-of-range amounts before anything is written."""
    amounts = [
        ("total_amount", totals.total_amount),
        ("wet_total", totals.wet_total),
        ("dry_total", totals.dry_total),
        ("discount_amount", discount.discount_amount),
    ]
    for item in line_items:
        amounts += [("quantity", item.quantity), ("price", item.price)]

    for field, value in amounts:
        if not Decimal(value).is_finite():
            raise LoyaltyError("INVALID_REQUEST", message=f"'{field}' must be a finite number")
        if abs(Decimal(value)) >= AMOUNT_LIMIT:
            raise LoyaltyError("INVALID_REQUEST", message=f"'{field}' is out of range")


def _existing_visit_id(venue_id: int, ticket_id: str) -> int | None:
    return (
        Visit.objects.filter(venue_id=venue_id, ticket_id=ticket_id)
        .values_list("pk", flat=True)
        .first()
    )


def _enforce_usage_limits(promo_code: str, customer_id: int) -> None:
    """
    Lock the promo row and re-check usage limits.

    MUST be called inside transaction.atomic(), before the usage row is written.
    """
    promo = Promo.objects.select_for_update().filter(code__iexact=promo_code).first()
    if promo and promo_service.usage_limit_reached(promo, customer_id):
        raise LoyaltyError("PROMO_USAGE_LIMIT", promo_code=promo.code)


def _update_preference(customer_id: int, venue_id: int, item: LineItem, now) -> None:
    """Increment the (customer, venue, product) counter; failures are logged only."""
    if not item.product_name:
        return

    try:
        quantity = int(item.quantity)
        with transaction.atomic():
            updated = ProductPreference.objects.filter(
                customer_id=customer_id,
                venue_id=venue_id,
                product_name=item.product_name,
            ).update(
                purchase_count=F("purchase_count") + quantity,
                last_purchased=now,
            )
            if not updated:
                ProductPreference.objects.create(
                    customer_id=customer_id,
                    venue_id=venue_id,
                    product_name=item.product_name,
                    product_group=item.product_group,
                    purchase_count=quantity,
                    last_purchased=now,
                )
    except (DatabaseError, ValueError, OverflowError):
        logger.warning(
            "Preference update failed for customer %s, product %r",
            customer_id,
            item.product_name,
            exc_info=True,
        )
