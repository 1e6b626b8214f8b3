"""
Loyalty Hub public API.

One classmethod per POS operation. The calling venue id is assumed to be
already authenticated (see Gates.venue_authentication).

CORE:
    LoyaltyHub.identify(identifier, venue_id)       - Tier, rates and promos
    LoyaltyHub.record_transaction(...)              - Log a completed sale
    LoyaltyHub.validate_promo(code, ...)            - Check a promo code
    LoyaltyHub.apply_promo(code, ...)               - Final discount with a promo

CONVENIENCE:
    LoyaltyHub.register(venue_id, name, ...)        - New member
    LoyaltyHub.add_identifier(customer_id, value)   - Extra RFID fob/card
    LoyaltyHub.sync(venue_id, updated_since)        - Offline cache feed
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from loyaltyhub.exceptions import LoyaltyError
from loyaltyhub.models import CustomerIdentifier
from loyaltyhub.services import customer as customer_service
from loyaltyhub.services import identifiers as identifier_service
from loyaltyhub.services import promos as promo_service
from loyaltyhub.services import tiers as tier_service
from loyaltyhub.services import transactions as transaction_service
from loyaltyhub.services.customer import Registration, SyncResult
from loyaltyhub.services.promos import (
    BestBonus,
    PromoApplication,
    PromoSummary,
    PromoValidation,
)
from loyaltyhub.services.tiers import NextTierInfo
from loyaltyhub.services.transactions import DiscountInfo, LineItem, SaleTotals


@dataclass
class Identification:
    """Result of identifying a scanned customer at a venue."""

    found: bool
    identifier: str
    customer_id: int | None = None
    name: str | None = None
    email: str | None = None
    tier: str | None = None
    is_staff: bool = False
    wet_discount: Decimal | None = None
    dry_discount: Decimal | None = None
    discount_type: str | None = None
    visits: int = 0
    window_days: int = 0
    home_venue: str | None = None
    home_tier: str | None = None
    visiting_tier: str | None = None
    available_promos: list[PromoSummary] = field(default_factory=list)
    next_tier: NextTierInfo | None = None
    best_bonus: BestBonus | None = None
    error_code: str | None = None
    message: str | None = None


class LoyaltyHub:
    """
    Loyalty Hub public API.

    Uses @classmethod for extensibility.

    Business rejections (customer not found, promo invalid) come back as
    result objects carrying error_code/message. Conflicts and write
    failures on mutating calls raise LoyaltyError.
    """

    # ======================================================================
    # CORE API
    # ======================================================================

    @classmethod
    def identify(
        cls,
        identifier: str,
        venue_id: int,
        now: datetime | None = None,
    ) -> Identification:
        """
        Identify a scanned customer and compute their discount at venue.

        Args:
            identifier: RFID code, QR code or email
            venue_id: Calling (visiting) venue

        Returns:
            Identification; found=False with error_code CUSTOMER_NOT_FOUND,
            VENUE_NOT_FOUND or VENUE_INACTIVE on failure
        """
        try:
            customer_service.get_active_venue(venue_id)
        except LoyaltyError as exc:
            return Identification(
                found=False,
                identifier=identifier,
                error_code=exc.code,
                message=exc.message,
            )

        customer = identifier_service.resolve(identifier)
        tier = tier_service.resolve(customer.pk, venue_id, now=now) if customer else None
        if customer is None or tier is None:
            return Identification(
                found=False,
                identifier=identifier,
                error_code="CUSTOMER_NOT_FOUND",
                message="Customer not found",
            )

        result = Identification(
            found=True,
            identifier=identifier,
            customer_id=customer.pk,
            name=customer.name,
            email=customer.email,
            tier=tier.tier,
            is_staff=tier.is_staff,
            wet_discount=tier.wet_discount,
            dry_discount=tier.dry_discount,
            discount_type=tier.discount_type,
            visits=tier.visits,
            window_days=tier.window_days,
            home_venue=tier.home_venue,
            home_tier=tier.home_tier,
            visiting_tier=tier.visiting_tier,
            available_promos=promo_service.list_available(customer.pk, venue_id, now=now),
        )

        # Staff rates are final: no tier progression, no bonus boosting
        if not tier.is_staff:
            result.next_tier = tier_service.next_tier_info(customer.pk, venue_id, now=now)
            result.best_bonus = promo_service.best_customer_bonus(
                customer.pk, venue_id, tier.wet_discount, tier.dry_discount, now=now
            )

        return result

    @classmethod
    def record_transaction(
        cls,
        customer_id: int,
        venue_id: int,
        totals: SaleTotals,
        discount: DiscountInfo,
        promo_code: str | None = None,
        line_items: list[LineItem] | tuple = (),
        ticket_id: str = "",
    ) -> int:
        """
        Log a completed sale. Returns the visit (transaction) id.

        Raises:
            LoyaltyError: CUSTOMER_NOT_FOUND, TRANSACTION_FAILED, PROMO_USAGE_LIMIT
        """
        return transaction_service.record(
            customer_id,
            venue_id,
            totals,
            discount,
            promo_code=promo_code,
            line_items=line_items,
            ticket_id=ticket_id,
        )

    @classmethod
    def validate_promo(
        cls,
        code: str,
        venue_id: int,
        customer_id: int | None = None,
        total_amount=None,
        now: datetime | None = None,
    ) -> PromoValidation:
        """Validate a promo code (customer_id None = guest)."""
        return promo_service.validate(code, customer_id, venue_id, total_amount, now=now)

    @classmethod
    def apply_promo(
        cls,
        code: str,
        venue_id: int,
        customer_id: int | None = None,
        base_wet=0,
        base_dry=0,
        now: datetime | None = None,
    ) -> PromoApplication:
        """Apply a promo to base rates (customer_id None = guest)."""
        return promo_service.apply(code, customer_id, venue_id, base_wet, base_dry, now=now)

    # ======================================================================
    # CONVENIENCE API
    # ======================================================================

    @classmethod
    def register(
        cls,
        venue_id: int,
        name: str,
        email: str = "",
        phone: str = "",
        dob: date | None = None,
        rfid: str = "",
    ) -> Registration:
        """
        Register a new member at the calling venue (their home venue).

        Raises:
            LoyaltyError: DUPLICATE_EMAIL, DUPLICATE_RFID, ...
        """
        return customer_service.register(
            venue_id, name, email=email, phone=phone, dob=dob, rfid=rfid
        )

    @classmethod
    def add_identifier(
        cls,
        customer_id: int,
        value: str,
        label: str = "",
        venue_id: int | None = None,
    ) -> CustomerIdentifier:
        """
        Attach an RFID identifier to a customer.

        Raises:
            LoyaltyError: CUSTOMER_NOT_FOUND, DUPLICATE_IDENTIFIER
        """
        return identifier_service.add_identifier(
            customer_id, value, label=label, venue_id=venue_id
        )

    @classmethod
    def sync(
        cls,
        venue_id: int,
        updated_since: datetime | None = None,
    ) -> SyncResult:
        """Active customers updated after updated_since, plus the next cursor."""
        return customer_service.sync(venue_id, updated_since=updated_since)
