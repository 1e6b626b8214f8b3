"""
Loyalty Hub Gates - Validation rules.

G1: IdentifierUniqueness - value not already used as an RFID, QR code or email
G2: PromoConfiguration - promo payload and restrictions are coherent
G3: VenueAuthentication - API key resolves to an active venue
G4: TierCatalogCompleteness - venue configures every global tier
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

logger = logging.getLogger(__name__)


class GateError(Exception):
    """Gate validation error."""

    def __init__(self, gate_name: str, message: str, details: dict | None = None):
        self.gate_name = gate_name
        self.message = message
        self.details = details or {}
        super().__init__(f"[{gate_name}] {message}")


@dataclass
class GateResult:
    """Result of a gate check."""

    passed: bool
    gate_name: str
    message: str = ""


# =============================================================================
# Gates
# =============================================================================


class Gates:
    """Loyalty Hub validation gates."""

    # =========================================================================
    # G1: Identifier Uniqueness
    # =========================================================================

    @classmethod
    def identifier_uniqueness(
        cls,
        value: str,
        exclude_customer_id: int | None = None,
    ) -> GateResult:
        """
        G1: a scannable value resolves to at most one customer.

        The value is checked against active RFID identifiers, every QR code
        and every email. Storage constraints only cover each class on its
        own, so this gate is what keeps an RFID from shadowing an email.

        Args:
            value: Raw identifier value
            exclude_customer_id: Customer ID to exclude from check (for updates)

        Raises:
            GateError: If the value is in use; details["source"] names the class
        """
        from loyaltyhub.models import Customer, CustomerIdentifier

        value = (value or "").strip()
        if not value:
            raise GateError("G1_IdentifierUniqueness", "Identifier value is empty.")

        checks = (
            (
                "rfid",
                CustomerIdentifier.objects.filter(value=value, is_active=True),
            ),
            ("qr", Customer.objects.filter(qr_code=value)),
            ("email", Customer.objects.filter(email__iexact=value)),
        )
        for source, query in checks:
            if exclude_customer_id is not None:
                field = "customer_id" if source == "rfid" else "pk"
                query = query.exclude(**{field: exclude_customer_id})
            if query.exists():
                raise GateError(
                    "G1_IdentifierUniqueness",
                    "Identifier already in use.",
                    {"source": source, "value": value},
                )

        return GateResult(True, "G1_IdentifierUniqueness")

    @classmethod
    def check_identifier_uniqueness(cls, *args, **kwargs) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.identifier_uniqueness(*args, **kwargs)
            return True
        except GateError:
            return False

    # =========================================================================
    # G2: Promo Configuration
    # =========================================================================

    @classmethod
    def promo_configuration(cls, promo) -> GateResult:
        """
        G2: promo payload and restrictions are coherent.

        - percentages in [0, 100], bonus fields non-negative
        - loyalty_bonus promos require membership (they boost a member's
          tier discount, a guest has none)
        - valid_days only holds weekday abbreviations
        - valid_from is not after valid_until

        Args:
            promo: Promo instance (saved or not)

        Raises:
            GateError: On the first incoherent field
        """
        from loyaltyhub.models import WEEKDAYS, PromoType

        for field in ("wet_discount", "dry_discount", "bonus_add_wet", "bonus_add_dry"):
            value = getattr(promo, field)
            if value is not None and not (0 <= Decimal(value) <= 100):
                raise GateError(
                    "G2_PromoConfiguration",
                    f"{field} must be between 0 and 100.",
                    {"field": field, "value": str(value)},
                )

        if promo.bonus_multiplier is not None and Decimal(promo.bonus_multiplier) < 0:
            raise GateError(
                "G2_PromoConfiguration",
                "bonus_multiplier cannot be negative.",
                {"field": "bonus_multiplier"},
            )

        if promo.promo_type == PromoType.LOYALTY_BONUS and not promo.requires_membership:
            raise GateError(
                "G2_PromoConfiguration",
                "Loyalty bonus promos must require membership.",
                {"field": "requires_membership"},
            )

        unknown_days = [
            day for day in promo.valid_days or []
            if str(day).strip().title()[:3] not in WEEKDAYS
        ]
        if unknown_days:
            raise GateError(
                "G2_PromoConfiguration",
                "valid_days contains unknown weekdays.",
                {"field": "valid_days", "unknown": unknown_days},
            )

        if promo.valid_from and promo.valid_until and promo.valid_from > promo.valid_until:
            raise GateError(
                "G2_PromoConfiguration",
                "valid_from is after valid_until.",
                {"field": "valid_from"},
            )

        return GateResult(True, "G2_PromoConfiguration")

    @classmethod
    def check_promo_configuration(cls, promo) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.promo_configuration(promo)
            return True
        except GateError:
            return False

    # =========================================================================
    # G3: Venue Authentication
    # =========================================================================

    @classmethod
    def venue_authentication(cls, api_key: str | None):
        """
        G3: API key resolves to an active venue.

        Args:
            api_key: Value of the API key header

        Returns:
            The authenticated Venue

        Raises:
            GateError: details["reason"] is "missing", "invalid" or "inactive"
        """
        from loyaltyhub.models import Venue

        if not api_key:
            raise GateError(
                "G3_VenueAuthentication",
                "API key header is required.",
                {"reason": "missing"},
            )

        venue = Venue.objects.filter(api_key=api_key).first()
        if venue is None:
            logger.warning("G3_VenueAuthentication: rejected unknown API key")
            raise GateError(
                "G3_VenueAuthentication",
                "Invalid API key.",
                {"reason": "invalid"},
            )

        if not venue.is_active:
            raise GateError(
                "G3_VenueAuthentication",
                "Venue is not active.",
                {"reason": "inactive", "venue_id": venue.pk},
            )

        return venue

    @classmethod
    def check_venue_authentication(cls, api_key: str | None) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.venue_authentication(api_key)
            return True
        except GateError:
            return False

    # =========================================================================
    # G4: Tier Catalog Completeness
    # =========================================================================

    @classmethod
    def tier_catalog_completeness(cls, venue_id: int) -> GateResult:
        """
        G4: venue configures every global tier, base tier at 0 visits.

        Resolution still works when this fails (missing tiers are simply
        unreachable, see services.tiers), so this gate is a diagnostic.

        Raises:
            GateError: With missing tier slugs and/or the base tier problem
        """
        from loyaltyhub.models import Tier, VenueTierConfig

        configs = {
            c.tier_id: c
            for c in VenueTierConfig.objects.filter(venue_id=venue_id)
        }
        tiers = list(Tier.objects.order_by("rank"))

        missing = [t.slug for t in tiers if t.pk not in configs]
        if missing:
            raise GateError(
                "G4_TierCatalogCompleteness",
                "Venue does not configure every tier.",
                {"venue_id": venue_id, "missing": missing},
            )

        if tiers and configs[tiers[0].pk].visits_required != 0:
            raise GateError(
                "G4_TierCatalogCompleteness",
                "Base tier must require 0 visits.",
                {"venue_id": venue_id, "tier": tiers[0].slug},
            )

        return GateResult(True, "G4_TierCatalogCompleteness")

    @classmethod
    def check_tier_catalog_completeness(cls, venue_id: int) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.tier_catalog_completeness(venue_id)
            return True
        except GateError:
            return False
