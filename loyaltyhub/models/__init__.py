"""Loyalty Hub models."""

from loyaltyhub.models.venue import Venue, VenueTierConfig, VenueStaffRate
from loyaltyhub.models.tier import Tier
from loyaltyhub.models.customer import Customer
from loyaltyhub.models.identifier import CustomerIdentifier, IdentifierType
from loyaltyhub.models.visit import DiscountType, Visit, VisitItem, ProductPreference
from loyaltyhub.models.promo import (
    WEEKDAYS,
    FixedDiscount,
    LoyaltyBonus,
    Promo,
    PromoType,
    PromoUsage,
    TargetedPromo,
)

__all__ = [
    # Venues and tiers
    "Venue",
    "VenueTierConfig",
    "VenueStaffRate",
    "Tier",
    # Customers
    "Customer",
    "CustomerIdentifier",
    "IdentifierType",
    # Sales ledger
    "DiscountType",
    "Visit",
    "VisitItem",
    "ProductPreference",
    # Promos
    "WEEKDAYS",
    "FixedDiscount",
    "LoyaltyBonus",
    "Promo",
    "PromoType",
    "PromoUsage",
    "TargetedPromo",
]
