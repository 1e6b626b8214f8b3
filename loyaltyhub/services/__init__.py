"""Loyalty Hub services.

One module per component:
- identifiers: resolve scanned values, add/deactivate RFIDs, QR generation
- visits: cross-venue visit counting
- tiers: tier and rate resolution
- promos: promo validation, application and usage ledger
- transactions: sale recording
- customer: registration, deactivation, sync
"""

from loyaltyhub.services import identifiers
from loyaltyhub.services import visits
from loyaltyhub.services import tiers
from loyaltyhub.services import promos
from loyaltyhub.services import transactions
from loyaltyhub.services import customer

__all__ = ["identifiers", "visits", "tiers", "promos", "transactions", "customer"]
