"""
Loyalty Hub signals - public event API.

Emitted signals:
- customer_registered: Emitted by services.customer.register()
- customer_deactivated: Emitted by services.customer.deactivate()
- transaction_recorded: Emitted by services.transactions.record()
- promo_redeemed: Emitted by services.promos.record_usage()
"""

from django.dispatch import Signal

customer_registered = Signal()  # sender=Customer, customer, venue
customer_deactivated = Signal()  # sender=Customer, customer
transaction_recorded = Signal()  # sender=Visit, visit
promo_redeemed = Signal()  # sender=PromoUsage, usage
