"""Customer service - registration, lifecycle and POS sync.

All write operations that touch >1 record use transaction.atomic().
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime

from django.db import IntegrityError, transaction
from django.db.models import Prefetch
from django.utils import timezone

from loyaltyhub.conf import loyaltyhub_settings
from loyaltyhub.exceptions import LoyaltyError
from loyaltyhub.gates import Gates
from loyaltyhub.models import Customer, CustomerIdentifier, IdentifierType, Venue
from loyaltyhub.services import identifiers as identifier_service
from loyaltyhub.services import tiers as tier_service
from loyaltyhub.signals import customer_deactivated, customer_registered

logger = logging.getLogger(__name__)


@dataclass
class Registration:
    """Result of a successful registration."""

    customer_id: int
    qr_code: str
    name: str
    home_venue: str
    tier: str


@dataclass
class SyncResult:
    """Customers changed since a cursor, plus the next cursor."""

    customers: list[dict] = field(default_factory=list)
    count: int = 0
    sync_time: datetime | None = None


def get(customer_id: int) -> Customer | None:
    """Get active customer by id."""
    try:
        return Customer.objects.select_related("home_venue").get(
            pk=customer_id, is_active=True
        )
    except Customer.DoesNotExist:
        return None


def get_active_venue(venue_id: int) -> Venue:
    """
    Venue the call is made from.

    Raises:
        LoyaltyError: VENUE_NOT_FOUND or VENUE_INACTIVE
    """
    venue = Venue.objects.filter(pk=venue_id).first()
    if venue is None:
        raise LoyaltyError("VENUE_NOT_FOUND", venue_id=venue_id)
    if not venue.is_active:
        raise LoyaltyError("VENUE_INACTIVE", venue_id=venue_id)
    return venue


def register(
    venue_id: int,
    name: str,
    email: str = "",
    phone: str = "",
    dob: date | None = None,
    rfid: str = "",
) -> Registration:
    """
    Register a customer whose home venue is the calling venue.

    Duplicate checks run up front for a friendly error; the unique
    constraints on email, QR code and active identifiers are what actually
    prevent concurrent duplicates.

    Raises:
        LoyaltyError: INVALID_REQUEST, VENUE_NOT_FOUND, VENUE_INACTIVE,
            DUPLICATE_EMAIL, DUPLICATE_RFID, DUPLICATE_IDENTIFIER,
            QR_GENERATION_FAILED
    """
    name = (name or "").strip()
    if not name:
        raise LoyaltyError("INVALID_REQUEST", message="Name is required")

    venue = get_active_venue(venue_id)
    email = (email or "").lower().strip()
    rfid = (rfid or "").strip()

    if email:
        if Customer.objects.filter(email=email).exists():
            raise LoyaltyError("DUPLICATE_EMAIL")
        if not Gates.check_identifier_uniqueness(email):
            raise LoyaltyError("DUPLICATE_IDENTIFIER", source="email")

    if rfid and not Gates.check_identifier_uniqueness(rfid):
        raise LoyaltyError("DUPLICATE_RFID")

    for _ in range(loyaltyhub_settings.QR_CODE_MAX_ATTEMPTS):
        qr_code = identifier_service.generate_qr_code()
        try:
            with transaction.atomic():
                customer = Customer.objects.create(
                    home_venue=venue,
                    name=name,
                    email=email,
                    phone=(phone or "").strip(),
                    dob=dob,
                    qr_code=qr_code,
                )
                if rfid:
                    CustomerIdentifier.objects.create(
                        customer=customer,
                        identifier_type=IdentifierType.RFID,
                        value=rfid,
                        source_venue=venue,
                    )
            break
        except IntegrityError:
            if Customer.objects.filter(qr_code=qr_code).exists():
                logger.warning("QR code %s taken concurrently, retrying", qr_code)
                continue
            if email and Customer.objects.filter(email=email).exists():
                raise LoyaltyError("DUPLICATE_EMAIL")
            if rfid and CustomerIdentifier.objects.filter(value=rfid, is_active=True).exists():
                raise LoyaltyError("DUPLICATE_RFID")
            raise
    else:
        raise LoyaltyError(
            "QR_GENERATION_FAILED",
            attempts=loyaltyhub_settings.QR_CODE_MAX_ATTEMPTS,
        )

    logger.info("Customer %s registered at venue %s", customer.pk, venue.pk)
    customer_registered.send(sender=Customer, customer=customer, venue=venue)

    return Registration(
        customer_id=customer.pk,
        qr_code=qr_code,
        name=customer.name,
        home_venue=venue.name,
        tier=tier_service.member_tier().name,
    )


def deactivate(customer_id: int) -> Customer:
    """
    Soft-delete a customer and deactivate all of their identifiers.

    Idempotent for already inactive customers.

    Raises:
        LoyaltyError: CUSTOMER_NOT_FOUND
    """
    with transaction.atomic():
        customer = Customer.objects.select_for_update().filter(pk=customer_id).first()
        if customer is None:
            raise LoyaltyError("CUSTOMER_NOT_FOUND", customer_id=customer_id)

        was_active = customer.is_active
        customer.is_active = False
        customer.save(update_fields=["is_active", "updated_at"])
        CustomerIdentifier.objects.filter(customer=customer, is_active=True).update(
            is_active=False
        )

    if was_active:
        logger.info("Customer %s deactivated", customer.pk)
        customer_deactivated.send(sender=Customer, customer=customer)
    return customer


def sync(
    venue_id: int,
    updated_since: datetime | None = None,
    now: datetime | None = None,
) -> SyncResult:
    """
    Active customers changed after updated_since, for POS offline caches.

    sync_time is taken before querying so rows written during the sync are
    picked up by the next call.
    """
    sync_time = now or timezone.now()

    qs = Customer.objects.filter(is_active=True).prefetch_related(
        Prefetch(
            "identifiers",
            queryset=CustomerIdentifier.objects.filter(is_active=True).order_by("pk"),
            to_attr="active_identifiers",
        )
    )
    if updated_since:
        qs = qs.filter(updated_at__gt=updated_since)

    customers = [
        {
            "id": cust.pk,
            "name": cust.name,
            "rfid_codes": [ident.value for ident in cust.active_identifiers],
            "qr_code": cust.qr_code,
            "email": cust.email,
            "is_staff": cust.is_staff,
            "home_venue_id": cust.home_venue_id,
            "updated_at": cust.updated_at,
        }
        for cust in qs.order_by("pk")
    ]

    logger.debug("Sync for venue %s: %s customers", venue_id, len(customers))
    return SyncResult(customers=customers, count=len(customers), sync_time=sync_time)
