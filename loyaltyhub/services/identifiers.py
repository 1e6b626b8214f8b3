"""Identifier resolution and management.

Resolution order (first hit wins): active RFID identifiers, customer QR
codes, customer emails. Only active customers are returned.
"""

import logging
import secrets
import string

from django.db import IntegrityError, transaction

from loyaltyhub.conf import loyaltyhub_settings
from loyaltyhub.exceptions import LoyaltyError
from loyaltyhub.gates import GateError, Gates
from loyaltyhub.models import Customer, CustomerIdentifier, IdentifierType

logger = logging.getLogger(__name__)

QR_ALPHABET = string.ascii_uppercase + string.digits


def resolve(raw_identifier: str) -> Customer | None:
    """
    Map a scanned or typed value to an active customer.

    Args:
        raw_identifier: RFID code, QR code or email

    Returns:
        Customer or None if nothing matches
    """
    value = (raw_identifier or "").strip()
    if not value:
        return None

    ident = (
        CustomerIdentifier.objects.select_related("customer__home_venue")
        .filter(
            identifier_type=IdentifierType.RFID,
            value=value,
            is_active=True,
            customer__is_active=True,
        )
        .first()
    )
    if ident:
        return ident.customer

    active = Customer.objects.select_related("home_venue").filter(is_active=True)

    customer = active.filter(qr_code=value).first()
    if customer:
        return customer

    return active.filter(email=value.lower()).first()


def get_identifiers(customer_id: int, only_active: bool = True) -> list[CustomerIdentifier]:
    """List a customer's RFID identifiers."""
    qs = CustomerIdentifier.objects.filter(customer_id=customer_id)
    if only_active:
        qs = qs.filter(is_active=True)
    return list(qs.order_by("created_at"))


def add_identifier(
    customer_id: int,
    value: str,
    label: str = "",
    venue_id: int | None = None,
) -> CustomerIdentifier:
    """
    Attach an RFID identifier to an active customer.

    The customer's updated_at is bumped so the next sync carries the new value.

    Raises:
        LoyaltyError: CUSTOMER_NOT_FOUND, DUPLICATE_IDENTIFIER or INVALID_REQUEST
    """
    value = (value or "").strip()
    if not value:
        raise LoyaltyError("INVALID_REQUEST", message="Identifier value is required")

    customer = Customer.objects.filter(pk=customer_id, is_active=True).first()
    if customer is None:
        raise LoyaltyError("CUSTOMER_NOT_FOUND", customer_id=customer_id)

    try:
        Gates.identifier_uniqueness(value)
    except GateError as exc:
        raise LoyaltyError(
            "DUPLICATE_IDENTIFIER", source=exc.details.get("source")
        ) from exc

    try:
        with transaction.atomic():
            ident = CustomerIdentifier.objects.create(
                customer=customer,
                identifier_type=IdentifierType.RFID,
                value=value,
                label=label,
                source_venue_id=venue_id,
            )
            customer.save(update_fields=["updated_at"])
    except IntegrityError as exc:
        # Lost the race against a concurrent registration of the same value
        raise LoyaltyError("DUPLICATE_IDENTIFIER", source="rfid") from exc

    logger.info("Identifier %s added to customer %s", ident.pk, customer.pk)
    return ident


def deactivate_identifier(customer_id: int, value: str) -> bool:
    """Deactivate a lost/replaced RFID. Returns False if nothing matched."""
    with transaction.atomic():
        updated = CustomerIdentifier.objects.filter(
            customer_id=customer_id, value=value.strip(), is_active=True
        ).update(is_active=False)
        if updated:
            Customer.objects.get(pk=customer_id).save(update_fields=["updated_at"])
    return bool(updated)


def generate_qr_code() -> str:
    """
    Random QR value not used by any identifier class.

    Persistence is still confirmed by the caller (the unique constraint on
    Customer.qr_code); this only avoids known collisions up front.

    Raises:
        LoyaltyError: QR_GENERATION_FAILED after QR_CODE_MAX_ATTEMPTS collisions
    """
    attempts = loyaltyhub_settings.QR_CODE_MAX_ATTEMPTS
    for _ in range(attempts):
        code = loyaltyhub_settings.QR_CODE_PREFIX + "".join(
            secrets.choice(QR_ALPHABET)
            for _ in range(loyaltyhub_settings.QR_CODE_LENGTH)
        )
        if Gates.check_identifier_uniqueness(code):
            return code
        logger.warning("QR code collision on %s, regenerating", code)

    raise LoyaltyError("QR_GENERATION_FAILED", attempts=attempts)
