"""Loyalty Hub exceptions."""


class LoyaltyError(Exception):
    """
    Structured exception for loyalty operations.

    Carries a stable ``code`` the caller can branch on, a human-readable
    ``message`` and any extra context as ``data``.

    Usage:
        try:
            customer_service.register(venue_id, name="Jane", email="jane@example.com")
        except LoyaltyError as e:
            if e.code == "DUPLICATE_EMAIL":
                show_conflict(e.message)
    """

    _default_messages = {
        "VENUE_NOT_FOUND": "Venue not found",
        "VENUE_INACTIVE": "Venue is not active",
        "CUSTOMER_NOT_FOUND": "Customer not found",
        "DUPLICATE_EMAIL": "A customer with this email already exists",
        "DUPLICATE_RFID": "This RFID code is already registered",
        "DUPLICATE_IDENTIFIER": "This identifier is already in use",
        "QR_GENERATION_FAILED": "Could not generate a unique QR code",
        "TRANSACTION_FAILED": "Failed to record transaction",
        "PROMO_USAGE_LIMIT": "This promo has reached its usage limit",
        "INVALID_REQUEST": "Invalid request",
    }

    def __init__(self, code: str, message: str | None = None, **data):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(f"[{code}] {self.message}")

    def as_dict(self) -> dict:
        """Serializable form for API responses."""
        payload = {"error": self.code, "message": self.message}
        if self.data:
            payload["details"] = self.data
        return payload
