"""
Django Loyalty Hub - Multi-venue loyalty engine.

Usage:
    from loyaltyhub import LoyaltyHub
    from loyaltyhub.gates import Gates, GateError, GateResult

    result = LoyaltyHub.identify("0004521983", venue_id=venue.pk)
    result.tier, result.wet_discount, result.dry_discount

    validation = LoyaltyHub.validate_promo("SUMMER24", venue_id=venue.pk)

    # Gates validation
    Gates.identifier_uniqueness("0004521983")
    venue = Gates.venue_authentication(api_key)
"""


def __getattr__(name):
    if name == "LoyaltyHub":
        from loyaltyhub.service import LoyaltyHub

        return LoyaltyHub
    if name == "LoyaltyError":
        from loyaltyhub.exceptions import LoyaltyError

        return LoyaltyError
    if name == "Gates":
        from loyaltyhub.gates import Gates

        return Gates
    if name == "GateError":
        from loyaltyhub.gates import GateError

        return GateError
    if name == "GateResult":
        from loyaltyhub.gates import GateResult

        return GateResult
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["LoyaltyHub", "LoyaltyError", "Gates", "GateError", "GateResult"]
__version__ = "0.1.0"
