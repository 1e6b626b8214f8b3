"""Tests for promo validation, application and redemption."""

from datetime import time, timedelta
from decimal import Decimal

import pytest

from loyaltyhub.models import Promo, PromoType, PromoUsage, TargetedPromo
from loyaltyhub.services import promos as promo_service
from loyaltyhub.signals import promo_redeemed


pytestmark = pytest.mark.django_db


def make_promo(code, **kwargs):
    defaults = {
        "name": code.title(),
        "promo_type": PromoType.PROMO_CODE,
        "wet_discount": Decimal("10"),
        "dry_discount": Decimal("10"),
    }
    defaults.update(kwargs)
    return Promo.objects.create(code=code, **defaults)


def make_bonus(code, **kwargs):
    defaults = {
        "name": code.title(),
        "promo_type": PromoType.LOYALTY_BONUS,
        "requires_membership": True,
        "wet_discount": None,
        "dry_discount": None,
    }
    defaults.update(kwargs)
    return make_promo(code, **defaults)


# ═══════════════════════════════════════════════════════════════════
# Validation
# ═══════════════════════════════════════════════════════════════════


class TestValidate:
    """Restriction checks, first failure wins."""

    def test_valid(self, promo_summer, customer, venue_home, now):
        result = promo_service.validate("SUMMER", customer.pk, venue_home.pk, now=now)

        assert result.valid
        assert result.promo.code == "SUMMER"
        assert result.promo.wet_discount == Decimal("20")
        assert result.error_code is None

    def test_code_case_insensitive(self, promo_summer, venue_home, now):
        result = promo_service.validate(" summer ", None, venue_home.pk, now=now)
        assert result.valid
        assert result.code == "SUMMER"

    def test_not_found(self, venue_home, now):
        result = promo_service.validate("NOPE", None, venue_home.pk, now=now)
        assert not result.valid
        assert result.error_code == "PROMO_NOT_FOUND"

    def test_inactive(self, venue_home, now):
        make_promo("OLD", is_active=False)
        result = promo_service.validate("OLD", None, venue_home.pk, now=now)
        assert result.error_code == "PROMO_INACTIVE"

    def test_wrong_venue(self, venue_home, venue_visit, now):
        make_promo("LOCAL", venue=venue_visit)

        assert promo_service.validate("LOCAL", None, venue_visit.pk, now=now).valid
        result = promo_service.validate("LOCAL", None, venue_home.pk, now=now)
        assert result.error_code == "PROMO_WRONG_VENUE"
        assert result.message == "This promo is not valid at this location"

    def test_not_started(self, venue_home, now):
        make_promo("SOON", valid_from=now + timedelta(days=1))
        result = promo_service.validate("SOON", None, venue_home.pk, now=now)
        assert result.error_code == "PROMO_NOT_STARTED"

    def test_expired(self, venue_home, now):
        make_promo("GONE", valid_until=now - timedelta(seconds=1))
        result = promo_service.validate("GONE", None, venue_home.pk, now=now)
        assert result.error_code == "PROMO_EXPIRED"

    def test_first_failure_wins(self, venue_home, venue_visit, now):
        """Inactive AND wrong venue AND expired: inactive is reported."""
        make_promo(
            "MANY",
            is_active=False,
            venue=venue_visit,
            valid_until=now - timedelta(days=1),
        )
        result = promo_service.validate("MANY", None, venue_home.pk, now=now)
        assert result.error_code == "PROMO_INACTIVE"

    def test_membership_required(self, customer, venue_home, now):
        make_promo("MEMBERS", requires_membership=True)

        result = promo_service.validate("MEMBERS", None, venue_home.pk, now=now)
        assert result.error_code == "PROMO_MEMBERSHIP_REQUIRED"
        assert promo_service.validate("MEMBERS", customer.pk, venue_home.pk, now=now).valid

    def test_min_spend(self, venue_home, now):
        make_promo("BIGSPEND", min_spend=Decimal("20"))

        result = promo_service.validate(
            "BIGSPEND", None, venue_home.pk, total_amount="19.99", now=now
        )
        assert result.error_code == "PROMO_MIN_SPEND"
        assert result.message == "Minimum spend of £20.00 required"

        assert promo_service.validate(
            "BIGSPEND", None, venue_home.pk, total_amount=Decimal("20"), now=now
        ).valid

    def test_min_spend_skipped_without_total(self, venue_home, now):
        make_promo("BIGSPEND", min_spend=Decimal("20"))
        assert promo_service.validate("BIGSPEND", None, venue_home.pk, now=now).valid


class TestTimeAndDay:
    """Time-of-day window and weekday restrictions (now = Wed 19:30)."""

    @pytest.mark.parametrize(
        "start, end, valid",
        [
            (time(17, 0), time(19, 30), True),   # end inclusive
            (time(19, 30), time(23, 0), True),   # start inclusive
            (time(17, 0), time(19, 29), False),
            (time(20, 0), None, False),          # only start
            (time(19, 0), None, True),
            (None, time(19, 0), False),          # only end
            (None, time(22, 0), True),
            (time(22, 0), time(2, 0), False),    # start after end matches nothing
        ],
    )
    def test_time_window(self, venue_home, now, start, end, valid):
        make_promo("HAPPY", time_start=start, time_end=end)
        result = promo_service.validate("HAPPY", None, venue_home.pk, now=now)
        assert result.valid is valid
        if not valid:
            assert result.error_code == "PROMO_WRONG_TIME"

    def test_start_after_end_at_midnight_side(self, venue_home, now):
        """The window is never read as wrapping past midnight."""
        promo = make_promo("LATE", time_start=time(22, 0), time_end=time(2, 0))
        one_am = now.replace(hour=1, minute=0)
        assert promo_service.time_allows(promo, one_am) is False

    def test_valid_day(self, venue_home, now):
        make_promo("MIDWEEK", valid_days=["Tue", "Wed", "Thu"])
        assert promo_service.validate("MIDWEEK", None, venue_home.pk, now=now).valid

    def test_wrong_day(self, venue_home, now):
        make_promo("WEEKEND", valid_days=["Sat", "Sun"])
        result = promo_service.validate("WEEKEND", None, venue_home.pk, now=now)
        assert result.error_code == "PROMO_WRONG_DAY"

    def test_empty_days_means_every_day(self, venue_home, now):
        make_promo("ANYDAY", valid_days=[])
        assert promo_service.validate("ANYDAY", None, venue_home.pk, now=now).valid


class TestUsageLimits:
    """Limits are derived from the usage ledger."""

    def test_global_limit_boundary(self, customer, customer_b, venue_home, now):
        promo = make_promo("ONCE", max_uses=1)

        assert promo_service.validate("ONCE", customer.pk, venue_home.pk, now=now).valid

        PromoUsage.objects.create(promo=promo, customer=customer)

        result = promo_service.validate("ONCE", customer_b.pk, venue_home.pk, now=now)
        assert result.error_code == "PROMO_USAGE_LIMIT"

    def test_zero_max_uses_is_unlimited(self, customer, venue_home, now):
        promo = make_promo("FREE", max_uses=0)
        PromoUsage.objects.create(promo=promo, customer=customer)
        assert promo_service.validate("FREE", customer.pk, venue_home.pk, now=now).valid

    def test_per_customer_limit(self, customer, customer_b, venue_home, now):
        promo = make_promo("ONEEACH", max_uses_per_customer=1)
        PromoUsage.objects.create(promo=promo, customer=customer)

        result = promo_service.validate("ONEEACH", customer.pk, venue_home.pk, now=now)
        assert result.error_code == "PROMO_USAGE_LIMIT"
        assert promo_service.validate("ONEEACH", customer_b.pk, venue_home.pk, now=now).valid

    def test_per_customer_limit_skipped_for_guests(self, customer, venue_home, now):
        promo = make_promo("ONEEACH", max_uses_per_customer=1)
        PromoUsage.objects.create(promo=promo, customer=None)
        PromoUsage.objects.create(promo=promo, customer=None)
        assert promo_service.validate("ONEEACH", None, venue_home.pk, now=now).valid

    def test_apply_after_recorded_usage(self, customer, venue_home, now):
        """A redemption recorded through the service exhausts a single-use code."""
        make_promo("ONCE", max_uses=1)

        assert promo_service.apply("ONCE", customer.pk, venue_home.pk, now=now).success
        assert promo_service.record_usage("ONCE", customer.pk, None) is True

        result = promo_service.apply("ONCE", customer.pk, venue_home.pk, now=now)
        assert not result.success
        assert result.error_code == "PROMO_INVALID"
        assert result.reason == "PROMO_USAGE_LIMIT"


# ═══════════════════════════════════════════════════════════════════
# Application
# ═══════════════════════════════════════════════════════════════════


class TestApply:
    """Final discount from a promo and the caller's base rates."""

    def test_promo_code_replaces_tier_discount(self, promo_summer, customer, venue_home, now):
        result = promo_service.apply(
            "SUMMER", customer.pk, venue_home.pk, base_wet=10, base_dry=10, now=now
        )

        assert result.success
        assert result.discount_type == "promo"
        assert (result.wet_discount, result.dry_discount) == (Decimal("20"), Decimal("15"))
        assert result.promo_name == "Summer Special"

    def test_smaller_promo_still_replaces(self, customer, venue_home, now):
        make_promo("SMALL", wet_discount=Decimal("5"), dry_discount=Decimal("0"))

        result = promo_service.apply(
            "SMALL", customer.pk, venue_home.pk, base_wet=10, base_dry=10, now=now
        )

        assert (result.wet_discount, result.dry_discount) == (Decimal("5"), Decimal("0"))

    def test_multiplier_bonus(self, bonus_double, customer, venue_home, now):
        result = promo_service.apply(
            "DOUBLE", customer.pk, venue_home.pk, base_wet=10, base_dry=5, now=now
        )

        assert result.success
        assert result.discount_type == "discount"
        assert (result.wet_discount, result.dry_discount) == (Decimal("20"), Decimal("10"))

    def test_additive_bonus_beats_multiplier(self, customer, venue_home, now):
        make_bonus(
            "PLUS",
            bonus_multiplier=Decimal("3"),
            bonus_add_wet=Decimal("5"),
            bonus_add_dry=Decimal("10"),
        )

        result = promo_service.apply(
            "PLUS", customer.pk, venue_home.pk, base_wet=10, base_dry=10, now=now
        )

        assert (result.wet_discount, result.dry_discount) == (Decimal("15"), Decimal("20"))

    def test_bonus_capped_at_100(self, customer, venue_home, now):
        make_bonus("TRIPLE", bonus_multiplier=Decimal("3"))

        result = promo_service.apply(
            "TRIPLE", customer.pk, venue_home.pk, base_wet=40, base_dry="20", now=now
        )

        assert (result.wet_discount, result.dry_discount) == (Decimal("100"), Decimal("60"))

    def test_bonus_needs_base_discount(self, bonus_double, customer, venue_home, now):
        result = promo_service.apply("DOUBLE", customer.pk, venue_home.pk, now=now)
        assert not result.success
        assert result.error_code == "NO_BASE_DISCOUNT"

    def test_bonus_refused_for_guest(self, bonus_double, venue_home, now):
        result = promo_service.apply(
            "DOUBLE", None, venue_home.pk, base_wet=10, base_dry=10, now=now
        )
        assert result.error_code == "PROMO_INVALID"
        assert result.reason == "PROMO_MEMBERSHIP_REQUIRED"

    def test_invalid_code(self, venue_home, now):
        result = promo_service.apply("NOPE", None, venue_home.pk, now=now)
        assert not result.success
        assert result.error_code == "PROMO_INVALID"
        assert result.reason == "PROMO_NOT_FOUND"

    @pytest.mark.parametrize("code", [123, None, "  "])
    def test_non_string_code(self, promo_summer, venue_home, now, code):
        assert promo_service.get_by_code(code) is None
        result = promo_service.validate(code, None, venue_home.pk, now=now)
        assert result.error_code == "PROMO_NOT_FOUND"


# ═══════════════════════════════════════════════════════════════════
# Listing and best bonus
# ═══════════════════════════════════════════════════════════════════


class TestListAvailable:
    def test_general_promo_codes_only(self, promo_summer, bonus_double, customer, venue_home, now):
        codes = [p.code for p in promo_service.list_available(customer.pk, venue_home.pk, now=now)]
        assert codes == ["SUMMER"]

    def test_invalid_promos_excluded(self, promo_summer, venue_home, venue_visit, now):
        make_promo("ELSEWHERE", venue=venue_visit)
        make_promo("WEEKEND", valid_days=["Sat"])
        make_promo("MEMBERS", requires_membership=True)

        codes = [p.code for p in promo_service.list_available(None, venue_home.pk, now=now)]
        assert codes == ["SUMMER"]

    def test_targeted_promo(self, customer, customer_b, venue_home, now):
        promo = make_promo("VIP", is_public=False)
        TargetedPromo.objects.create(customer=customer, promo=promo)

        mine = promo_service.list_available(customer.pk, venue_home.pk, now=now)
        theirs = promo_service.list_available(customer_b.pk, venue_home.pk, now=now)

        assert [(p.code, p.targeted) for p in mine] == [("VIP", True)]
        assert theirs == []

    def test_expired_assignment(self, customer, venue_home, now):
        promo = make_promo("VIP", is_public=False)
        TargetedPromo.objects.create(
            customer=customer, promo=promo, expires_at=now - timedelta(minutes=1)
        )
        assert promo_service.list_available(customer.pk, venue_home.pk, now=now) == []

    def test_assigned_general_promo_listed_once(self, promo_summer, customer, venue_home, now):
        TargetedPromo.objects.create(customer=customer, promo=promo_summer)

        listed = promo_service.list_available(customer.pk, venue_home.pk, now=now)

        assert [(p.code, p.targeted) for p in listed] == [("SUMMER", False)]

    def test_repeatable(self, promo_summer, customer, venue_home, now):
        first = promo_service.list_available(customer.pk, venue_home.pk, now=now)
        second = promo_service.list_available(customer.pk, venue_home.pk, now=now)
        assert first == second


class TestBestCustomerBonus:
    def test_highest_sum_wins(self, bonus_double, customer, venue_home, now):
        make_bonus("PLUS5", bonus_add_wet=Decimal("5"), bonus_add_dry=Decimal("5"))

        best = promo_service.best_customer_bonus(customer.pk, venue_home.pk, 10, 5, now=now)

        # DOUBLE: 20 + 10 = 30 beats PLUS5: 15 + 10 = 25
        assert best.promo.code == "DOUBLE"
        assert (best.wet_discount, best.dry_discount) == (Decimal("20"), Decimal("10"))

    def test_tie_goes_to_first(self, bonus_double, customer, venue_home, now):
        make_bonus("TWICE", bonus_multiplier=Decimal("2"))
        best = promo_service.best_customer_bonus(customer.pk, venue_home.pk, 10, 10, now=now)
        assert best.promo.code == "DOUBLE"

    def test_targeted_bonus_considered(self, customer, venue_home, now):
        promo = make_bonus("MYBONUS", bonus_multiplier=Decimal("1.5"), is_public=False)
        TargetedPromo.objects.create(customer=customer, promo=promo)

        best = promo_service.best_customer_bonus(customer.pk, venue_home.pk, 10, 10, now=now)

        assert best.promo.code == "MYBONUS"
        assert best.promo.targeted

    def test_none_for_guest(self, bonus_double, venue_home, now):
        assert promo_service.best_customer_bonus(None, venue_home.pk, 10, 10, now=now) is None

    def test_none_without_base(self, bonus_double, customer, venue_home, now):
        assert promo_service.best_customer_bonus(customer.pk, venue_home.pk, 0, 0, now=now) is None

    def test_invalid_bonus_skipped(self, customer, venue_home, now):
        make_bonus("WEEKEND", bonus_multiplier=Decimal("3"), valid_days=["Sat"])
        assert promo_service.best_customer_bonus(customer.pk, venue_home.pk, 10, 10, now=now) is None


class TestRecordUsage:
    def test_records_and_signals(self, promo_summer, customer):
        received = []

        def handler(sender, usage, **kwargs):
            received.append(usage)

        promo_redeemed.connect(handler)
        try:
            assert promo_service.record_usage("summer", customer.pk, None, "3.50") is True
        finally:
            promo_redeemed.disconnect(handler)

        usage = PromoUsage.objects.get(promo=promo_summer)
        assert usage.customer == customer
        assert usage.discount_amount == Decimal("3.50")
        assert received == [usage]

    def test_unknown_code(self, customer):
        assert promo_service.record_usage("NOPE", customer.pk, None) is False
        assert PromoUsage.objects.count() == 0
