"""Promo models - promo codes, loyalty bonuses, targeting and redemptions.

A Promo row stores one of two payload shapes, selected by ``promo_type``:

    loyalty_bonus -> LoyaltyBonus(multiplier, add_wet, add_dry)
        Boosts the member's tier discount. Additive fields win over the
        multiplier when either is non-zero. Never changes discount_type.

    promo_code -> FixedDiscount(wet, dry)
        Fixed percentages that replace any tier discount (discount_type="promo").

Use ``Promo.terms`` to get the typed payload instead of reading the nullable
columns directly.
"""

from dataclasses import dataclass
from decimal import Decimal

from django.db import models
from django.utils.translation import gettext_lazy as _

from loyaltyhub.models.venue import PERCENT_VALIDATORS

WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


class PromoType(models.TextChoices):
    LOYALTY_BONUS = "loyalty_bonus", _("Loyalty bonus")
    PROMO_CODE = "promo_code", _("Promo code")


@dataclass(frozen=True)
class LoyaltyBonus:
    """Boost applied on top of a tier discount."""

    multiplier: Decimal = Decimal("1")
    add_wet: Decimal = Decimal("0")
    add_dry: Decimal = Decimal("0")

    @property
    def is_additive(self) -> bool:
        return self.add_wet != 0 or self.add_dry != 0


@dataclass(frozen=True)
class FixedDiscount:
    """Fixed percentages replacing the tier discount."""

    wet: Decimal = Decimal("0")
    dry: Decimal = Decimal("0")


class Promo(models.Model):
    """
    Promotional code or loyalty bonus.

    Restrictions (all optional): venue scoping, date range, time-of-day
    window, weekdays, minimum spend, global and per-customer usage limits,
    membership requirement.
    """

    code = models.CharField(
        _("code"),
        max_length=50,
        unique=True,
        help_text=_("Stored uppercase; lookups are case-insensitive"),
    )
    name = models.CharField(_("name"), max_length=100)
    description = models.TextField(_("description"), blank=True)
    promo_type = models.CharField(
        _("type"),
        max_length=20,
        choices=PromoType.choices,
        default=PromoType.PROMO_CODE,
    )
    venue = models.ForeignKey(
        "loyaltyhub.Venue",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="promos",
        verbose_name=_("venue"),
        help_text=_("Empty = valid at all venues"),
    )

    # promo_code payload
    wet_discount = models.DecimalField(
        _("wet discount %"),
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=PERCENT_VALIDATORS,
    )
    dry_discount = models.DecimalField(
        _("dry discount %"),
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=PERCENT_VALIDATORS,
    )

    # loyalty_bonus payload
    bonus_multiplier = models.DecimalField(
        _("bonus multiplier"),
        max_digits=4,
        decimal_places=2,
        null=True,
        blank=True,
        help_text=_("e.g. 2.00 = double the tier discount"),
    )
    bonus_add_wet = models.DecimalField(
        _("bonus wet % added"),
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=PERCENT_VALIDATORS,
    )
    bonus_add_dry = models.DecimalField(
        _("bonus dry % added"),
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=PERCENT_VALIDATORS,
    )

    # Restrictions
    min_spend = models.DecimalField(
        _("minimum spend"), max_digits=10, decimal_places=2, null=True, blank=True
    )
    valid_from = models.DateTimeField(_("valid from"), null=True, blank=True)
    valid_until = models.DateTimeField(_("valid until"), null=True, blank=True)
    time_start = models.TimeField(_("time start"), null=True, blank=True)
    time_end = models.TimeField(_("time end"), null=True, blank=True)
    valid_days = models.JSONField(
        _("valid days"),
        default=list,
        blank=True,
        help_text=_("Weekday abbreviations (Mon..Sun). Empty = every day"),
    )
    max_uses = models.PositiveIntegerField(_("max uses"), null=True, blank=True)
    max_uses_per_customer = models.PositiveIntegerField(
        _("max uses per customer"), null=True, blank=True
    )
    requires_membership = models.BooleanField(_("requires membership"), default=False)
    is_public = models.BooleanField(
        _("public"),
        default=True,
        help_text=_("Non-public promos are only offered to assigned customers"),
    )
    is_active = models.BooleanField(_("active"), default=True, db_index=True)

    created_at = models.DateTimeField(_("created at"), auto_now_add=True)

    class Meta:
        verbose_name = _("promo")
        verbose_name_plural = _("promos")
        ordering = ["code"]

    def __str__(self):
        return f"{self.code} ({self.get_promo_type_display()})"

    @property
    def terms(self) -> LoyaltyBonus | FixedDiscount:
        """Typed discount payload for this promo's type."""
        if self.promo_type == PromoType.LOYALTY_BONUS:
            return LoyaltyBonus(
                multiplier=Decimal(self.bonus_multiplier or 1),
                add_wet=Decimal(self.bonus_add_wet or 0),
                add_dry=Decimal(self.bonus_add_dry or 0),
            )
        return FixedDiscount(
            wet=Decimal(self.wet_discount or 0),
            dry=Decimal(self.dry_discount or 0),
        )

    @property
    def valid_day_set(self) -> set[str]:
        return {str(day).strip().title()[:3] for day in self.valid_days or []}

    def save(self, *args, **kwargs):
        from loyaltyhub.gates import Gates

        self.code = self.code.strip().upper()
        Gates.promo_configuration(self)
        super().save(*args, **kwargs)


class TargetedPromo(models.Model):
    """Assignment of a promo to a specific customer, optionally expiring."""

    customer = models.ForeignKey(
        "loyaltyhub.Customer",
        on_delete=models.CASCADE,
        related_name="targeted_promos",
        verbose_name=_("customer"),
    )
    promo = models.ForeignKey(
        Promo,
        on_delete=models.CASCADE,
        related_name="assignments",
        verbose_name=_("promo"),
    )
    assigned_at = models.DateTimeField(_("assigned at"), auto_now_add=True)
    expires_at = models.DateTimeField(_("expires at"), null=True, blank=True)

    class Meta:
        verbose_name = _("targeted promo")
        verbose_name_plural = _("targeted promos")
        constraints = [
            models.UniqueConstraint(
                fields=["customer", "promo"],
                name="loyaltyhub_unique_customer_promo",
            ),
        ]

    def __str__(self):
        return f"{self.promo.code} -> {self.customer_id}"


class PromoUsage(models.Model):
    """
    Append-only redemption ledger.

    Usage limits are always derived by counting these rows; no counter is
    cached on Promo.
    """

    promo = models.ForeignKey(
        Promo,
        on_delete=models.PROTECT,
        related_name="usages",
        verbose_name=_("promo"),
    )
    customer = models.ForeignKey(
        "loyaltyhub.Customer",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="promo_usages",
        verbose_name=_("customer"),
        help_text=_("Empty for guest redemptions"),
    )
    visit = models.ForeignKey(
        "loyaltyhub.Visit",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="promo_usages",
        verbose_name=_("visit"),
    )
    discount_amount = models.DecimalField(
        _("discount amount"), max_digits=10, decimal_places=2, default=0
    )
    used_at = models.DateTimeField(_("used at"), auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = _("promo usage")
        verbose_name_plural = _("promo usages")
        indexes = [
            models.Index(fields=["promo", "customer"], name="loyaltyhub_usage_promo_idx"),
        ]

    def __str__(self):
        return f"{self.promo.code} used by {self.customer_id or 'guest'}"
