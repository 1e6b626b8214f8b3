"""Venue models - point-of-sale locations and their per-venue rates."""

import secrets

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

PERCENT_VALIDATORS = [MinValueValidator(0), MaxValueValidator(100)]


def generate_api_key() -> str:
    """Opaque per-venue credential presented by the POS terminal."""
    return secrets.token_hex(32)


class Venue(models.Model):
    """
    Hospitality venue ("hotel") sharing the central customer base.

    Each venue owns its tier configs and exactly one staff rate row.
    """

    name = models.CharField(_("name"), max_length=100)
    slug = models.SlugField(_("slug"), max_length=50, unique=True)
    api_key = models.CharField(
        _("API key"),
        max_length=64,
        unique=True,
        default=generate_api_key,
    )
    address = models.TextField(_("address"), blank=True)
    is_active = models.BooleanField(_("active"), default=True, db_index=True)

    created_at = models.DateTimeField(_("created at"), auto_now_add=True)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    class Meta:
        verbose_name = _("venue")
        verbose_name_plural = _("venues")
        ordering = ["name"]

    def __str__(self):
        return self.name


class VenueTierConfig(models.Model):
    """Per-venue threshold and wet/dry rates for one global tier."""

    venue = models.ForeignKey(
        Venue,
        on_delete=models.CASCADE,
        related_name="tier_configs",
        verbose_name=_("venue"),
    )
    tier = models.ForeignKey(
        "loyaltyhub.Tier",
        on_delete=models.CASCADE,
        related_name="venue_configs",
        verbose_name=_("tier"),
    )
    visits_required = models.PositiveIntegerField(_("visits required"), default=0)
    rolling_window_days = models.PositiveIntegerField(
        _("rolling window (days)"), default=28
    )
    wet_discount = models.DecimalField(
        _("wet discount %"),
        max_digits=5,
        decimal_places=2,
        default=0,
        validators=PERCENT_VALIDATORS,
    )
    dry_discount = models.DecimalField(
        _("dry discount %"),
        max_digits=5,
        decimal_places=2,
        default=0,
        validators=PERCENT_VALIDATORS,
    )

    class Meta:
        verbose_name = _("venue tier config")
        verbose_name_plural = _("venue tier configs")
        constraints = [
            models.UniqueConstraint(
                fields=["venue", "tier"],
                name="loyaltyhub_unique_venue_tier",
            ),
        ]

    def __str__(self):
        return (
            f"{self.venue} / {self.tier.name}: {self.visits_required} visits, "
            f"{self.wet_discount}% wet, {self.dry_discount}% dry"
        )


class VenueStaffRate(models.Model):
    """Staff wet/dry rates for a venue (one per venue)."""

    venue = models.OneToOneField(
        Venue,
        on_delete=models.CASCADE,
        related_name="staff_rate",
        verbose_name=_("venue"),
    )
    wet_discount = models.DecimalField(
        _("wet discount %"),
        max_digits=5,
        decimal_places=2,
        default=0,
        validators=PERCENT_VALIDATORS,
    )
    dry_discount = models.DecimalField(
        _("dry discount %"),
        max_digits=5,
        decimal_places=2,
        default=0,
        validators=PERCENT_VALIDATORS,
    )

    class Meta:
        verbose_name = _("venue staff rate")
        verbose_name_plural = _("venue staff rates")

    def __str__(self):
        return f"{self.venue} staff: {self.wet_discount}% wet, {self.dry_discount}% dry"
