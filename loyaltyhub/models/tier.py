"""Tier model - global ranked loyalty catalog."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class Tier(models.Model):
    """
    Global loyalty tier (Member, Loyalty, Regular...).

    Tiers are shared by name across all venues; each venue sets its own
    thresholds and rates through VenueTierConfig. ``rank`` totally orders
    the catalog: higher rank = better tier. Comparisons always use rank,
    never the name.
    """

    name = models.CharField(_("name"), max_length=50)
    slug = models.SlugField(_("slug"), max_length=50, unique=True)
    rank = models.PositiveIntegerField(
        _("rank"),
        unique=True,
        help_text=_("Higher rank = better tier. The base tier has rank 1."),
    )

    class Meta:
        verbose_name = _("tier")
        verbose_name_plural = _("tiers")
        ordering = ["rank"]

    def __str__(self):
        return f"{self.name} (rank {self.rank})"
