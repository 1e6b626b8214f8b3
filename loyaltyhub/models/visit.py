"""Visit models - append-only sales ledger and product preference counters."""

from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _


class DiscountType(models.TextChoices):
    """Discount classification, used downstream for accounting segregation."""

    DISCOUNT = "discount", _("Tier discount")
    PROMO = "promo", _("Promo code")
    STAFF = "staff", _("Staff")


class Visit(models.Model):
    """
    Immutable record of a completed sale.

    Each row counts as one visit for tier resolution, across all venues.
    Rows are append-only: never modified or deleted.
    """

    customer = models.ForeignKey(
        "loyaltyhub.Customer",
        on_delete=models.PROTECT,
        related_name="visits",
        verbose_name=_("customer"),
    )
    venue = models.ForeignKey(
        "loyaltyhub.Venue",
        on_delete=models.PROTECT,
        related_name="visits",
        verbose_name=_("venue"),
    )
    ticket_id = models.CharField(
        _("POS ticket"),
        max_length=50,
        blank=True,
        help_text=_("POS ticket reference; repeated tickets are not re-recorded"),
    )

    total_amount = models.DecimalField(_("total"), max_digits=10, decimal_places=2, default=0)
    wet_total = models.DecimalField(_("wet total"), max_digits=10, decimal_places=2, default=0)
    dry_total = models.DecimalField(_("dry total"), max_digits=10, decimal_places=2, default=0)
    discount_amount = models.DecimalField(
        _("discount amount"), max_digits=10, decimal_places=2, default=0
    )
    discount_type = models.CharField(
        _("discount type"),
        max_length=20,
        choices=DiscountType.choices,
        blank=True,
    )
    tier_at_visit = models.CharField(_("tier at visit"), max_length=50, blank=True)
    promo_code = models.CharField(_("promo code"), max_length=50, blank=True)

    created_at = models.DateTimeField(_("created at"), auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = _("visit")
        verbose_name_plural = _("visits")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["customer", "created_at"], name="loyaltyhub_visit_cust_dt_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["venue", "ticket_id"],
                condition=~Q(ticket_id=""),
                name="loyaltyhub_unique_venue_ticket",
            ),
        ]

    def __str__(self):
        return f"Visit #{self.pk}: {self.customer_id} @ {self.venue_id} ({self.total_amount})"


class VisitItem(models.Model):
    """Line item of a recorded sale."""

    visit = models.ForeignKey(
        Visit,
        on_delete=models.CASCADE,
        related_name="items",
        verbose_name=_("visit"),
    )
    product_name = models.CharField(_("product"), max_length=100)
    product_group = models.CharField(_("product group"), max_length=100, blank=True)
    quantity = models.DecimalField(_("quantity"), max_digits=10, decimal_places=2, default=1)
    price = models.DecimalField(_("price"), max_digits=10, decimal_places=2, default=0)
    is_wet = models.BooleanField(_("wet"), default=False)

    class Meta:
        verbose_name = _("visit item")
        verbose_name_plural = _("visit items")

    def __str__(self):
        return f"{self.quantity} x {self.product_name}"


class ProductPreference(models.Model):
    """Running purchase counter per (customer, venue, product)."""

    customer = models.ForeignKey(
        "loyaltyhub.Customer",
        on_delete=models.CASCADE,
        related_name="product_preferences",
        verbose_name=_("customer"),
    )
    venue = models.ForeignKey(
        "loyaltyhub.Venue",
        on_delete=models.CASCADE,
        related_name="+",
        verbose_name=_("venue"),
    )
    product_name = models.CharField(_("product"), max_length=100)
    product_group = models.CharField(_("product group"), max_length=100, blank=True)
    purchase_count = models.PositiveIntegerField(_("purchase count"), default=0)
    last_purchased = models.DateTimeField(_("last purchased"), null=True, blank=True)

    class Meta:
        verbose_name = _("product preference")
        verbose_name_plural = _("product preferences")
        constraints = [
            models.UniqueConstraint(
                fields=["customer", "venue", "product_name"],
                name="loyaltyhub_unique_product_preference",
            ),
        ]

    def __str__(self):
        return f"{self.customer_id} @ {self.venue_id}: {self.product_name} x{self.purchase_count}"
