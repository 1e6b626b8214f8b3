"""Customer model.

Data architecture:
    Customer.qr_code / Customer.email
        Identifier classes stored directly on the customer. qr_code is
        auto-generated at registration (one per customer), email is
        optional and lowercase.

    CustomerIdentifier
        RFID fobs/cards. A customer may own many. Values are unique across
        active identifiers; cross-class uniqueness (RFID vs QR vs email) is
        checked by Gates.identifier_uniqueness before any write.
"""

from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _


class Customer(models.Model):
    """
    Registered loyalty member, shared by all venues.

    Customers are soft-deleted (is_active=False) rather than removed; see
    services.customer.deactivate() for the lifecycle transition.
    """

    home_venue = models.ForeignKey(
        "loyaltyhub.Venue",
        on_delete=models.PROTECT,
        related_name="home_customers",
        verbose_name=_("home venue"),
    )

    name = models.CharField(_("name"), max_length=100)
    email = models.EmailField(_("email"), blank=True, db_index=True)
    phone = models.CharField(_("phone"), max_length=20, blank=True)
    dob = models.DateField(_("date of birth"), null=True, blank=True)

    qr_code = models.CharField(
        _("QR code"),
        max_length=100,
        unique=True,
        null=True,
        blank=True,
        help_text=_("Auto-generated at registration"),
    )

    is_staff = models.BooleanField(
        _("staff"),
        default=False,
        help_text=_("Staff get the visiting venue's staff rates instead of a tier"),
    )
    is_active = models.BooleanField(_("active"), default=True, db_index=True)

    # Audit (updated_at drives incremental sync)
    created_at = models.DateTimeField(_("created at"), auto_now_add=True)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True, db_index=True)

    class Meta:
        verbose_name = _("customer")
        verbose_name_plural = _("customers")
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(
                fields=["email"],
                condition=~Q(email=""),
                name="loyaltyhub_unique_customer_email",
            ),
        ]

    def __str__(self):
        return f"{self.name} (#{self.pk})"

    def save(self, *args, **kwargs):
        if self.email:
            self.email = self.email.lower().strip()
        super().save(*args, **kwargs)
