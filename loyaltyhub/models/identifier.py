"""CustomerIdentifier model - scannable RFID fobs and cards."""

from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _


class IdentifierType(models.TextChoices):
    """Identifier classes stored in this table (QR and email live on Customer)."""

    RFID = "rfid", _("RFID")


class CustomerIdentifier(models.Model):
    """
    RFID identifier owned by a customer.

    QR and email identifiers live on Customer itself; this table only holds
    RFID values. A value is unique among active identifiers, so a lost fob
    can be deactivated and its value re-issued.
    """

    customer = models.ForeignKey(
        "loyaltyhub.Customer",
        on_delete=models.CASCADE,
        related_name="identifiers",
        verbose_name=_("customer"),
    )
    identifier_type = models.CharField(
        _("type"),
        max_length=10,
        choices=IdentifierType.choices,
        default=IdentifierType.RFID,
    )
    value = models.CharField(_("value"), max_length=100)
    label = models.CharField(
        _("label"),
        max_length=100,
        blank=True,
        help_text=_("Friendly name (e.g. 'Blue fob', 'Spare card')"),
    )
    is_active = models.BooleanField(_("active"), default=True, db_index=True)

    created_at = models.DateTimeField(_("created at"), auto_now_add=True)
    source_venue = models.ForeignKey(
        "loyaltyhub.Venue",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        verbose_name=_("issued at"),
    )

    class Meta:
        verbose_name = _("identifier")
        verbose_name_plural = _("identifiers")
        constraints = [
            models.UniqueConstraint(
                fields=["value"],
                condition=Q(is_active=True),
                name="loyaltyhub_unique_active_identifier",
            ),
        ]

    def __str__(self):
        return f"{self.get_identifier_type_display()}: {self.value}"

    def save(self, *args, **kwargs):
        self.value = self.value.strip()
        super().save(*args, **kwargs)
