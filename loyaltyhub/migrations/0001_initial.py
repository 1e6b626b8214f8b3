# Initial schema: venues, tiers, customers, identifiers, visits and promos

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models

import loyaltyhub.models.venue


def percent_field(verbose_name, **kwargs):
    return models.DecimalField(
        decimal_places=2,
        max_digits=5,
        validators=[
            django.core.validators.MinValueValidator(0),
            django.core.validators.MaxValueValidator(100),
        ],
        verbose_name=verbose_name,
        **kwargs,
    )


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Venue",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100, verbose_name="name")),
                ("slug", models.SlugField(unique=True, verbose_name="slug")),
                (
                    "api_key",
                    models.CharField(
                        default=loyaltyhub.models.venue.generate_api_key,
                        max_length=64,
                        unique=True,
                        verbose_name="API key",
                    ),
                ),
                ("address", models.TextField(blank=True, verbose_name="address")),
                ("is_active", models.BooleanField(db_index=True, default=True, verbose_name="active")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
            ],
            options={
                "verbose_name": "venue",
                "verbose_name_plural": "venues",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Tier",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=50, verbose_name="name")),
                ("slug", models.SlugField(unique=True, verbose_name="slug")),
                (
                    "rank",
                    models.PositiveIntegerField(
                        help_text="Higher rank = better tier. The base tier has rank 1.",
                        unique=True,
                        verbose_name="rank",
                    ),
                ),
            ],
            options={
                "verbose_name": "tier",
                "verbose_name_plural": "tiers",
                "ordering": ["rank"],
            },
        ),
        migrations.CreateModel(
            name="VenueTierConfig",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("visits_required", models.PositiveIntegerField(default=0, verbose_name="visits required")),
                ("rolling_window_days", models.PositiveIntegerField(default=28, verbose_name="rolling window (days)")),
                ("wet_discount", percent_field("wet discount %", default=0)),
                ("dry_discount", percent_field("dry discount %", default=0)),
                (
                    "venue",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tier_configs",
                        to="loyaltyhub.venue",
                        verbose_name="venue",
                    ),
                ),
                (
                    "tier",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="venue_configs",
                        to="loyaltyhub.tier",
                        verbose_name="tier",
                    ),
                ),
            ],
            options={
                "verbose_name": "venue tier config",
                "verbose_name_plural": "venue tier configs",
                "constraints": [
                    models.UniqueConstraint(fields=("venue", "tier"), name="loyaltyhub_unique_venue_tier"),
                ],
            },
        ),
        migrations.CreateModel(
            name="VenueStaffRate",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("wet_discount", percent_field("wet discount %", default=0)),
                ("dry_discount", percent_field("dry discount %", default=0)),
                (
                    "venue",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="staff_rate",
                        to="loyaltyhub.venue",
                        verbose_name="venue",
                    ),
                ),
            ],
            options={
                "verbose_name": "venue staff rate",
                "verbose_name_plural": "venue staff rates",
            },
        ),
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100, verbose_name="name")),
                ("email", models.EmailField(blank=True, db_index=True, max_length=254, verbose_name="email")),
                ("phone", models.CharField(blank=True, max_length=20, verbose_name="phone")),
                ("dob", models.DateField(blank=True, null=True, verbose_name="date of birth")),
                (
                    "qr_code",
                    models.CharField(
                        blank=True,
                        help_text="Auto-generated at registration",
                        max_length=100,
                        null=True,
                        unique=True,
                        verbose_name="QR code",
                    ),
                ),
                (
                    "is_staff",
                    models.BooleanField(
                        default=False,
                        help_text="Staff get the visiting venue's staff rates instead of a tier",
                        verbose_name="staff",
                    ),
                ),
                ("is_active", models.BooleanField(db_index=True, default=True, verbose_name="active")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True, verbose_name="updated at")),
                (
                    "home_venue",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="home_customers",
                        to="loyaltyhub.venue",
                        verbose_name="home venue",
                    ),
                ),
            ],
            options={
                "verbose_name": "customer",
                "verbose_name_plural": "customers",
                "ordering": ["name"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("email", ""), _negated=True),
                        fields=("email",),
                        name="loyaltyhub_unique_customer_email",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CustomerIdentifier",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "identifier_type",
                    models.CharField(
                        choices=[("rfid", "RFID")],
                        default="rfid",
                        max_length=10,
                        verbose_name="type",
                    ),
                ),
                ("value", models.CharField(max_length=100, verbose_name="value")),
                (
                    "label",
                    models.CharField(
                        blank=True,
                        help_text="Friendly name (e.g. 'Blue fob', 'Spare card')",
                        max_length=100,
                        verbose_name="label",
                    ),
                ),
                ("is_active", models.BooleanField(db_index=True, default=True, verbose_name="active")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="identifiers",
                        to="loyaltyhub.customer",
                        verbose_name="customer",
                    ),
                ),
                (
                    "source_venue",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="loyaltyhub.venue",
                        verbose_name="issued at",
                    ),
                ),
            ],
            options={
                "verbose_name": "identifier",
                "verbose_name_plural": "identifiers",
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("is_active", True)),
                        fields=("value",),
                        name="loyaltyhub_unique_active_identifier",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Visit",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "ticket_id",
                    models.CharField(
                        blank=True,
                        help_text="POS ticket reference; repeated tickets are not re-recorded",
                        max_length=50,
                        verbose_name="POS ticket",
                    ),
                ),
                ("total_amount", models.DecimalField(decimal_places=2, default=0, max_digits=10, verbose_name="total")),
                ("wet_total", models.DecimalField(decimal_places=2, default=0, max_digits=10, verbose_name="wet total")),
                ("dry_total", models.DecimalField(decimal_places=2, default=0, max_digits=10, verbose_name="dry total")),
                (
                    "discount_amount",
                    models.DecimalField(decimal_places=2, default=0, max_digits=10, verbose_name="discount amount"),
                ),
                (
                    "discount_type",
                    models.CharField(
                        blank=True,
                        choices=[("discount", "Tier discount"), ("promo", "Promo code"), ("staff", "Staff")],
                        max_length=20,
                        verbose_name="discount type",
                    ),
                ),
                ("tier_at_visit", models.CharField(blank=True, max_length=50, verbose_name="tier at visit")),
                ("promo_code", models.CharField(blank=True, max_length=50, verbose_name="promo code")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="visits",
                        to="loyaltyhub.customer",
                        verbose_name="customer",
                    ),
                ),
                (
                    "venue",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="visits",
                        to="loyaltyhub.venue",
                        verbose_name="venue",
                    ),
                ),
            ],
            options={
                "verbose_name": "visit",
                "verbose_name_plural": "visits",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["customer", "created_at"], name="loyaltyhub_visit_cust_dt_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("ticket_id", ""), _negated=True),
                        fields=("venue", "ticket_id"),
                        name="loyaltyhub_unique_venue_ticket",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="VisitItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("product_name", models.CharField(max_length=100, verbose_name="product")),
                ("product_group", models.CharField(blank=True, max_length=100, verbose_name="product group")),
                ("quantity", models.DecimalField(decimal_places=2, default=1, max_digits=10, verbose_name="quantity")),
                ("price", models.DecimalField(decimal_places=2, default=0, max_digits=10, verbose_name="price")),
                ("is_wet", models.BooleanField(default=False, verbose_name="wet")),
                (
                    "visit",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="loyaltyhub.visit",
                        verbose_name="visit",
                    ),
                ),
            ],
            options={
                "verbose_name": "visit item",
                "verbose_name_plural": "visit items",
            },
        ),
        migrations.CreateModel(
            name="ProductPreference",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("product_name", models.CharField(max_length=100, verbose_name="product")),
                ("product_group", models.CharField(blank=True, max_length=100, verbose_name="product group")),
                ("purchase_count", models.PositiveIntegerField(default=0, verbose_name="purchase count")),
                ("last_purchased", models.DateTimeField(blank=True, null=True, verbose_name="last purchased")),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="product_preferences",
                        to="loyaltyhub.customer",
                        verbose_name="customer",
                    ),
                ),
                (
                    "venue",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="+",
                        to="loyaltyhub.venue",
                        verbose_name="venue",
                    ),
                ),
            ],
            options={
                "verbose_name": "product preference",
                "verbose_name_plural": "product preferences",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("customer", "venue", "product_name"),
                        name="loyaltyhub_unique_product_preference",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Promo",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "code",
                    models.CharField(
                        help_text="Stored uppercase; lookups are case-insensitive",
                        max_length=50,
                        unique=True,
                        verbose_name="code",
                    ),
                ),
                ("name", models.CharField(max_length=100, verbose_name="name")),
                ("description", models.TextField(blank=True, verbose_name="description")),
                (
                    "promo_type",
                    models.CharField(
                        choices=[("loyalty_bonus", "Loyalty bonus"), ("promo_code", "Promo code")],
                        default="promo_code",
                        max_length=20,
                        verbose_name="type",
                    ),
                ),
                ("wet_discount", percent_field("wet discount %", blank=True, null=True)),
                ("dry_discount", percent_field("dry discount %", blank=True, null=True)),
                (
                    "bonus_multiplier",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="e.g. 2.00 = double the tier discount",
                        max_digits=4,
                        null=True,
                        verbose_name="bonus multiplier",
                    ),
                ),
                ("bonus_add_wet", percent_field("bonus wet % added", blank=True, null=True)),
                ("bonus_add_dry", percent_field("bonus dry % added", blank=True, null=True)),
                (
                    "min_spend",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=10, null=True, verbose_name="minimum spend"
                    ),
                ),
                ("valid_from", models.DateTimeField(blank=True, null=True, verbose_name="valid from")),
                ("valid_until", models.DateTimeField(blank=True, null=True, verbose_name="valid until")),
                ("time_start", models.TimeField(blank=True, null=True, verbose_name="time start")),
                ("time_end", models.TimeField(blank=True, null=True, verbose_name="time end")),
                (
                    "valid_days",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Weekday abbreviations (Mon..Sun). Empty = every day",
                        verbose_name="valid days",
                    ),
                ),
                ("max_uses", models.PositiveIntegerField(blank=True, null=True, verbose_name="max uses")),
                (
                    "max_uses_per_customer",
                    models.PositiveIntegerField(blank=True, null=True, verbose_name="max uses per customer"),
                ),
                ("requires_membership", models.BooleanField(default=False, verbose_name="requires membership")),
                (
                    "is_public",
                    models.BooleanField(
                        default=True,
                        help_text="Non-public promos are only offered to assigned customers",
                        verbose_name="public",
                    ),
                ),
                ("is_active", models.BooleanField(db_index=True, default=True, verbose_name="active")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                (
                    "venue",
                    models.ForeignKey(
                        blank=True,
                        help_text="Empty = valid at all venues",
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="promos",
                        to="loyaltyhub.venue",
                        verbose_name="venue",
                    ),
                ),
            ],
            options={
                "verbose_name": "promo",
                "verbose_name_plural": "promos",
                "ordering": ["code"],
            },
        ),
        migrations.CreateModel(
            name="TargetedPromo",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("assigned_at", models.DateTimeField(auto_now_add=True, verbose_name="assigned at")),
                ("expires_at", models.DateTimeField(blank=True, null=True, verbose_name="expires at")),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="targeted_promos",
                        to="loyaltyhub.customer",
                        verbose_name="customer",
                    ),
                ),
                (
                    "promo",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="assignments",
                        to="loyaltyhub.promo",
                        verbose_name="promo",
                    ),
                ),
            ],
            options={
                "verbose_name": "targeted promo",
                "verbose_name_plural": "targeted promos",
                "constraints": [
                    models.UniqueConstraint(fields=("customer", "promo"), name="loyaltyhub_unique_customer_promo"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PromoUsage",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "discount_amount",
                    models.DecimalField(decimal_places=2, default=0, max_digits=10, verbose_name="discount amount"),
                ),
                ("used_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="used at")),
                (
                    "promo",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="usages",
                        to="loyaltyhub.promo",
                        verbose_name="promo",
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        help_text="Empty for guest redemptions",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="promo_usages",
                        to="loyaltyhub.customer",
                        verbose_name="customer",
                    ),
                ),
                (
                    "visit",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="promo_usages",
                        to="loyaltyhub.visit",
                        verbose_name="visit",
                    ),
                ),
            ],
            options={
                "verbose_name": "promo usage",
                "verbose_name_plural": "promo usages",
                "indexes": [
                    models.Index(fields=["promo", "customer"], name="loyaltyhub_usage_promo_idx"),
                ],
            },
        ),
    ]
