from django.apps import AppConfig


class LoyaltyHubConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "loyaltyhub"
    verbose_name = "Loyalty Hub - Multi-venue Loyalty"
