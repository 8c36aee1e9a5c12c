"""Django app configuration for Bondman."""

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class BondmanConfig(AppConfig):
    """Configuration for Bondman app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "bondman"
    verbose_name = _("Bonded Inventory")
