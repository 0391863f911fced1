"""Draft sales app configuration."""
from django.apps import AppConfig


class DraftsConfig(AppConfig):
    """Configuration for draft sale tabs."""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.drafts'
    verbose_name = 'Draft Sales'
