from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'core'
    verbose_name = 'Studio Marketplace'

    def ready(self):
        # Register rating recalculation receivers
        from . import signals  # noqa: F401
