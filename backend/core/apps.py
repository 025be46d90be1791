from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'backend.core'
    verbose_name = 'Users and authentication'

    def ready(self):
        """Connect the receivers that drop cached roles and garages"""
        import backend.core.cache_signals  # noqa: F401
