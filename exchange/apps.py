from django.apps import AppConfig


class ExchangeConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'exchange'
    verbose_name = 'Clothing Exchange'

    def ready(self):
        # Connect signal receivers
        from . import signals  # noqa: F401
