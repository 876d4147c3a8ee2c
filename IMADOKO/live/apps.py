from django.apps import AppConfig

class LiveConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'live'

    def ready(self):
        # Carga señales al iniciar la app
        from . import signals  # noqa: F401
