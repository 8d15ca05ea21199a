from django.apps import AppConfig


class ProgressReportsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'progress_reports'
    verbose_name = 'Student Progress Reports'

    def ready(self):
        from . import signals  # noqa: F401
        from .services import registry

        registry.configure()
