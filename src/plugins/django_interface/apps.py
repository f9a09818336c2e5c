import structlog
from django.apps import AppConfig

logger = structlog.get_logger(__name__)


class DjangoInterfaceConfig(AppConfig):
    name = "plugins.django_interface"
    label = "django_interface"
    verbose_name = "Care consent"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self):
        from django.conf import settings  # noqa: PLC0415

        from care_consent.adapters.config.composition_root import setup_di_container_from_settings  # noqa: PLC0415

        # shared tasks bind to the configured Celery app
        import care_consent_api.celery  # noqa: F401, PLC0415

        setup_di_container_from_settings(settings)
        logger.info("django_interface.ready")
