from django.apps import AppConfig


class TrackingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "domains.tracking"
    label = "tracking"

    def ready(self):
        # 어댑터 레지스트리 등록
        from . import adapters  # noqa: F401
