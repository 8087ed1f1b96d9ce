from django.apps import AppConfig


class RenovationRequestsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "renovation_requests"
