from django.apps import AppConfig


class FiscalAppConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "fiscal"
    label = "fiscal"
    verbose_name = "Fiscal Receipts"

    def ready(self):
        from fiscal.runtime import build_fiscal_service

        # One service per process; its in-flight set is the duplicate-emission guard.
        self.service = build_fiscal_service()
