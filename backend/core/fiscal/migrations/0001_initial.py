# Generated manually. Keep in sync with fiscal/models.py.

import django.core.serializers.json
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="FiscalAuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("order_id", models.CharField(blank=True, db_index=True, max_length=64)),
                ("action", models.CharField(choices=[("emit", "Emit"), ("retry", "Retry"), ("void", "Void")], max_length=20)),
                ("provider", models.CharField(max_length=60)),
                ("external_id", models.CharField(blank=True, max_length=200)),
                ("request_data", models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ("response_data", models.JSONField(blank=True, encoder=django.core.serializers.json.DjangoJSONEncoder, null=True)),
                ("status", models.CharField(choices=[("success", "Success"), ("error", "Error")], db_index=True, max_length=20)),
                ("error_message", models.TextField(blank=True)),
                ("error_code", models.CharField(blank=True, max_length=60)),
                ("processing_time_ms", models.PositiveIntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name": "Fiscal Audit Log",
                "verbose_name_plural": "Fiscal Audit Logs",
                "ordering": ("-created_at", "-id"),
                "indexes": [models.Index(fields=["order_id", "action"], name="idx_fiscal_audit_order_action")],
            },
        ),
    ]
