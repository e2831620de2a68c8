# Generated manually. Keep in sync with orders/models.py.

import uuid

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("preparing", "Preparing"), ("ready", "Ready"), ("delivered", "Delivered"), ("cancelled", "Cancelled")], db_index=True, default="pending", max_length=20)),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(0)])),
                ("payment_method", models.CharField(choices=[("cash", "Cash"), ("card", "Card"), ("digital", "Digital")], default="cash", max_length=20)),
                ("fiscal_status", models.CharField(choices=[("pending", "Pending"), ("success", "Success"), ("error", "Error")], db_index=True, default="pending", max_length=20)),
                ("fiscal_external_id", models.CharField(blank=True, max_length=200)),
                ("fiscal_retry_count", models.PositiveIntegerField(default=0)),
                ("pdf_url", models.URLField(blank=True, max_length=500)),
                ("notes", models.TextField(blank=True)),
                ("order_type", models.CharField(blank=True, choices=[("eat_in", "Eat in"), ("take_away", "Take away"), ("delivery", "Delivery")], max_length=20)),
                ("customer_name", models.CharField(blank=True, max_length=255)),
                ("customer_phone", models.CharField(blank=True, max_length=40)),
                ("delivery_address", models.TextField(blank=True)),
                ("table_number", models.CharField(blank=True, max_length=20)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Order",
                "verbose_name_plural": "Orders",
                "ordering": ("-created_at",),
                "indexes": [models.Index(fields=["fiscal_status", "created_at"], name="idx_order_fiscal_status")],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("product_id", models.CharField(max_length=64)),
                ("product_name", models.CharField(max_length=255)),
                ("category", models.CharField(blank=True, max_length=120)),
                ("quantity", models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("total_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("vat_rate", models.PositiveSmallIntegerField(default=22)),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="items", to="orders.order")),
            ],
            options={
                "verbose_name": "Order Item",
                "verbose_name_plural": "Order Items",
                "ordering": ("id",),
            },
        ),
    ]
