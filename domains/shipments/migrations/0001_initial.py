import uuid

from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Shipment",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("tracking_number", models.CharField(blank=True, max_length=64)),
                ("carrier_tracking_number", models.CharField(blank=True, max_length=64, null=True)),
                ("manual_tracking_number", models.CharField(blank=True, max_length=64, null=True)),
                ("afs_barkod", models.CharField(blank=True, max_length=64, null=True)),
                ("carrier_name", models.CharField(blank=True, max_length=40)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("approved", "Approved"),
                            ("rejected", "Rejected"),
                            ("cancelled", "Cancelled"),
                            ("in_transit", "In Transit"),
                            ("delivered", "Delivered"),
                        ],
                        default="pending",
                        max_length=24,
                    ),
                ),
                ("tracking_info", models.JSONField(blank=True, null=True)),
                ("tracking_closed", models.BooleanField(default=False)),
                ("last_tracked_at", models.DateTimeField(blank=True, null=True)),
                ("customs_notified_at", models.DateTimeField(blank=True, null=True)),
                ("carrier_label_pdf", models.TextField(blank=True)),
                ("carrier_label_url", models.URLField(blank=True, max_length=500)),
                ("version", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["status", "tracking_closed"], name="shipments_status_closed_idx"),
                    models.Index(fields=["carrier_tracking_number"], name="shipments_carrier_tn_idx"),
                ],
            },
        ),
    ]
