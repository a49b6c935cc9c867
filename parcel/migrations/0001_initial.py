from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Package",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("package_id", models.CharField(max_length=40, unique=True)),
                ("barcode", models.CharField(max_length=60, unique=True)),
                ("status", models.CharField(choices=[("created", "Created"), ("assigned", "Assigned"), ("picked_up", "Picked Up"), ("in_transit", "In Transit"), ("delivered", "Delivered"), ("failed", "Failed")], default="created", max_length=20)),
                ("recipient_name", models.CharField(max_length=150)),
                ("recipient_phone", models.CharField(max_length=30)),
                ("recipient_address", models.TextField()),
                ("sender_name", models.CharField(blank=True, max_length=150)),
                ("sender_phone", models.CharField(blank=True, max_length=30)),
                ("pickup_address", models.TextField(blank=True)),
                ("weight", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("dimensions", models.CharField(blank=True, max_length=100)),
                ("declared_value", models.PositiveIntegerField(default=0)),
                ("priority", models.CharField(choices=[("normal", "Normal"), ("high", "High"), ("urgent", "Urgent")], default="normal", max_length=10)),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("delivered_at", models.DateTimeField(blank=True, null=True)),
                ("assigned_kurir", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="assigned_packages", to=settings.AUTH_USER_MODEL)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="created_packages", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status"], name="parcel_pkg_status_idx"),
                    models.Index(fields=["assigned_kurir", "status"], name="parcel_pkg_kurir_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("assigned_kurir__isnull", True), ("status", "created")),
                            models.Q(models.Q(("status", "created"), _negated=True), ("assigned_kurir__isnull", False)),
                            _connector="OR",
                        ),
                        name="parcel_pkg_assignee_matches_status",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PackageStatusHistory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("from_status", models.CharField(blank=True, choices=[("created", "Created"), ("assigned", "Assigned"), ("picked_up", "Picked Up"), ("in_transit", "In Transit"), ("delivered", "Delivered"), ("failed", "Failed")], max_length=20)),
                ("to_status", models.CharField(choices=[("created", "Created"), ("assigned", "Assigned"), ("picked_up", "Picked Up"), ("in_transit", "In Transit"), ("delivered", "Delivered"), ("failed", "Failed")], max_length=20)),
                ("location", models.JSONField(blank=True, null=True)),
                ("notes", models.TextField(blank=True)),
                ("timestamp", models.DateTimeField()),
                ("changed_by", models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="package_status_changes", to=settings.AUTH_USER_MODEL)),
                ("package", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="status_history", to="parcel.package")),
            ],
            options={
                "verbose_name_plural": "package status history",
                "ordering": ["timestamp", "id"],
            },
        ),
        migrations.CreateModel(
            name="BarcodeScanLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("scan_type", models.CharField(choices=[("pickup", "Pickup"), ("delivery", "Delivery")], max_length=20)),
                ("location", models.JSONField(blank=True, null=True)),
                ("is_manual", models.BooleanField(default=False)),
                ("timestamp", models.DateTimeField()),
                ("package", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="scan_logs", to="parcel.package")),
                ("scanned_by", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="barcode_scans", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-timestamp", "-id"],
                "indexes": [models.Index(fields=["package", "timestamp"], name="parcel_scan_pkg_ts_idx")],
            },
        ),
    ]
