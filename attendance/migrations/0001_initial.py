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
            name="AttendanceRecord",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("date", models.DateField()),
                ("check_in_time", models.DateTimeField(blank=True, null=True)),
                ("check_out_time", models.DateTimeField(blank=True, null=True)),
                ("check_in_lat", models.DecimalField(blank=True, decimal_places=8, max_digits=10, null=True)),
                ("check_in_lng", models.DecimalField(blank=True, decimal_places=8, max_digits=11, null=True)),
                ("check_out_lat", models.DecimalField(blank=True, decimal_places=8, max_digits=10, null=True)),
                ("check_out_lng", models.DecimalField(blank=True, decimal_places=8, max_digits=11, null=True)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("present", "Present"), ("approved", "Approved"), ("rejected", "Rejected"), ("absent", "Absent")], default="pending", max_length=20)),
                ("reviewed_at", models.DateTimeField(blank=True, null=True)),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("approved_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="reviewed_attendance", to=settings.AUTH_USER_MODEL)),
                ("kurir", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="attendance_records", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-date", "kurir"],
                "indexes": [models.Index(fields=["date", "status"], name="attendance_date_status_idx")],
                "constraints": [
                    models.UniqueConstraint(fields=("kurir", "date"), name="attendance_one_record_per_day"),
                    models.CheckConstraint(condition=models.Q(("check_out_time__isnull", True), ("check_in_time__isnull", False), _connector="OR"), name="attendance_checkout_requires_checkin"),
                ],
            },
        ),
    ]
