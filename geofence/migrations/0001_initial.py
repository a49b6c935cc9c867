from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.core.validators
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="GeofenceZone",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=120)),
                ("center_lat", models.DecimalField(decimal_places=8, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal("-90")), django.core.validators.MaxValueValidator(Decimal("90"))])),
                ("center_lng", models.DecimalField(decimal_places=8, max_digits=11, validators=[django.core.validators.MinValueValidator(Decimal("-180")), django.core.validators.MaxValueValidator(Decimal("180"))])),
                ("radius", models.PositiveIntegerField(help_text="Radius in meters", validators=[django.core.validators.MinValueValidator(10), django.core.validators.MaxValueValidator(5000)])),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="geofence_zones", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["name"],
                "indexes": [models.Index(fields=["is_active"], name="geofence_zone_active_idx")],
            },
        ),
    ]
