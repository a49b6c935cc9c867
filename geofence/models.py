from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class GeofenceZone(models.Model):
    name = models.CharField(max_length=120)
    center_lat = models.DecimalField(
        max_digits=10,
        decimal_places=8,
        validators=[MinValueValidator(Decimal("-90")), MaxValueValidator(Decimal("90"))],
    )
    center_lng = models.DecimalField(
        max_digits=11,
        decimal_places=8,
        validators=[MinValueValidator(Decimal("-180")), MaxValueValidator(Decimal("180"))],
    )
    radius = models.PositiveIntegerField(
        help_text="Radius in meters",
        validators=[
            MinValueValidator(settings.GEOFENCE_MIN_RADIUS_M),
            MaxValueValidator(settings.GEOFENCE_MAX_RADIUS_M),
        ],
    )
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="geofence_zones",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [models.Index(fields=["is_active"], name="geofence_zone_active_idx")]

    def __str__(self):
        return f"{self.name} ({self.radius}m)"
