from rest_framework import serializers

from .models import GeofenceZone


class GeofenceZoneSerializer(serializers.ModelSerializer):
    class Meta:
        model = GeofenceZone
        fields = [
            "id",
            "name",
            "center_lat",
            "center_lng",
            "radius",
            "is_active",
            "created_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
