from django.contrib import admin

from .models import GeofenceZone


@admin.register(GeofenceZone)
class GeofenceZoneAdmin(admin.ModelAdmin):
    list_display = ("name", "center_lat", "center_lng", "radius", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("name",)
