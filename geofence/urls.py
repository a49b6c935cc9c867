from django.urls import path

from .views import GeofenceValidateView, GeofenceZoneDetailView, GeofenceZoneListCreateView


urlpatterns = [
    path("", GeofenceZoneListCreateView.as_view(), name="geofence-list"),
    path("validate/", GeofenceValidateView.as_view(), name="geofence-validate"),
    path("<int:pk>/", GeofenceZoneDetailView.as_view(), name="geofence-detail"),
]
