from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from account.permissions import IsStaffRole
from core.exceptions import DeliveryError, error_response

from .models import GeofenceZone
from .serializers import GeofenceZoneSerializer
from .services import (
    ZONE_FIELDS,
    create_zone,
    delete_zone,
    is_within_any_active_zone,
    nearest_zone,
    parse_coordinates,
    update_zone,
)


def _zone_payload(data):
    return {key: data.get(key) for key in ZONE_FIELDS if key in data}


class GeofenceZoneListCreateView(APIView):
    def get_permissions(self):
        if self.request.method == "POST":
            return [IsStaffRole()]
        return [permissions.IsAuthenticated()]

    def get(self, request):
        zones = GeofenceZone.objects.all()
        if request.user.is_staff_role:
            if request.query_params.get("active") in {"1", "true"}:
                zones = zones.filter(is_active=True)
        else:
            zones = zones.filter(is_active=True)
        return Response(GeofenceZoneSerializer(zones, many=True).data)

    def post(self, request):
        try:
            zone = create_zone(created_by=request.user, **_zone_payload(request.data))
        except DeliveryError as exc:
            return error_response(exc)
        return Response(GeofenceZoneSerializer(zone).data, status=status.HTTP_201_CREATED)


class GeofenceZoneDetailView(APIView):
    permission_classes = [IsStaffRole]

    def get(self, request, pk):
        zone = GeofenceZone.objects.filter(pk=pk).first()
        if not zone:
            return Response({"detail": "Geofence zone not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(GeofenceZoneSerializer(zone).data)

    def put(self, request, pk):
        return self._update(request, pk, partial=False)

    def patch(self, request, pk):
        return self._update(request, pk, partial=True)

    def delete(self, request, pk):
        try:
            delete_zone(pk)
        except DeliveryError as exc:
            return error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)

    def _update(self, request, pk, partial):
        try:
            zone = update_zone(pk, partial=partial, **_zone_payload(request.data))
        except DeliveryError as exc:
            return error_response(exc)
        return Response(GeofenceZoneSerializer(zone).data)


class GeofenceValidateView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        try:
            lat, lng = parse_coordinates(request.data.get("lat"), request.data.get("lng"))
        except DeliveryError as exc:
            return error_response(exc)

        nearest = nearest_zone(lat, lng)
        return Response(
            {
                "within": is_within_any_active_zone(lat, lng),
                "nearest_zone": GeofenceZoneSerializer(nearest.zone).data if nearest else None,
                "distance": round(nearest.distance, 2) if nearest else None,
            },
            status=status.HTTP_200_OK,
        )
