import uuid

from django.contrib.auth import get_user_model
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from account.permissions import IsCourier, IsStaffRole
from core.exceptions import DeliveryError, NotFoundError, ValidationError, error_response

from .models import Package
from .selectors import dashboard_metrics, history_for, list_packages, packages_for_courier
from .serializers import BarcodeScanLogSerializer, PackageSerializer, PackageStatusHistorySerializer
from .services import (
    assign_explicit,
    claim,
    create_package,
    depart,
    fail_package,
    get_package,
    list_available,
    manual_delivery,
    manual_pickup,
    recent_scans,
    scan,
)
from .services.registry import DESCRIPTIVE_FIELDS

User = get_user_model()


def _limit(request, default=None):
    raw = request.query_params.get("limit")
    if not raw:
        return default
    try:
        return max(1, int(raw))
    except ValueError:
        return default


def _resolve_courier(raw_id):
    if not raw_id:
        raise ValidationError("kurirId is required")
    try:
        kurir_id = uuid.UUID(str(raw_id))
    except ValueError:
        raise ValidationError("kurirId must be a valid id")
    kurir = User.objects.filter(pk=kurir_id).first()
    if not kurir:
        raise NotFoundError("Courier not found")
    return kurir


class PackageListCreateView(APIView):
    def get_permissions(self):
        if self.request.method == "POST":
            return [IsStaffRole()]
        return [permissions.IsAuthenticated()]

    def get(self, request):
        if request.user.is_courier:
            packages = packages_for_courier(request.user)
        else:
            packages = list_packages(limit=_limit(request, default=50))
        return Response(PackageSerializer(packages, many=True).data)

    def post(self, request):
        fields = {key: request.data.get(key) for key in DESCRIPTIVE_FIELDS if key in request.data}
        try:
            package = create_package(created_by=request.user, **fields)
        except DeliveryError as exc:
            return error_response(exc)
        return Response(PackageSerializer(package).data, status=status.HTTP_201_CREATED)


class AvailablePackagesView(APIView):
    permission_classes = [IsCourier]

    def get(self, request):
        return Response(PackageSerializer(list_available(), many=True).data)


class PackageDetailView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, pk):
        try:
            package = get_package(pk)
        except DeliveryError as exc:
            return error_response(exc)
        if (
            request.user.is_courier
            and package.status != Package.Status.CREATED
            and package.assigned_kurir_id != request.user.id
        ):
            return Response({"detail": "Access denied"}, status=status.HTTP_403_FORBIDDEN)
        return Response(PackageSerializer(package).data)


class PackageHistoryView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, pk):
        try:
            package = get_package(pk)
        except DeliveryError as exc:
            return error_response(exc)
        if request.user.is_courier and package.assigned_kurir_id != request.user.id:
            return Response({"detail": "Access denied"}, status=status.HTTP_403_FORBIDDEN)
        return Response(PackageStatusHistorySerializer(history_for(package), many=True).data)


class TakePackageView(APIView):
    permission_classes = [IsCourier]

    def post(self, request, pk):
        try:
            package = claim(pk, request.user)
        except DeliveryError as exc:
            return error_response(exc)
        return Response(PackageSerializer(package).data, status=status.HTTP_200_OK)


class AssignPackageView(APIView):
    permission_classes = [IsStaffRole]

    def put(self, request, pk):
        try:
            kurir = _resolve_courier(request.data.get("kurirId") or request.data.get("kurir_id"))
            package = assign_explicit(pk, kurir, request.user)
        except DeliveryError as exc:
            return error_response(exc)
        return Response(PackageSerializer(package).data, status=status.HTTP_200_OK)


class ManualPickupView(APIView):
    permission_classes = [IsCourier]

    def post(self, request, pk):
        try:
            package = manual_pickup(
                pk,
                request.user,
                note=request.data.get("notes", ""),
                location=request.data.get("location"),
            )
        except DeliveryError as exc:
            return error_response(exc)
        return Response(PackageSerializer(package).data, status=status.HTTP_200_OK)


class DepartPackageView(APIView):
    permission_classes = [IsCourier]

    def post(self, request, pk):
        try:
            package = depart(pk, request.user, location=request.data.get("location"))
        except DeliveryError as exc:
            return error_response(exc)
        return Response(PackageSerializer(package).data, status=status.HTTP_200_OK)


class ManualDeliveryView(APIView):
    permission_classes = [IsCourier]

    def post(self, request, pk):
        try:
            package = manual_delivery(
                pk,
                request.user,
                note=request.data.get("notes", ""),
                location=request.data.get("location"),
            )
        except DeliveryError as exc:
            return error_response(exc)
        return Response(PackageSerializer(package).data, status=status.HTTP_200_OK)


class FailPackageView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, pk):
        try:
            package = fail_package(pk, request.user, note=request.data.get("notes", ""))
        except DeliveryError as exc:
            return error_response(exc)
        return Response(PackageSerializer(package).data, status=status.HTTP_200_OK)


class BarcodeScanView(APIView):
    permission_classes = [IsCourier]

    def post(self, request):
        try:
            package = scan(
                request.data.get("barcode"),
                request.user,
                request.data.get("scanType") or request.data.get("scan_type"),
                location=request.data.get("location"),
            )
        except DeliveryError as exc:
            return error_response(exc)
        return Response(
            {"message": "Scan successful", "package": PackageSerializer(package).data},
            status=status.HTTP_200_OK,
        )


class RecentScansView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        scanned_by = request.user if request.user.is_courier else None
        scans = recent_scans(limit=_limit(request, default=10), scanned_by=scanned_by)
        return Response(BarcodeScanLogSerializer(scans, many=True).data)


class DashboardMetricsView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        return Response(dashboard_metrics())
