from datetime import date

from django.utils import timezone
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from account.permissions import IsCourier, IsReviewer, IsStaffOrReviewer
from core.exceptions import DeliveryError, ValidationError, error_response

from .serializers import AttendanceRecordSerializer
from .services import check_in, check_out, records_between, review, today_record


def _parse_date(raw, default):
    if not raw:
        return default
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise ValidationError(f"Invalid date: {raw}")


class CheckInView(APIView):
    permission_classes = [IsCourier]

    def post(self, request):
        try:
            record = check_in(request.user, request.data.get("lat"), request.data.get("lng"))
        except DeliveryError as exc:
            return error_response(exc)
        return Response(AttendanceRecordSerializer(record).data, status=status.HTTP_201_CREATED)


class CheckOutView(APIView):
    permission_classes = [IsCourier]

    def post(self, request):
        try:
            record = check_out(request.user, request.data.get("lat"), request.data.get("lng"))
        except DeliveryError as exc:
            return error_response(exc)
        return Response(AttendanceRecordSerializer(record).data, status=status.HTTP_200_OK)


class TodayAttendanceView(APIView):
    permission_classes = [IsCourier]

    def get(self, request):
        record = today_record(request.user)
        return Response({"record": AttendanceRecordSerializer(record).data if record else None})


class AttendanceListView(APIView):
    permission_classes = [IsStaffOrReviewer]

    def get(self, request):
        today = timezone.localdate()
        try:
            start = _parse_date(request.query_params.get("start"), today)
            end = _parse_date(request.query_params.get("end"), start)
            records = records_between(start, end)
        except DeliveryError as exc:
            return error_response(exc)
        return Response(AttendanceRecordSerializer(records, many=True).data)


class AttendanceReviewView(APIView):
    permission_classes = [IsReviewer]

    def put(self, request, pk):
        try:
            record = review(
                pk,
                request.user,
                request.data.get("status"),
                note=request.data.get("notes"),
            )
        except DeliveryError as exc:
            return error_response(exc)
        return Response(AttendanceRecordSerializer(record).data, status=status.HTTP_200_OK)
