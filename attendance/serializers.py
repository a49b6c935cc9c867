from rest_framework import serializers

from account.serializers import UserSummarySerializer

from .models import AttendanceRecord


class AttendanceRecordSerializer(serializers.ModelSerializer):
    kurir = UserSummarySerializer(read_only=True)

    class Meta:
        model = AttendanceRecord
        fields = [
            "id",
            "kurir",
            "date",
            "check_in_time",
            "check_out_time",
            "check_in_lat",
            "check_in_lng",
            "check_out_lat",
            "check_out_lng",
            "status",
            "approved_by",
            "reviewed_at",
            "notes",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
