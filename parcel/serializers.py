from rest_framework import serializers

from account.serializers import UserSummarySerializer

from .models import BarcodeScanLog, Package, PackageStatusHistory


class PackageSerializer(serializers.ModelSerializer):
    assigned_kurir = UserSummarySerializer(read_only=True)

    class Meta:
        model = Package
        fields = [
            "id",
            "package_id",
            "barcode",
            "status",
            "assigned_kurir",
            "created_by",
            "recipient_name",
            "recipient_phone",
            "recipient_address",
            "sender_name",
            "sender_phone",
            "pickup_address",
            "weight",
            "dimensions",
            "declared_value",
            "priority",
            "notes",
            "created_at",
            "updated_at",
            "delivered_at",
        ]
        read_only_fields = fields


class PackageStatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = PackageStatusHistory
        fields = ["id", "from_status", "to_status", "changed_by", "location", "notes", "timestamp"]
        read_only_fields = fields


class BarcodeScanLogSerializer(serializers.ModelSerializer):
    package_id = serializers.CharField(source="package.package_id", read_only=True)

    class Meta:
        model = BarcodeScanLog
        fields = ["id", "package_id", "scanned_by", "scan_type", "location", "is_manual", "timestamp"]
        read_only_fields = fields
