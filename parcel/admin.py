from django.contrib import admin

from .models import BarcodeScanLog, Package, PackageStatusHistory


class PackageStatusHistoryInline(admin.TabularInline):
    model = PackageStatusHistory
    extra = 0
    can_delete = False
    readonly_fields = ("from_status", "to_status", "changed_by", "location", "notes", "timestamp")

    def has_add_permission(self, request, obj=None):
        return False


class BarcodeScanLogInline(admin.TabularInline):
    model = BarcodeScanLog
    extra = 0
    can_delete = False
    readonly_fields = ("scanned_by", "scan_type", "location", "is_manual", "timestamp")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Package)
class PackageAdmin(admin.ModelAdmin):
    list_display = ("package_id", "recipient_name", "status", "assigned_kurir", "priority", "updated_at")
    list_filter = ("status", "priority")
    search_fields = ("package_id", "barcode", "recipient_name", "recipient_phone")
    # Status and assignee only move through the parcel services.
    readonly_fields = ("package_id", "barcode", "status", "assigned_kurir", "delivered_at")
    inlines = [PackageStatusHistoryInline, BarcodeScanLogInline]
