from django.contrib import admin

from .models import AttendanceRecord


@admin.register(AttendanceRecord)
class AttendanceRecordAdmin(admin.ModelAdmin):
    list_display = ("kurir", "date", "check_in_time", "check_out_time", "status", "approved_by")
    list_filter = ("status", "date")
    search_fields = ("kurir__username", "kurir__full_name")
    readonly_fields = ("check_in_time", "check_out_time", "check_in_lat", "check_in_lng", "check_out_lat", "check_out_lng")
