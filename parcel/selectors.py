from datetime import datetime, time
from typing import Dict, List, Optional

from django.utils import timezone

from attendance.models import AttendanceRecord

from .lifecycle import ACTIVE_STATUSES
from .models import Package, PackageStatusHistory


def list_packages(limit: Optional[int] = None) -> List[Package]:
    packages = Package.objects.select_related("assigned_kurir").order_by("-created_at")
    if limit:
        packages = packages[:limit]
    return list(packages)


def packages_for_courier(kurir) -> List[Package]:
    return list(
        Package.objects.select_related("assigned_kurir")
        .filter(assigned_kurir=kurir)
        .order_by("-updated_at")
    )


def history_for(package: Package) -> List[PackageStatusHistory]:
    return list(package.status_history.select_related("changed_by").order_by("timestamp", "id"))


def dashboard_metrics() -> Dict[str, int]:
    today = timezone.localdate()
    start_of_day = timezone.make_aware(datetime.combine(today, time.min))
    return {
        "active_deliveries": Package.objects.filter(status__in=ACTIVE_STATUSES).count(),
        "kurir_online": AttendanceRecord.objects.filter(
            date=today,
            check_in_time__isnull=False,
            check_out_time__isnull=True,
        ).count(),
        "completed_today": Package.objects.filter(
            status=Package.Status.DELIVERED,
            delivered_at__gte=start_of_day,
        ).count(),
        # Revenue is settled outside this service.
        "total_revenue": 0,
    }
