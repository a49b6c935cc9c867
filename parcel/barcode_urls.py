from django.urls import path

from .views import BarcodeScanView, RecentScansView


urlpatterns = [
    path("scan/", BarcodeScanView.as_view(), name="barcode-scan"),
    path("scans/", RecentScansView.as_view(), name="barcode-recent-scans"),
]
