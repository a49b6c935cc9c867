from django.urls import path

from .views import (
    AssignPackageView,
    AvailablePackagesView,
    DepartPackageView,
    FailPackageView,
    ManualDeliveryView,
    ManualPickupView,
    PackageDetailView,
    PackageHistoryView,
    PackageListCreateView,
    TakePackageView,
)


urlpatterns = [
    path("", PackageListCreateView.as_view(), name="package-list"),
    path("available/", AvailablePackagesView.as_view(), name="package-available"),
    path("<uuid:pk>/", PackageDetailView.as_view(), name="package-detail"),
    path("<uuid:pk>/history/", PackageHistoryView.as_view(), name="package-history"),
    path("<uuid:pk>/take/", TakePackageView.as_view(), name="package-take"),
    path("<uuid:pk>/assign/", AssignPackageView.as_view(), name="package-assign"),
    path("<uuid:pk>/pickup/", ManualPickupView.as_view(), name="package-pickup"),
    path("<uuid:pk>/depart/", DepartPackageView.as_view(), name="package-depart"),
    path("<uuid:pk>/delivery/", ManualDeliveryView.as_view(), name="package-delivery"),
    path("<uuid:pk>/fail/", FailPackageView.as_view(), name="package-fail"),
]
