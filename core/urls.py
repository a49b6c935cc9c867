from django.contrib import admin
from django.urls import path, include



urlpatterns = [
    path("admin/", admin.site.urls),
    path('auth/', include('account.urls')),
    path('packages/', include('parcel.urls')),
    path('barcode/', include('parcel.barcode_urls')),
    path('dashboard/', include('parcel.dashboard_urls')),
    path('geofence/', include('geofence.urls')),
    path('attendance/', include('attendance.urls')),
]
