from django.urls import path

from .views import AttendanceListView, AttendanceReviewView, CheckInView, CheckOutView, TodayAttendanceView


urlpatterns = [
    path("", AttendanceListView.as_view(), name="attendance-list"),
    path("checkin/", CheckInView.as_view(), name="attendance-checkin"),
    path("checkout/", CheckOutView.as_view(), name="attendance-checkout"),
    path("today/", TodayAttendanceView.as_view(), name="attendance-today"),
    path("<uuid:pk>/approve/", AttendanceReviewView.as_view(), name="attendance-review"),
]
