import uuid
from django.conf import settings
from django.db import models


class AttendanceRecord(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        PRESENT = "present", "Present"
        APPROVED = "approved", "Approved"
        REJECTED = "rejected", "Rejected"
        ABSENT = "absent", "Absent"

    REVIEWABLE_STATUSES = frozenset({Status.PENDING, Status.PRESENT})

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    kurir = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="attendance_records",
    )
    date = models.DateField()

    check_in_time = models.DateTimeField(null=True, blank=True)
    check_out_time = models.DateTimeField(null=True, blank=True)
    check_in_lat = models.DecimalField(max_digits=10, decimal_places=8, null=True, blank=True)
    check_in_lng = models.DecimalField(max_digits=11, decimal_places=8, null=True, blank=True)
    check_out_lat = models.DecimalField(max_digits=10, decimal_places=8, null=True, blank=True)
    check_out_lng = models.DecimalField(max_digits=11, decimal_places=8, null=True, blank=True)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="reviewed_attendance",
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-date", "kurir"]
        constraints = [
            models.UniqueConstraint(fields=["kurir", "date"], name="attendance_one_record_per_day"),
            models.CheckConstraint(
                condition=models.Q(check_out_time__isnull=True) | models.Q(check_in_time__isnull=False),
                name="attendance_checkout_requires_checkin",
            ),
        ]
        indexes = [models.Index(fields=["date", "status"], name="attendance_date_status_idx")]

    def __str__(self):
        return f"{self.kurir_id} {self.date} [{self.status}]"

    @property
    def is_reviewable(self) -> bool:
        return self.status in self.REVIEWABLE_STATUSES
