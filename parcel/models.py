import uuid
from django.conf import settings
from django.db import models


class Package(models.Model):
    class Status(models.TextChoices):
        CREATED = "created", "Created"
        ASSIGNED = "assigned", "Assigned"
        PICKED_UP = "picked_up", "Picked Up"
        IN_TRANSIT = "in_transit", "In Transit"
        DELIVERED = "delivered", "Delivered"
        FAILED = "failed", "Failed"

    class Priority(models.TextChoices):
        NORMAL = "normal", "Normal"
        HIGH = "high", "High"
        URGENT = "urgent", "Urgent"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    package_id = models.CharField(max_length=40, unique=True)
    barcode = models.CharField(max_length=60, unique=True)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.CREATED)
    assigned_kurir = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="assigned_packages",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="created_packages",
    )

    # Descriptive snapshot, not part of the state machine
    recipient_name = models.CharField(max_length=150)
    recipient_phone = models.CharField(max_length=30)
    recipient_address = models.TextField()
    sender_name = models.CharField(max_length=150, blank=True)
    sender_phone = models.CharField(max_length=30, blank=True)
    pickup_address = models.TextField(blank=True)
    weight = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    dimensions = models.CharField(max_length=100, blank=True)
    declared_value = models.PositiveIntegerField(default=0)
    priority = models.CharField(max_length=10, choices=Priority.choices, default=Priority.NORMAL)
    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    delivered_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="parcel_pkg_status_idx"),
            models.Index(fields=["assigned_kurir", "status"], name="parcel_pkg_kurir_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(status="created", assigned_kurir__isnull=True)
                    | (~models.Q(status="created") & models.Q(assigned_kurir__isnull=False))
                ),
                name="parcel_pkg_assignee_matches_status",
            ),
        ]

    def __str__(self):
        return f"{self.package_id} - {self.status}"


class AppendOnlyModel(models.Model):
    """Rows are written once and never updated or deleted."""

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError(f"{type(self).__name__} rows are append-only")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError(f"{type(self).__name__} rows are append-only")


class PackageStatusHistory(AppendOnlyModel):
    package = models.ForeignKey(Package, related_name="status_history", on_delete=models.PROTECT)
    from_status = models.CharField(max_length=20, choices=Package.Status.choices, blank=True)
    to_status = models.CharField(max_length=20, choices=Package.Status.choices)
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        on_delete=models.SET_NULL,
        related_name="package_status_changes",
    )
    location = models.JSONField(null=True, blank=True)
    notes = models.TextField(blank=True)
    timestamp = models.DateTimeField()

    class Meta:
        ordering = ["timestamp", "id"]
        verbose_name_plural = "package status history"

    def __str__(self):
        return f"{self.package_id}: {self.from_status or '-'} -> {self.to_status}"


class BarcodeScanLog(AppendOnlyModel):
    class ScanType(models.TextChoices):
        PICKUP = "pickup", "Pickup"
        DELIVERY = "delivery", "Delivery"

    package = models.ForeignKey(Package, related_name="scan_logs", on_delete=models.PROTECT)
    scanned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="barcode_scans",
    )
    scan_type = models.CharField(max_length=20, choices=ScanType.choices)
    location = models.JSONField(null=True, blank=True)
    is_manual = models.BooleanField(default=False)
    timestamp = models.DateTimeField()

    class Meta:
        ordering = ["-timestamp", "-id"]
        indexes = [models.Index(fields=["package", "timestamp"], name="parcel_scan_pkg_ts_idx")]

    def __str__(self):
        return f"{self.package_id} {self.scan_type} by {self.scanned_by_id}"
