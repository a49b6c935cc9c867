from .assignment import assign_explicit, claim, list_available
from .registry import (
    create_package,
    ensure_handler,
    fail_package,
    get_by_barcode,
    get_package,
    transition,
)
from .scanning import depart, manual_delivery, manual_pickup, recent_scans, scan

__all__ = [
    "assign_explicit",
    "claim",
    "create_package",
    "depart",
    "ensure_handler",
    "fail_package",
    "get_by_barcode",
    "get_package",
    "list_available",
    "manual_delivery",
    "manual_pickup",
    "recent_scans",
    "scan",
    "transition",
]
