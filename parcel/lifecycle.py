from typing import Dict, Optional, Tuple

from django.db import models

from .models import Package

Status = Package.Status


class Event(models.TextChoices):
    ASSIGN = "assign", "Assign"
    PICKUP = "pickup", "Pick up"
    DEPART = "depart", "Depart"
    DELIVER = "deliver", "Deliver"
    FAIL = "fail", "Fail"


TRANSITIONS: Dict[Tuple[str, str], str] = {
    (Status.CREATED, Event.ASSIGN): Status.ASSIGNED,
    (Status.ASSIGNED, Event.PICKUP): Status.PICKED_UP,
    (Status.PICKED_UP, Event.DEPART): Status.IN_TRANSIT,
    (Status.IN_TRANSIT, Event.DELIVER): Status.DELIVERED,
    (Status.ASSIGNED, Event.FAIL): Status.FAILED,
    (Status.PICKED_UP, Event.FAIL): Status.FAILED,
    (Status.IN_TRANSIT, Event.FAIL): Status.FAILED,
}

TERMINAL_STATUSES = frozenset({Status.DELIVERED, Status.FAILED})
ACTIVE_STATUSES = frozenset({Status.ASSIGNED, Status.PICKED_UP, Status.IN_TRANSIT})


def next_status(current: str, event: str) -> Optional[str]:
    return TRANSITIONS.get((current, event))


def event_for(current: str, target: str) -> Optional[str]:
    """Return the event that moves ``current`` to ``target``, if any."""
    for event in Event.values:
        if next_status(current, event) == target:
            return event
    return None
