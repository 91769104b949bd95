"""
Assignment resolver - picks the field worker for a newly reported issue.

Runs once, synchronously, before the issue is persisted. Having no
located worker is a valid outcome (the issue stays unassigned), never
an error.
"""

from typing import Iterable, Optional
import logging

from app.models.issue import Location
from app.models.user import UserResponse, UserRole
from app.services.geo import haversine_km

logger = logging.getLogger(__name__)


def find_nearest_worker(location: Location, candidates: Iterable[UserResponse]) -> Optional[UserResponse]:
    """
    Return the worker closest to `location`.

    Candidates that are not workers or have no location are skipped.
    Only a strictly smaller distance replaces the current best, so ties
    go to the first candidate in iteration order.
    """
    target = {"lat": location.lat, "lng": location.lng}
    closest = None
    min_distance = float("inf")

    for worker in candidates:
        if worker.role != UserRole.WORKER or worker.location is None:
            continue
        distance = haversine_km(target, {"lat": worker.location.lat, "lng": worker.location.lng})
        if distance < min_distance:
            min_distance = distance
            closest = worker

    if closest is None:
        logger.info(f"No located workers available for ({location.lat}, {location.lng}); issue stays unassigned")
    else:
        logger.info(f"Nearest worker {closest.email} at {min_distance:.2f} km")
    return closest
