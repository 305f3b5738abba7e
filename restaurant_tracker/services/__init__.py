"""Application services for Restaurant Tracker."""

from restaurant_tracker.services.restaurant_service import RestaurantService

__all__ = [
    "RestaurantService",
]
