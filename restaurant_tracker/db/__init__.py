"""Database initialization and persistence layer."""

from restaurant_tracker.db.engine import (
    create_db_engine,
    get_database_url,
    get_engine,
    get_session,
    get_session_factory,
    init_db,
    reset_engine,
)
from restaurant_tracker.db.models import Base, RestaurantDB, SystemStatusDB
from restaurant_tracker.db.repositories import RestaurantRepository, SystemStatusRepository

__all__ = [
    # Engine
    "create_db_engine",
    "get_database_url",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_db",
    "reset_engine",
    # Models
    "Base",
    "RestaurantDB",
    "SystemStatusDB",
    # Repositories
    "RestaurantRepository",
    "SystemStatusRepository",
]
