"""
This module provides a factory for creating and configuring the application's core components.
"""

from collection_schedule.config import COLLECTION_DB_PATH
from collection_schedule.facade import CollectionCalendarFacade
from collection_schedule.services.catalog_service import CatalogService
from collection_schedule.services.notification_service import \
    NotificationService
from collection_schedule.services.persistence_service import \
    PersistenceService
from collection_schedule.services.settings_service import SettingsService
from collection_schedule.services.sync_service import CatalogSyncService

from .logging_config import setup_database_logging


def initialize_app(db_path: str = COLLECTION_DB_PATH) -> None:
    """
    Initializes the application by creating the database schema and setting up logging.
    """
    # The logs table must exist before the database handler writes to it
    with PersistenceService(db_path) as persistence_service:
        persistence_service.init_db()
    setup_database_logging(db_path)


def create_facade(db_path: str = COLLECTION_DB_PATH) -> CollectionCalendarFacade:
    """
    Initializes and returns the CollectionCalendarFacade with all its dependencies.
    """
    persistence_service = PersistenceService(db_path)
    catalog_service = CatalogService()
    settings_service = SettingsService(persistence_service)
    notification_service = NotificationService(persistence_service)
    sync_service = CatalogSyncService(
        persistence_service=persistence_service, catalog_service=catalog_service
    )

    return CollectionCalendarFacade(
        persistence_service=persistence_service,
        settings_service=settings_service,
        notification_service=notification_service,
        sync_service=sync_service,
    )
