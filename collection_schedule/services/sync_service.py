"""
This module defines the CatalogSyncService that keeps the local snapshot of the
remote catalog and collection rules up to date.
"""

import asyncio
import logging
from datetime import datetime

from ..config import CATALOG_SYNC_INTERVAL_HOURS
from ..exceptions import DataStoreError
from .catalog_service import CatalogService
from .persistence_service import PersistenceService

logger = logging.getLogger(__name__)


class CatalogSyncService:
    """
    Copies cities, zones, garbage types and the rules of every zone in use
    from the backend into the local database.
    """

    def __init__(
        self,
        persistence_service: PersistenceService,
        catalog_service: CatalogService,
        interval_hours: int = CATALOG_SYNC_INTERVAL_HOURS,
    ):
        self.persistence_service = persistence_service
        self.catalog_service = catalog_service
        self.interval_hours = interval_hours

    def sync_catalog(self) -> None:
        """
        Refreshes cities, zones and garbage types.

        Raises:
            DataStoreError: If the backend cannot be read.
        """
        cities = self.catalog_service.get_cities()
        garbage_types = self.catalog_service.get_garbage_types()
        with self.persistence_service as db:
            db.replace_catalog(cities, garbage_types)
        logger.info(
            f"Catalog synced: {len(cities)} cities, {len(garbage_types)} garbage types."
        )

    def sync_zone(self, zone_id: str) -> int:
        """
        Refreshes the rules of one zone and returns how many were stored.

        Raises:
            DataStoreError: If the backend cannot be read.
        """
        schedules = self.catalog_service.get_schedules(zone_id)
        if not schedules:
            logger.warning(
                f"No active schedules found for zone {zone_id}. It might be an issue with the source."
            )
        with self.persistence_service as db:
            db.replace_zone_schedules(zone_id, schedules)
            db.mark_zone_synced(zone_id, datetime.now().isoformat())
        return len(schedules)

    def sync_all(self) -> None:
        """
        Orchestrates the refresh of the catalog and of every zone in use.
        """
        logger.info("Starting catalog sync.")
        try:
            self.sync_catalog()
        except DataStoreError as e:
            logger.error(f"Failed to sync catalog: {e}")

        with self.persistence_service as db:
            zone_ids = db.get_configured_zone_ids()

        if not zone_ids:
            logger.info("No zones selected by any chat. Skipping schedule sync.")
            return

        for zone_id in zone_ids:
            try:
                count = self.sync_zone(zone_id)
                logger.info(f"Synced {count} schedules for zone {zone_id}.")
            except DataStoreError as e:
                logger.error(f"Failed to sync schedules for zone {zone_id}: {e}")
            except Exception as e:
                logger.exception(
                    f"An unexpected error occurred while syncing zone {zone_id}: {e}"
                )

        logger.info("Catalog sync completed.")

    async def run_scheduler(self) -> None:
        """
        Runs the sync loop indefinitely.
        """
        while True:
            try:
                logger.info("Running catalog sync...")
                self.sync_all()
                logger.info("Catalog sync finished.")
            except Exception as e:
                logger.exception(f"An error occurred during the catalog sync: {e}")

            logger.info(f"Sleeping for {self.interval_hours} hours...")
            await asyncio.sleep(self.interval_hours * 3600)
