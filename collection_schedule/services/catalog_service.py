"""
This module defines the CatalogService for reading cities, zones, garbage types
and collection schedules from the remote backend.
"""
import logging
import time
from typing import Any, Dict, List, Optional

import requests

from ..config import (BACKEND_API_KEY, BACKEND_URL, CATALOG_MAX_RETRIES,
                      CATALOG_RETRY_DELAY)
from ..exceptions import DataStoreError
from ..models import City, CollectionSchedule, GarbageType

# Get a logger instance for this module
logger = logging.getLogger(__name__)

ZONE_COLUMNS = "id,city_id,name,name_pt,name_en,name_es,circuit_code"
CITY_COLUMNS = f"id,name,name_pt,name_en,name_es,country_code,zones({ZONE_COLUMNS})"


class CatalogService:
    """Handles requests against the backend's REST interface."""

    def __init__(
        self,
        base_url: str = BACKEND_URL,
        api_key: Optional[str] = BACKEND_API_KEY,
        max_retries: int = CATALOG_MAX_RETRIES,
        retry_delay: float = CATALOG_RETRY_DELAY,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    def get_cities(self) -> List[City]:
        """Returns all cities, with their zones embedded, ordered by name."""
        rows = self._select("cities", {"select": CITY_COLUMNS, "order": "name"})
        return [City.from_row(row) for row in rows]

    def get_garbage_types(self) -> List[GarbageType]:
        """Returns the garbage type catalog ordered by code."""
        rows = self._select("garbage_types", {"select": "*", "order": "code"})
        return [GarbageType.from_row(row) for row in rows]

    def get_schedules(self, zone_id: str) -> List[CollectionSchedule]:
        """
        Returns the active collection rules of a zone.

        Args:
            zone_id: The zone whose rules are requested.

        Returns:
            A list of CollectionSchedule objects.

        Raises:
            DataStoreError: If the backend cannot be reached after retries or
                answers with an unusable payload.
        """
        rows = self._select(
            "collection_schedules",
            {"select": "*", "zone_id": f"eq.{zone_id}", "is_active": "eq.true"},
        )
        try:
            return [CollectionSchedule.from_row(row) for row in rows]
        except (KeyError, TypeError, ValueError) as e:
            raise DataStoreError(f"Malformed schedule row for zone {zone_id}: {e}") from e

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _select(self, table: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        """Runs a select against a table, retrying on failure."""
        for attempt in range(self.max_retries):
            try:
                return self._request_rows(table, params)
            except DataStoreError as e:
                logger.warning(
                    f"Attempt {attempt + 1} failed for table {table}. Error: {e}"
                )
                if attempt + 1 == self.max_retries:
                    logger.error(
                        f"All {self.max_retries} request attempts failed for table {table}."
                    )
                    raise
                time.sleep(self.retry_delay)
        return []  # Only reached when max_retries is 0

    def _request_rows(self, table: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        """Performs one request and returns the decoded rows."""
        url = f"{self.base_url}/rest/v1/{table}"
        try:
            response = requests.get(
                url, params=params, headers=self._headers(), timeout=10
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise DataStoreError(f"Error requesting {table}: {e}") from e

        try:
            rows = response.json()
        except ValueError as e:
            raise DataStoreError(f"Invalid JSON returned for {table}: {e}") from e

        if not isinstance(rows, list):
            raise DataStoreError(f"Unexpected payload returned for {table}.")
        logger.info(f"Fetched {len(rows)} rows from {table}.")
        return rows
