from __future__ import annotations

import logging
from typing import Callable, List, Optional

from domain.models import Place, Prediction
from services.places_client import PlacesClient

logger = logging.getLogger(__name__)

DETAIL_FIELDS = (
    "name",
    "formatted_address",
    "geometry",
    "types",
    "rating",
    "price_level",
)

SelectionListener = Callable[[Place, str], None]


class SelectionResolver:
    """Fetch full details for a chosen id and hand the resulting Place on."""

    def __init__(self, client: PlacesClient, fields=DETAIL_FIELDS):
        self.client = client
        self.fields = tuple(fields)
        self._listeners: List[SelectionListener] = []

    def add_listener(self, listener: SelectionListener) -> None:
        self._listeners.append(listener)

    async def resolve_prediction(self, prediction: Prediction) -> Optional[Place]:
        return await self.resolve(prediction.id, prediction.display_text)

    async def resolve(self, place_id: str, description: str) -> Optional[Place]:
        """
        Resolve a place id into a Place.

        Returns None and leaves all state untouched if the lookup fails;
        failures are not retried.
        """
        logger.debug("Getting place details for %r (%s)", description, place_id)
        try:
            response = await self.client.get_details(place_id, self.fields)
        except Exception:
            logger.warning("Details lookup for %s failed", place_id, exc_info=True)
            return None

        if not response.ok:
            logger.info("No details for %r: %s", description, response.status.value)
            return None

        place = response.place
        logger.debug("Place details resolved: %s", place.name)
        for listener in list(self._listeners):
            listener(place, description)
        return place
