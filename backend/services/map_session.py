"""
Map session: current center, marker and heatmap for one map surface.

The session only issues commands to a MapView; drawing tiles, markers and
the density layer is the view's job.
"""
from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Protocol, Sequence

from domain.models import Coordinate, Place, WeightedPoint
from services.heatmap import HeatmapAggregator
from services.places_client import PlacesClient
from services.places_types import NearbyResponse, ProviderStatus, RawPlace

logger = logging.getLogger(__name__)

DEFAULT_CENTER = Coordinate(31.5204, 74.3587)  # Lahore
DEFAULT_ZOOM = 12
PLACE_ZOOM = 15
USER_LOCATION_ID = "user-location"


class MapView(Protocol):
    """Rendering surface driven by the session."""

    def center_changed(self, coordinate: Coordinate, zoom: int) -> None: ...

    def marker_changed(self, place: Optional[Place]) -> None: ...

    def heatmap_changed(self, points: Sequence[WeightedPoint]) -> None: ...

    def nearby_changed(self, places: Sequence[RawPlace]) -> None: ...

    def current_viewport_center(self) -> Optional[Coordinate]: ...


def user_location_place(coordinate: Coordinate) -> Place:
    """Stand-in place for the user's own position."""
    return Place(
        id=USER_LOCATION_ID,
        name="Your Location",
        formatted_address="Your Current Location",
        coordinate=coordinate,
    )


class MapSessionController:
    def __init__(
        self,
        client: PlacesClient,
        aggregator: HeatmapAggregator,
        view: MapView,
        *,
        default_center: Coordinate = DEFAULT_CENTER,
        nearby_radius_m: float = 2000.0,
        nearby_type: str = "establishment",
        nearby_limit: int = 5,
    ):
        self.client = client
        self.aggregator = aggregator
        self.view = view
        self.nearby_radius_m = nearby_radius_m
        self.nearby_type = nearby_type
        self.nearby_limit = nearby_limit
        self.center: Coordinate = default_center
        self.place: Optional[Place] = None
        self.heatmap: List[WeightedPoint] = []
        self.nearby: List[RawPlace] = []
        self._generation = 0
        self._disposed = False

    @property
    def generation(self) -> int:
        return self._generation

    async def start(self) -> None:
        """Show the default center and its heatmap."""
        generation = self._next_generation()
        logger.info("Initializing map with center %s", self.center)
        self.view.center_changed(self.center, DEFAULT_ZOOM)
        await self._refresh_heatmap(generation, self.center)

    async def place_chosen(self, place: Place) -> None:
        """Re-center on a newly selected place and rebuild its surroundings."""
        if self._disposed:
            return
        generation = self._next_generation()
        logger.info("Updating map center and heatmap for %s", place.name)
        self.place = place
        self.center = place.coordinate
        self.view.center_changed(place.coordinate, PLACE_ZOOM)
        self.view.marker_changed(place)
        # The old heatmap stays on screen until the new one is complete.
        await asyncio.gather(
            self._refresh_heatmap(generation, place.coordinate),
            self._refresh_nearby(generation, place.coordinate),
        )

    async def use_my_location(self, coordinate: Coordinate) -> None:
        await self.place_chosen(user_location_place(coordinate))

    def clear_marker(self) -> None:
        self.place = None
        self.view.marker_changed(None)

    def dispose(self) -> None:
        self._disposed = True

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return not self._disposed and generation == self._generation

    async def _refresh_heatmap(self, generation: int, center: Coordinate) -> None:
        points = await self.aggregator.aggregate(center)
        if not self._is_current(generation):
            logger.debug("Dropping heatmap for superseded center %s", center)
            return
        self.heatmap = points
        self.view.heatmap_changed(list(points))

    async def _refresh_nearby(self, generation: int, center: Coordinate) -> None:
        try:
            response = await self.client.search_nearby(
                center, self.nearby_radius_m, types=[self.nearby_type]
            )
        except Exception:
            logger.warning("Nearby search around %s failed", center, exc_info=True)
            response = NearbyResponse(status=ProviderStatus.UNKNOWN_ERROR)
        if not self._is_current(generation):
            logger.debug("Dropping nearby list for superseded center %s", center)
            return
        if response.ok:
            self.nearby = list(response.results[: self.nearby_limit])
            logger.info("Found %d nearby places", len(response.results))
        else:
            self.nearby = []
            logger.debug("Nearby search returned %s", response.status.value)
        self.view.nearby_changed(list(self.nearby))
