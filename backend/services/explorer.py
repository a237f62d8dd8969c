"""
One explorer session: the search box and the map session it drives.

Built with `create_explorer`; when no provider credential is configured the
explorer is created in a permanent unavailable state instead of failing.
"""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional, Sequence

from domain.models import CategorySpec, Coordinate, Place
from services.autocomplete import AutocompleteSequencer
from services.heatmap import CATEGORY_SPECS, HeatmapAggregator
from services.map_session import MapSessionController, MapView, user_location_place
from services.places_client import GooglePlacesClient, MissingCredentialError, PlacesClient
from services.search_box import SearchBox
from services.selection import SelectionResolver
from settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)

Locator = Callable[[], Awaitable[Optional[Coordinate]]]


class PlaceExplorer:
    def __init__(
        self,
        client: Optional[PlacesClient],
        view: MapView,
        settings: Settings = default_settings,
        locate: Optional[Locator] = None,
        categories: Sequence[CategorySpec] = CATEGORY_SPECS,
        unavailable_reason: Optional[str] = None,
    ):
        self.client = client
        self.view = view
        self._locate = locate
        self.unavailable_reason = unavailable_reason
        self.search_box: Optional[SearchBox] = None
        self.map_session: Optional[MapSessionController] = None
        if client is None:
            return

        bias = view.current_viewport_center if settings.AUTOCOMPLETE_LOCATION_BIAS else None
        sequencer = AutocompleteSequencer(
            client,
            debounce_delay=settings.AUTOCOMPLETE_DEBOUNCE_MS / 1000.0,
            min_chars=settings.AUTOCOMPLETE_MIN_CHARS,
            max_predictions=settings.AUTOCOMPLETE_MAX_PREDICTIONS,
            bias=bias,
        )
        self.search_box = SearchBox(
            sequencer,
            SelectionResolver(client),
            use_location=self.use_my_location,
            blur_grace=settings.SUGGESTION_BLUR_GRACE_MS / 1000.0,
        )
        aggregator = HeatmapAggregator(
            client,
            categories=categories,
            radius_m=settings.HEATMAP_RADIUS_M,
            query_delay=settings.HEATMAP_QUERY_DELAY_MS / 1000.0,
            max_concurrency=settings.HEATMAP_MAX_CONCURRENCY,
        )
        self.map_session = MapSessionController(
            client,
            aggregator,
            view,
            nearby_radius_m=settings.NEARBY_RADIUS_M,
            nearby_limit=settings.NEARBY_LIMIT,
        )
        self.search_box.add_place_listener(self.map_session.place_chosen)

    @property
    def available(self) -> bool:
        return self.client is not None

    async def start(self) -> None:
        if not self.available:
            return
        await self.map_session.start()

    async def place_chosen(self, place: Place) -> None:
        """A place picked directly on the map surface."""
        if not self.available:
            return
        await self.map_session.place_chosen(place)

    async def use_my_location(self) -> Optional[Place]:
        """Center on the user: reverse geocode when possible, else a plain location pin."""
        if not self.available:
            return None
        if self._locate is None:
            logger.warning("Geolocation is not supported in this session")
            return None
        coordinate = await self._locate()
        if coordinate is None:
            logger.info("User location unavailable")
            return None
        logger.info("User location: %.6f,%.6f", coordinate.lat, coordinate.lng)

        try:
            geocoded = await self.client.reverse_geocode(coordinate)
        except Exception:
            logger.warning("Reverse geocoding failed", exc_info=True)
            geocoded = None
        if geocoded is not None and geocoded.ok:
            place = await self.search_box.select(geocoded.place_id, geocoded.formatted_address or "")
            if place is not None:
                return place

        place = user_location_place(coordinate)
        await self.map_session.place_chosen(place)
        return place

    def dispose(self) -> None:
        if self.search_box is not None:
            self.search_box.dispose()
        if self.map_session is not None:
            self.map_session.dispose()


def create_explorer(
    view: MapView,
    settings: Settings = default_settings,
    locate: Optional[Locator] = None,
    client: Optional[PlacesClient] = None,
) -> PlaceExplorer:
    if client is None:
        try:
            client = GooglePlacesClient(settings.GOOGLE_MAPS_API_KEY, timeout=settings.PLACES_TIMEOUT)
        except MissingCredentialError as exc:
            logger.error("Places search unavailable: %s", exc)
            return PlaceExplorer(None, view, settings, locate, unavailable_reason=str(exc))
    return PlaceExplorer(client, view, settings, locate)
