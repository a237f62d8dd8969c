"""
Places collaborator: the async contract the core relies on, and a Google
Places web service adapter that implements it on top of `requests`.
"""
from __future__ import annotations

import abc
import asyncio
import logging
from typing import Iterable, List, Optional, Sequence

from domain.models import CategorySpec, Coordinate, Place, Prediction
from services.geocoding import GOOGLE_MAPS_BASE_URL, fetch_json, reverse_geocode
from services.places_types import (
    DetailsResponse,
    GeocodeResponse,
    NearbyResponse,
    PredictionResponse,
    ProviderStatus,
    RawPlace,
)

AUTOCOMPLETE_PATH = "/place/autocomplete/json"
DETAILS_PATH = "/place/details/json"
NEARBY_PATH = "/place/nearbysearch/json"

# Autocomplete accepts up to five pipe-joined types.
_MAX_AUTOCOMPLETE_TYPES = 5


class MissingCredentialError(RuntimeError):
    """No provider API key is configured; the session cannot work at all."""


def format_place_display_name(name: Optional[str], formatted_address: Optional[str]) -> str:
    """
    Produce a short display name for a place.

    Rules:
    - Prefer a concrete 'name' when the provider gives one.
    - If 'name' is missing, use the first component of the address.
    - Keep it relatively short (< 60 chars); truncate with '…' if necessary.
    """
    candidate = (name or "").strip()
    if not candidate and formatted_address:
        candidate = formatted_address.split(",")[0].strip()
    if len(candidate) > 60:
        candidate = candidate[:57] + "…"
    return candidate


def _coordinate_from_geometry(item: dict) -> Optional[Coordinate]:
    location = (item.get("geometry") or {}).get("location") or {}
    lat = location.get("lat")
    lng = location.get("lng")
    if lat is None or lng is None:
        return None
    try:
        return Coordinate(float(lat), float(lng))
    except (TypeError, ValueError):
        return None


def parse_prediction(item: dict) -> Optional[Prediction]:
    place_id = item.get("place_id")
    if not place_id:
        return None
    formatting = item.get("structured_formatting") or {}
    description = item.get("description") or ""
    return Prediction(
        id=str(place_id),
        primary_text=formatting.get("main_text") or description,
        secondary_text=formatting.get("secondary_text") or "",
        category_tags=tuple(item.get("types") or ()),
        description=description,
    )


def parse_raw_place(item: dict) -> RawPlace:
    rating = item.get("rating")
    reviews = item.get("user_ratings_total")
    return RawPlace(
        place_id=str(item.get("place_id", "")),
        name=item.get("name") or "",
        coordinate=_coordinate_from_geometry(item),
        types=list(item.get("types") or []),
        rating=float(rating) if rating is not None else None,
        review_count=int(reviews) if reviews is not None else None,
        vicinity=item.get("vicinity"),
        raw=item,
    )


def normalize_place(place_id: str, result: dict) -> Optional[Place]:
    """Turn a details payload into a Place; None when it has no usable geometry."""
    coordinate = _coordinate_from_geometry(result)
    if coordinate is None:
        return None
    address = result.get("formatted_address") or ""
    rating = result.get("rating")
    price_level = result.get("price_level")
    return Place(
        id=str(result.get("place_id") or place_id),
        name=format_place_display_name(result.get("name"), address),
        formatted_address=address,
        coordinate=coordinate,
        types=tuple(result.get("types") or ()),
        rating=float(rating) if rating is not None else None,
        price_level=int(price_level) if price_level is not None else None,
    )


class PlacesClient(abc.ABC):
    """
    Async places collaborator.

    Implementations never raise for provider or network failures: they
    return an envelope whose status is not OK and which holds no results.
    """

    @abc.abstractmethod
    async def predict_text(
        self,
        query: str,
        category: Optional[CategorySpec] = None,
        bias: Optional[Coordinate] = None,
    ) -> PredictionResponse:
        ...

    @abc.abstractmethod
    async def get_details(self, place_id: str, fields: Sequence[str]) -> DetailsResponse:
        ...

    @abc.abstractmethod
    async def search_nearby(
        self,
        center: Coordinate,
        radius_m: float,
        category: Optional[CategorySpec] = None,
        types: Optional[Iterable[str]] = None,
    ) -> NearbyResponse:
        ...

    @abc.abstractmethod
    async def reverse_geocode(self, coordinate: Coordinate) -> GeocodeResponse:
        ...


class GooglePlacesClient(PlacesClient):
    def __init__(
        self,
        api_key: Optional[str],
        base_url: Optional[str] = None,
        timeout: float = 5.0,
        bias_radius_m: float = 50000.0,
    ):
        if not api_key:
            raise MissingCredentialError("GOOGLE_MAPS_API_KEY is not configured")
        self.api_key = api_key
        self.base_url = (base_url or GOOGLE_MAPS_BASE_URL).rstrip("/")
        self.timeout = timeout
        self.bias_radius_m = bias_radius_m
        self.logger = logging.getLogger(__name__)

    def _predict_sync(
        self,
        query: str,
        category: Optional[CategorySpec],
        bias: Optional[Coordinate],
    ) -> PredictionResponse:
        params = {"input": query, "key": self.api_key}
        if category is not None and category.types:
            params["types"] = "|".join(category.types[:_MAX_AUTOCOMPLETE_TYPES])
        if bias is not None:
            params["location"] = bias.as_param()
            params["radius"] = str(int(self.bias_radius_m))

        status, data = fetch_json(f"{self.base_url}{AUTOCOMPLETE_PATH}", params, self.timeout)
        if status is not ProviderStatus.OK:
            return PredictionResponse(status=status)
        predictions: List[Prediction] = []
        for item in data.get("predictions") or []:
            prediction = parse_prediction(item)
            if prediction is not None:
                predictions.append(prediction)
        self.logger.debug("predict_text %r got %d predictions", query, len(predictions))
        return PredictionResponse(status=status, predictions=predictions)

    def _details_sync(self, place_id: str, fields: Sequence[str]) -> DetailsResponse:
        params = {"place_id": place_id, "fields": ",".join(fields), "key": self.api_key}
        status, data = fetch_json(f"{self.base_url}{DETAILS_PATH}", params, self.timeout)
        if status is not ProviderStatus.OK:
            return DetailsResponse(status=status)
        place = normalize_place(place_id, data.get("result") or {})
        if place is None:
            self.logger.warning("Details for %s had no usable geometry", place_id)
            return DetailsResponse(status=ProviderStatus.ZERO_RESULTS)
        return DetailsResponse(status=status, place=place)

    def _nearby_sync(
        self,
        center: Coordinate,
        radius_m: float,
        place_type: Optional[str],
    ) -> NearbyResponse:
        params = {
            "location": center.as_param(),
            "radius": str(int(radius_m)),
            "key": self.api_key,
        }
        if place_type:
            params["type"] = place_type
        status, data = fetch_json(f"{self.base_url}{NEARBY_PATH}", params, self.timeout)
        if status is not ProviderStatus.OK:
            return NearbyResponse(status=status)
        results = [parse_raw_place(item) for item in data.get("results") or []]
        self.logger.debug(
            "search_nearby lat=%.6f lng=%.6f radius_m=%.1f type=%s got %d results",
            center.lat,
            center.lng,
            radius_m,
            place_type,
            len(results),
        )
        return NearbyResponse(status=status, results=results)

    async def predict_text(
        self,
        query: str,
        category: Optional[CategorySpec] = None,
        bias: Optional[Coordinate] = None,
    ) -> PredictionResponse:
        return await asyncio.to_thread(self._predict_sync, query, category, bias)

    async def get_details(self, place_id: str, fields: Sequence[str]) -> DetailsResponse:
        return await asyncio.to_thread(self._details_sync, place_id, list(fields))

    async def search_nearby(
        self,
        center: Coordinate,
        radius_m: float,
        category: Optional[CategorySpec] = None,
        types: Optional[Iterable[str]] = None,
    ) -> NearbyResponse:
        # Nearby search filters on a single type.
        candidates = list(types or ()) or list(category.types if category else ())
        place_type = candidates[0] if candidates else None
        return await asyncio.to_thread(self._nearby_sync, center, radius_m, place_type)

    async def reverse_geocode(self, coordinate: Coordinate) -> GeocodeResponse:
        return await asyncio.to_thread(
            reverse_geocode,
            coordinate,
            self.api_key,
            base_url=self.base_url,
            timeout=self.timeout,
        )
