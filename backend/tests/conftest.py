import asyncio
import sys
from pathlib import Path

import pytest

# Ensure the backend package root is on sys.path for direct pytest runs
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from domain.models import Coordinate, Place, Prediction  # noqa: E402
from services.places_client import PlacesClient  # noqa: E402
from services.places_types import (  # noqa: E402
    DetailsResponse,
    GeocodeResponse,
    NearbyResponse,
    PredictionResponse,
    ProviderStatus,
    RawPlace,
)


def make_prediction(place_id, primary, secondary="Lahore, Pakistan"):
    return Prediction(
        id=place_id,
        primary_text=primary,
        secondary_text=secondary,
        category_tags=("establishment",),
        description=f"{primary}, {secondary}",
    )


def make_place(place_id="p1", name="Badshahi Mosque", lat=31.5879, lng=74.3107):
    return Place(
        id=place_id,
        name=name,
        formatted_address=f"{name}, Lahore, Pakistan",
        coordinate=Coordinate(lat, lng),
        types=("mosque", "place_of_worship", "tourist_attraction"),
        rating=4.7,
        price_level=0,
    )


def make_raw(place_id, lat=31.5, lng=74.3, rating=None, reviews=None, types=("establishment",)):
    return RawPlace(
        place_id=place_id,
        name=f"Place {place_id}",
        coordinate=Coordinate(lat, lng) if lat is not None else None,
        types=list(types),
        rating=rating,
        review_count=reviews,
    )


class FakePlacesClient(PlacesClient):
    """In-process collaborator; responses are configured per query / place id / type."""

    def __init__(self):
        self.predictions = {}
        self.predict_gates = {}
        self.details = {}
        self.nearby = {}
        self.nearby_delay = 0.0
        self.geocode = GeocodeResponse(status=ProviderStatus.ZERO_RESULTS)
        self.predict_calls = []
        self.details_calls = []
        self.nearby_calls = []
        self.geocode_calls = []
        self.active_nearby = 0
        self.max_active_nearby = 0

    async def predict_text(self, query, category=None, bias=None):
        self.predict_calls.append((query, category, bias))
        gate = self.predict_gates.get(query)
        if gate is not None:
            await gate.wait()
        value = self.predictions.get(query)
        if isinstance(value, Exception):
            raise value
        if value is None:
            return PredictionResponse(status=ProviderStatus.ZERO_RESULTS)
        if isinstance(value, PredictionResponse):
            return value
        return PredictionResponse(status=ProviderStatus.OK, predictions=list(value))

    async def get_details(self, place_id, fields):
        self.details_calls.append((place_id, tuple(fields)))
        value = self.details.get(place_id)
        if isinstance(value, Exception):
            raise value
        if value is None:
            return DetailsResponse(status=ProviderStatus.NOT_FOUND)
        return DetailsResponse(status=ProviderStatus.OK, place=value)

    async def search_nearby(self, center, radius_m, category=None, types=None):
        candidates = list(types or ()) or list(category.types if category else ())
        key = candidates[0] if candidates else None
        self.nearby_calls.append((center, radius_m, key))
        self.active_nearby += 1
        self.max_active_nearby = max(self.max_active_nearby, self.active_nearby)
        try:
            if self.nearby_delay:
                await asyncio.sleep(self.nearby_delay)
            value = self.nearby.get(key)
            if isinstance(value, Exception):
                raise value
            if value is None:
                return NearbyResponse(status=ProviderStatus.ZERO_RESULTS)
            if isinstance(value, NearbyResponse):
                return value
            return NearbyResponse(status=ProviderStatus.OK, results=list(value))
        finally:
            self.active_nearby -= 1

    async def reverse_geocode(self, coordinate):
        self.geocode_calls.append(coordinate)
        if isinstance(self.geocode, Exception):
            raise self.geocode
        return self.geocode


class RecordingMapView:
    def __init__(self, viewport_center=None):
        self.calls = []
        self.viewport_center = viewport_center
        self.heatmap = []
        self.nearby = []
        self.marker = None
        self.center = None
        self.zoom = None

    def center_changed(self, coordinate, zoom):
        self.calls.append(("center", coordinate, zoom))
        self.center = coordinate
        self.zoom = zoom

    def marker_changed(self, place):
        self.calls.append(("marker", place))
        self.marker = place

    def heatmap_changed(self, points):
        self.calls.append(("heatmap", list(points)))
        self.heatmap = list(points)

    def nearby_changed(self, places):
        self.calls.append(("nearby", list(places)))
        self.nearby = list(places)

    def current_viewport_center(self):
        return self.viewport_center


@pytest.fixture
def client():
    return FakePlacesClient()


@pytest.fixture
def view():
    return RecordingMapView()
