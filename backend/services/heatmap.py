"""
Heatmap aggregation.

For a center coordinate, run one nearby query per configured category,
score every returned point and concatenate the results into a weighted
dataset for a density layer.

Scoring (per point, clamped to [0, 1]):
- base 0.3
- + rating / 5 * 0.4 when a rating is present
- + min(reviews / 1000, 1) * 0.3 when a review count is present
- + the category boost (0.2 for dining, retail, education, attractions)

Points are not deduplicated across categories; a place found by two
categories contributes two points.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from domain.models import CategorySpec, Coordinate, WeightedPoint
from services.places_client import PlacesClient
from services.places_types import RawPlace

logger = logging.getLogger(__name__)

BASE_WEIGHT = 0.3
RATING_WEIGHT = 0.4
REVIEWS_WEIGHT = 0.3
REVIEWS_SATURATION = 1000
SALIENCE_BOOST = 0.2

CATEGORY_SPECS: tuple[CategorySpec, ...] = (
    CategorySpec("dining", "Restaurants", ("restaurant",), boost=SALIENCE_BOOST),
    CategorySpec("retail", "Shopping", ("shopping_mall",), boost=SALIENCE_BOOST),
    CategorySpec("education", "Universities", ("university",), boost=SALIENCE_BOOST),
    CategorySpec("healthcare", "Hospitals", ("hospital",)),
    CategorySpec("schools", "Schools", ("school",)),
    CategorySpec("finance", "Banks", ("bank",)),
    CategorySpec("fuel", "Gas Stations", ("gas_station",)),
    CategorySpec("pharmacy", "Pharmacies", ("pharmacy",)),
    CategorySpec("fitness", "Gyms", ("gym",)),
    CategorySpec("attractions", "Attractions", ("tourist_attraction",), boost=SALIENCE_BOOST),
)

# Render hints for the density layer.
HEATMAP_LAYER_OPTIONS: Dict[str, object] = {
    "radius": 25,
    "opacity": 0.7,
    "gradient": [
        "rgba(0, 255, 255, 0)",
        "rgba(0, 255, 255, 1)",
        "rgba(0, 191, 255, 1)",
        "rgba(0, 127, 255, 1)",
        "rgba(0, 63, 255, 1)",
        "rgba(0, 0, 255, 1)",
        "rgba(0, 0, 223, 1)",
        "rgba(0, 0, 191, 1)",
        "rgba(0, 0, 159, 1)",
        "rgba(0, 0, 127, 1)",
        "rgba(63, 0, 91, 1)",
        "rgba(127, 0, 63, 1)",
        "rgba(191, 0, 31, 1)",
        "rgba(255, 0, 0, 1)",
    ],
}


def category_by_key(key: str, categories: Sequence[CategorySpec] = CATEGORY_SPECS) -> Optional[CategorySpec]:
    for spec in categories:
        if spec.key == key:
            return spec
    return None


def score_place(place: RawPlace, category: CategorySpec) -> float:
    weight = BASE_WEIGHT
    if place.rating is not None:
        weight += (place.rating / 5) * RATING_WEIGHT
    if place.review_count is not None:
        weight += min(place.review_count / REVIEWS_SATURATION, 1) * REVIEWS_WEIGHT
    weight += category.boost
    return max(0.0, min(weight, 1.0))


def to_feature_collection(points: Sequence[WeightedPoint]) -> dict:
    """GeoJSON FeatureCollection of weighted points (lng, lat order)."""
    return {
        "type": "FeatureCollection",
        "properties": dict(HEATMAP_LAYER_OPTIONS),
        "features": [
            {
                "type": "Feature",
                "geometry": {
                    "type": "Point",
                    "coordinates": [p.coordinate.lng, p.coordinate.lat],
                },
                "properties": {"weight": round(p.weight, 4)},
            }
            for p in points
        ],
    }


class HeatmapAggregator:
    def __init__(
        self,
        client: PlacesClient,
        categories: Sequence[CategorySpec] = CATEGORY_SPECS,
        radius_m: float = 5000.0,
        query_delay: float = 0.1,
        max_concurrency: int = 1,
    ):
        self.client = client
        self.categories = tuple(categories)
        self.radius_m = radius_m
        self.query_delay = query_delay
        self.max_concurrency = max(1, max_concurrency)

    async def aggregate(self, center: Coordinate) -> List[WeightedPoint]:
        """Build the full weighted dataset for `center`, one category at a time."""
        logger.info(
            "Generating heatmap for %.5f,%.5f across %d categories",
            center.lat,
            center.lng,
            len(self.categories),
        )
        if self.max_concurrency == 1:
            batches = []
            for category in self.categories:
                batches.append(await self._collect(center, category))
                if self.query_delay > 0:
                    await asyncio.sleep(self.query_delay)
        else:
            semaphore = asyncio.Semaphore(self.max_concurrency)

            async def bounded(category: CategorySpec) -> List[WeightedPoint]:
                async with semaphore:
                    points = await self._collect(center, category)
                    if self.query_delay > 0:
                        await asyncio.sleep(self.query_delay)
                    return points

            batches = await asyncio.gather(*(bounded(c) for c in self.categories))

        points = [point for batch in batches for point in batch]
        logger.info("Generated %d heatmap points", len(points))
        return points

    async def _collect(self, center: Coordinate, category: CategorySpec) -> List[WeightedPoint]:
        """Points for a single category; any failure yields an empty list."""
        try:
            response = await self.client.search_nearby(center, self.radius_m, category=category)
        except Exception:
            logger.warning("Error fetching places for category %s", category.key, exc_info=True)
            return []
        if not response.ok:
            logger.debug("Category %s returned %s", category.key, response.status.value)
            return []

        points: List[WeightedPoint] = []
        for place in response.results:
            if place.coordinate is None:
                continue
            points.append(WeightedPoint(place.coordinate, score_place(place, category)))
        logger.debug("Category %s contributed %d points", category.key, len(points))
        return points
