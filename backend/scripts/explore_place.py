"""Search a place from the command line and print its surroundings.

Usage:
    python -m scripts.explore_place "badshahi mosque"
    python -m scripts.explore_place --lat 31.5204 --lng 74.3587 --out heatmap.geojson

Run from `backend/`. Reads GOOGLE_MAPS_API_KEY from the environment or from
an optional `backend/.env`.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from dotenv import load_dotenv

# Load environment variables from backend/.env (optional) before imports that read env
ROOT = Path(__file__).resolve().parents[1]
load_dotenv(ROOT / ".env")

from domain.models import Coordinate, Place, SuggestionKind, WeightedPoint, humanize_type
from services.explorer import create_explorer
from services.heatmap import CATEGORY_SPECS, category_by_key, to_feature_collection
from services.places_types import RawPlace
from settings import settings

LOG = logging.getLogger("explore_place")


class ConsoleMapView:
    """MapView that keeps the last command of each kind for printing."""

    def __init__(self) -> None:
        self.center: Optional[Coordinate] = None
        self.zoom: Optional[int] = None
        self.marker: Optional[Place] = None
        self.heatmap: List[WeightedPoint] = []
        self.nearby: List[RawPlace] = []

    def center_changed(self, coordinate: Coordinate, zoom: int) -> None:
        self.center = coordinate
        self.zoom = zoom
        LOG.info("Map centered on %.5f,%.5f (zoom %d)", coordinate.lat, coordinate.lng, zoom)

    def marker_changed(self, place: Optional[Place]) -> None:
        self.marker = place

    def heatmap_changed(self, points: Sequence[WeightedPoint]) -> None:
        self.heatmap = list(points)

    def nearby_changed(self, places: Sequence[RawPlace]) -> None:
        self.nearby = list(places)

    def current_viewport_center(self) -> Optional[Coordinate]:
        return self.center


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Search a place and show its activity heatmap.")
    parser.add_argument("query", nargs="?", help="Free-text place query.")
    parser.add_argument("--pick", type=int, default=0, help="Index of the suggestion to select.")
    parser.add_argument(
        "--category",
        choices=[spec.key for spec in CATEGORY_SPECS],
        help="Restrict suggestions to a heatmap category.",
    )
    parser.add_argument("--lat", type=float, help="Latitude for 'use my location'.")
    parser.add_argument("--lng", type=float, help="Longitude for 'use my location'.")
    parser.add_argument("--out", help="Write the heatmap as GeoJSON to this path.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    return parser


def print_place(place: Place) -> None:
    print(f"{place.name}")
    print(f"  {place.formatted_address}")
    details = []
    if place.rating is not None:
        details.append(f"rating {place.rating}")
    if place.price_level_label:
        details.append(place.price_level_label)
    if place.display_types:
        details.append(", ".join(place.display_types))
    if details:
        print(f"  {' | '.join(details)}")


def print_summary(view: ConsoleMapView) -> None:
    if view.nearby:
        print("\nNearby places:")
        for raw in view.nearby:
            kind = humanize_type(raw.types[0]) if raw.types else ""
            rating = f"  ★ {raw.rating}" if raw.rating is not None else ""
            print(f"  - {raw.name} ({kind}){rating}")
    if view.heatmap:
        weights = [p.weight for p in view.heatmap]
        print(
            f"\nHeatmap: {len(weights)} points, mean weight {sum(weights) / len(weights):.2f}, "
            f"max {max(weights):.2f}"
        )
    else:
        print("\nHeatmap: no points")


async def run(args: argparse.Namespace) -> int:
    view = ConsoleMapView()
    locate = None
    if args.lat is not None and args.lng is not None:
        coordinate = Coordinate(args.lat, args.lng)

        async def locate() -> Optional[Coordinate]:
            return coordinate

    explorer = create_explorer(view, settings=settings, locate=locate)
    if not explorer.available:
        print(f"Search unavailable: {explorer.unavailable_reason}")
        return 2

    try:
        if locate is not None:
            place = await explorer.use_my_location()
        else:
            if not args.query:
                print("Nothing to search: give a query or --lat/--lng")
                return 1
            search_box = explorer.search_box
            if args.category:
                search_box.set_category(category_by_key(args.category))
            search_box.focus()
            search_box.type(args.query)
            await asyncio.sleep(settings.AUTOCOMPLETE_DEBOUNCE_MS / 1000.0 + 0.05)
            await search_box.sequencer.wait_idle()

            items = [i for i in search_box.items if i.kind is SuggestionKind.PREDICTION]
            if not items:
                print(f"No suggestions for {args.query!r}")
                return 1
            for index, item in enumerate(items):
                marker = "*" if index == args.pick else " "
                print(f"{marker} [{index}] {item.payload.display_text}")
            print()
            if not await search_box.suggestions.activate_index(args.pick):
                print(f"No suggestion at index {args.pick}")
                return 1
            place = explorer.map_session.place

        if place is None:
            print("Could not resolve the selected place")
            return 1
        print_place(place)
        print_summary(view)

        if args.out:
            out_path = Path(args.out)
            out_path.write_text(json.dumps(to_feature_collection(view.heatmap), indent=2))
            print(f"\nHeatmap written to {out_path}")
        return 0
    finally:
        explorer.dispose()


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    return asyncio.run(run(args))


if __name__ == "__main__":
    raise SystemExit(main())
