"""
Core domain models for the place explorer.
These are framework-agnostic and shared by the search and map services.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple, Union


PRICE_LEVEL_LABELS = ["Free", "$", "$$", "$$$", "$$$$"]


class SuggestionKind(str, Enum):
    """Kind of entry in the suggestion dropdown."""
    QUICK_ACTION = "quick_action"
    PREDICTION = "prediction"


class ListState(str, Enum):
    """
    Visible state of the suggestion dropdown.

    - CLOSED: nothing is shown
    - SHOWING_QUICK_ACTIONS: query is empty and the input is focused
    - SHOWING_PREDICTIONS: query is non-empty and at least one prediction exists
    """
    CLOSED = "closed"
    SHOWING_QUICK_ACTIONS = "showing_quick_actions"
    SHOWING_PREDICTIONS = "showing_predictions"


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float

    def as_param(self) -> str:
        """Comma-joined form used by the provider's query strings."""
        return f"{self.lat},{self.lng}"


@dataclass(frozen=True)
class CategorySpec:
    """
    Static category configuration.

    `types` are provider type filters; `boost` is added to the relevance
    weight of every point found for this category (0 means no boost).
    """
    key: str
    label: str
    types: Tuple[str, ...]
    boost: float = 0.0

    @property
    def high_salience(self) -> bool:
        return self.boost > 0


@dataclass(frozen=True)
class Prediction:
    """A candidate place suggested by the provider for a partial query."""
    id: str
    primary_text: str
    secondary_text: str = ""
    category_tags: Tuple[str, ...] = ()
    description: str = ""

    @property
    def display_text(self) -> str:
        if self.description:
            return self.description
        if self.secondary_text:
            return f"{self.primary_text}, {self.secondary_text}"
        return self.primary_text


@dataclass
class QuickAction:
    """Static shortcut shown while the query is empty."""
    id: str
    label: str
    category_hint: Optional[str] = None
    effect: Optional[Callable[[], Any]] = None
    description: Optional[str] = None
    shortcut: Optional[str] = None  # e.g. "⌘ R"
    badge: Optional[str] = None  # e.g. "Category", "Location"


@dataclass(frozen=True)
class SuggestionItem:
    """One entry of the dropdown: a tagged quick action or prediction."""
    kind: SuggestionKind
    payload: Union[QuickAction, Prediction]

    @property
    def label(self) -> str:
        if isinstance(self.payload, QuickAction):
            return self.payload.label
        return self.payload.primary_text


@dataclass(frozen=True)
class Place:
    """
    A fully resolved place.

    Created by the selection resolver from a details response; the map
    session replaces it wholesale on every new selection.
    """
    id: str
    name: str
    formatted_address: str
    coordinate: Coordinate
    types: Tuple[str, ...] = ()
    rating: Optional[float] = None
    price_level: Optional[int] = None

    @property
    def price_level_label(self) -> Optional[str]:
        if self.price_level is None:
            return None
        if 0 <= self.price_level < len(PRICE_LEVEL_LABELS):
            return PRICE_LEVEL_LABELS[self.price_level]
        return None

    @property
    def display_types(self) -> List[str]:
        return [humanize_type(t) for t in self.types[:3]]


@dataclass(frozen=True)
class WeightedPoint:
    coordinate: Coordinate
    weight: float  # 0..1


def humanize_type(place_type: str) -> str:
    """'shopping_mall' -> 'shopping mall'."""
    return place_type.replace("_", " ")
