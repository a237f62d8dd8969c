from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from domain.models import Coordinate, Place, Prediction


class ProviderStatus(str, Enum):
    # Only OK is success; everything else is treated as zero results.
    OK = "OK"
    ZERO_RESULTS = "ZERO_RESULTS"
    OVER_QUERY_LIMIT = "OVER_QUERY_LIMIT"
    REQUEST_DENIED = "REQUEST_DENIED"
    INVALID_REQUEST = "INVALID_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"  # local: request never got a provider answer

    @classmethod
    def parse(cls, value: Optional[str]) -> "ProviderStatus":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN_ERROR


@dataclass
class RawPlace:
    place_id: str  # provider-specific place id
    name: str
    coordinate: Optional[Coordinate]
    types: List[str] = field(default_factory=list)
    rating: Optional[float] = None
    review_count: Optional[int] = None
    vicinity: Optional[str] = None
    raw: Optional[dict] = None


@dataclass
class PredictionResponse:
    status: ProviderStatus
    predictions: List[Prediction] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is ProviderStatus.OK


@dataclass
class DetailsResponse:
    status: ProviderStatus
    place: Optional[Place] = None

    @property
    def ok(self) -> bool:
        return self.status is ProviderStatus.OK and self.place is not None


@dataclass
class NearbyResponse:
    status: ProviderStatus
    results: List[RawPlace] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is ProviderStatus.OK


@dataclass
class GeocodeResponse:
    """Best reverse-geocoding match: a place id plus its one-line address."""
    status: ProviderStatus
    place_id: Optional[str] = None
    formatted_address: Optional[str] = None
    types: Tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.status is ProviderStatus.OK and bool(self.place_id)
