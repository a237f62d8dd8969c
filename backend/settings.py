import os

# Basic settings helper to read environment configuration.


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


def _as_int(val: str | None, default: int) -> int:
    if val is None or not val.strip():
        return default
    try:
        return int(val)
    except ValueError:
        return default


def _as_float(val: str | None, default: float) -> float:
    if val is None or not val.strip():
        return default
    try:
        return float(val)
    except ValueError:
        return default


class Settings:
    def __init__(self) -> None:
        self.GOOGLE_MAPS_API_KEY: str | None = os.getenv("GOOGLE_MAPS_API_KEY") or None
        self.PLACES_MIN_INTERVAL: float = _as_float(os.getenv("PLACES_MIN_INTERVAL"), 0.05)
        self.PLACES_TIMEOUT: float = _as_float(os.getenv("PLACES_TIMEOUT"), 5.0)

        self.AUTOCOMPLETE_DEBOUNCE_MS: int = _as_int(os.getenv("AUTOCOMPLETE_DEBOUNCE_MS"), 300)
        self.AUTOCOMPLETE_MIN_CHARS: int = _as_int(os.getenv("AUTOCOMPLETE_MIN_CHARS"), 2)
        self.AUTOCOMPLETE_MAX_PREDICTIONS: int = _as_int(os.getenv("AUTOCOMPLETE_MAX_PREDICTIONS"), 5)
        self.AUTOCOMPLETE_LOCATION_BIAS: bool = _as_bool(os.getenv("AUTOCOMPLETE_LOCATION_BIAS"), False)
        self.SUGGESTION_BLUR_GRACE_MS: int = _as_int(os.getenv("SUGGESTION_BLUR_GRACE_MS"), 200)

        self.HEATMAP_RADIUS_M: int = _as_int(os.getenv("HEATMAP_RADIUS_M"), 5000)
        self.HEATMAP_QUERY_DELAY_MS: int = _as_int(os.getenv("HEATMAP_QUERY_DELAY_MS"), 100)
        self.HEATMAP_MAX_CONCURRENCY: int = _as_int(os.getenv("HEATMAP_MAX_CONCURRENCY"), 1)

        self.NEARBY_RADIUS_M: int = _as_int(os.getenv("NEARBY_RADIUS_M"), 2000)
        self.NEARBY_LIMIT: int = _as_int(os.getenv("NEARBY_LIMIT"), 5)


settings = Settings()
