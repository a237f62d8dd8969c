"""Shared HTTP plumbing for the Google Maps web services, plus reverse geocoding.

Every outbound provider request goes through `_throttled_get`, which keeps a
global minimum interval between calls so bursts (heatmap category sweeps,
fast typing) stay under the provider's rate limits.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Optional, Tuple

import requests

from domain.models import Coordinate
from services.places_types import GeocodeResponse, ProviderStatus
from settings import settings

GOOGLE_MAPS_BASE_URL = "https://maps.googleapis.com/maps/api"
GEOCODE_PATH = "/geocode/json"
logger = logging.getLogger(__name__)
_session = requests.Session()
_last_request_ts: float = 0.0
_lock = threading.Lock()
_MIN_INTERVAL_SEC = settings.PLACES_MIN_INTERVAL

PLACES_HEADERS = {
    "User-Agent": "placescope/0.1",
    "Accept": "application/json",
}


def _redact_params(params: dict[str, Any]) -> dict[str, Any]:
    """Copy of request params that is safe to log."""
    if "key" not in params:
        return params
    return {**params, "key": "<redacted>"}


def _round_coord(value: float, decimals: int = 6) -> float:
    """Round coordinates before lookup to limit request diversity."""
    return round(value, decimals)


def _throttled_get(
    url: str,
    *,
    params: dict[str, Any],
    headers: dict[str, str],
    timeout: float,
) -> requests.Response:
    """Perform a GET request with a simple global rate limit."""
    global _last_request_ts
    with _lock:
        now = time.time()
        delta = now - _last_request_ts
        if delta < _MIN_INTERVAL_SEC:
            time.sleep(_MIN_INTERVAL_SEC - delta)
        _last_request_ts = time.time()
    return _session.get(url, params=params, headers=headers, timeout=timeout)


def fetch_json(
    url: str,
    params: dict[str, Any],
    timeout: float,
) -> Tuple[ProviderStatus, dict]:
    """GET a provider endpoint and return (status, payload).

    Transport failures, HTTP errors and unparsable bodies never raise; they
    come back as NETWORK_ERROR with an empty payload.
    """
    try:
        resp = _throttled_get(url, params=params, headers=PLACES_HEADERS, timeout=timeout)
        resp.raise_for_status()
        data = resp.json()
    except requests.RequestException as exc:
        logger.warning("Provider request failed url=%s params=%s: %s", url, _redact_params(params), exc)
        return ProviderStatus.NETWORK_ERROR, {}
    except ValueError as exc:
        logger.warning("Provider returned invalid JSON url=%s: %s", url, exc)
        return ProviderStatus.NETWORK_ERROR, {}

    if not isinstance(data, dict):
        return ProviderStatus.UNKNOWN_ERROR, {}
    status = ProviderStatus.parse(data.get("status"))
    if status not in (ProviderStatus.OK, ProviderStatus.ZERO_RESULTS):
        logger.warning(
            "Provider status %s for url=%s: %s",
            status.value,
            url,
            data.get("error_message") or "no message",
        )
    return status, data


def parse_geocode_payload(data: dict) -> GeocodeResponse:
    """Pick the first usable result of a reverse geocoding payload."""
    for item in data.get("results") or []:
        place_id = item.get("place_id")
        if not place_id:
            continue
        return GeocodeResponse(
            status=ProviderStatus.OK,
            place_id=str(place_id),
            formatted_address=item.get("formatted_address") or "",
            types=tuple(item.get("types") or ()),
        )
    return GeocodeResponse(status=ProviderStatus.ZERO_RESULTS)


def reverse_geocode(
    coordinate: Coordinate,
    api_key: str,
    *,
    base_url: Optional[str] = None,
    timeout: float = 5.0,
) -> GeocodeResponse:
    """Reverse geocode a coordinate into the closest addressable place id.

    Returns a non-OK response on network or provider errors.
    """
    lat_r = _round_coord(coordinate.lat)
    lng_r = _round_coord(coordinate.lng)
    base = (base_url or GOOGLE_MAPS_BASE_URL).rstrip("/")
    params = {"latlng": f"{lat_r},{lng_r}", "key": api_key}

    status, data = fetch_json(f"{base}{GEOCODE_PATH}", params, timeout)
    if status is not ProviderStatus.OK:
        return GeocodeResponse(status=status)
    result = parse_geocode_payload(data)
    logger.debug(
        "reverse_geocode lat=%.6f lng=%.6f -> %s",
        lat_r,
        lng_r,
        result.formatted_address or result.status.value,
    )
    return result
