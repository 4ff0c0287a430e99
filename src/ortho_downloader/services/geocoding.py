import logging
import re
from typing import List, Optional

import httpx

from ..config import CONNECT_TIMEOUT, NOMINATIM_URL, REQUEST_TIMEOUT, SEARCH_LIMIT, USER_AGENT
from ..errors import GeocodingError, ValidationError
from ..models import GeoPoint, SearchResult

logger = logging.getLogger(__name__)

_COORD_RE = re.compile(r"^(-?\d+\.?\d*)\s*,\s*(-?\d+\.?\d*)$")


def parse_coordinates(text: str) -> Optional[GeoPoint]:
    """
    "50.0755, 14.4378" -> GeoPoint. Returns None for anything that is not a
    bare coordinate pair; raises ValidationError for a pair outside lat/lon range.
    """
    match = _COORD_RE.match(text.strip())
    if match is None:
        return None
    lat = float(match.group(1))
    lon = float(match.group(2))
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        raise ValidationError(
            "ERR_VALIDATION_COORDINATES",
            f"Coordinates out of range: {lat}, {lon}",
        )
    return GeoPoint(lat=lat, lon=lon)


def search_places(query: str, client: Optional[httpx.Client] = None) -> List[SearchResult]:
    params = {
        "format": "json",
        "q": query,
        "limit": str(SEARCH_LIMIT),
        "addressdetails": "1",
    }
    timeout = httpx.Timeout(REQUEST_TIMEOUT, connect=CONNECT_TIMEOUT)
    try:
        if client is None:
            resp = httpx.get(
                NOMINATIM_URL,
                params=params,
                headers={"User-Agent": USER_AGENT},
                timeout=timeout,
            )
        else:
            resp = client.get(NOMINATIM_URL, params=params, timeout=timeout)
    except httpx.HTTPError as exc:
        raise GeocodingError("ERR_GEOCODING_REQUEST", str(exc)) from exc
    if resp.status_code != 200:
        raise GeocodingError("ERR_GEOCODING_REQUEST", f"HTTP {resp.status_code}")
    try:
        payload = resp.json()
    except ValueError as exc:
        raise GeocodingError("ERR_GEOCODING_RESPONSE", str(exc)) from exc
    if not isinstance(payload, list):
        raise GeocodingError("ERR_GEOCODING_RESPONSE", "Expected a JSON list")

    results: List[SearchResult] = []
    for raw in payload[:SEARCH_LIMIT]:
        try:
            results.append(
                SearchResult(
                    name=str(raw.get("display_name", "")).strip(),
                    lat=float(raw["lat"]),
                    lon=float(raw["lon"]),
                )
            )
        except (KeyError, TypeError, ValueError):
            logger.debug("Skipping malformed geocoding entry: %r", raw)
    return results


def resolve_query(query: str, client: Optional[httpx.Client] = None) -> List[SearchResult]:
    """
    A bare "lat, lon" pair resolves locally to a single result; any other text
    goes to the geocoding service.
    """
    cleaned = query.strip()
    if not cleaned:
        return []
    point = parse_coordinates(cleaned)
    if point is not None:
        return [SearchResult(name=f"{point.lat:.6f}, {point.lon:.6f}", lat=point.lat, lon=point.lon)]
    logger.info("Geocoding '%s'", cleaned)
    return search_places(cleaned, client=client)
