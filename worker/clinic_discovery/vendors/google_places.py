"""Client utilities for the Google Places API (New)."""

import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from clinic_discovery.models import LocationBias, RawPlace

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_BASE_URL = "https://places.googleapis.com/v1"

PLACE_FIELDS = (
    "id",
    "displayName",
    "formattedAddress",
    "addressComponents",
    "location",
    "rating",
    "userRatingCount",
    "nationalPhoneNumber",
    "internationalPhoneNumber",
    "websiteUri",
    "googleMapsUri",
    "photos",
    "reviews",
    "types",
    "primaryType",
)
SEARCH_FIELD_MASK = ",".join(f"places.{name}" for name in PLACE_FIELDS) + ",nextPageToken"
DETAILS_FIELD_MASK = ",".join(PLACE_FIELDS)
PHOTO_MAX_WIDTH = 800


class GooglePlacesError(RuntimeError):
    """Raised when the Places API returns a non-successful response."""


def _check_payload(payload: Any, operation: str) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        logger.error("%s failed: unexpected payload type %s", operation, type(payload).__name__)
        raise GooglePlacesError(f"unexpected {type(payload).__name__} payload")
    error = payload.get("error")
    if error:
        message = error.get("message") if isinstance(error, dict) else str(error)
        status = error.get("status") if isinstance(error, dict) else None
        logger.error("%s failed: status=%s, error_message=%s", operation, status, message)
        raise GooglePlacesError(message or status or "unknown error")
    return payload


def text_search(
    query: str,
    api_key: str,
    *,
    location_bias: Optional[LocationBias] = None,
    page_size: int = 20,
    page_token: Optional[str] = None,
) -> Dict[str, Any]:
    """Fetch one page of ``places:searchText`` results."""
    body: Dict[str, Any] = {"textQuery": query, "pageSize": page_size}
    if location_bias is not None:
        body["locationBias"] = location_bias.to_api()
    if page_token:
        body["pageToken"] = page_token
    headers = {"X-Goog-Api-Key": api_key, "X-Goog-FieldMask": SEARCH_FIELD_MASK}

    response = _SESSION.post(f"{_BASE_URL}/places:searchText", json=body, headers=headers, timeout=10)
    payload = response.json()
    _check_payload(payload, "text_search")
    response.raise_for_status()
    return payload


def search_places(
    query: str,
    api_key: str,
    *,
    location_bias: Optional[LocationBias] = None,
    max_pages: int = 3,
    page_size: int = 20,
    page_delay: float = 0.2,
) -> List[RawPlace]:
    """Collect up to ``max_pages`` pages for a query.

    A failing page ends pagination for this query; whatever was gathered so far
    is returned. Results are not deduplicated.
    """
    places: List[RawPlace] = []
    page_token: Optional[str] = None

    for page in range(1, max_pages + 1):
        try:
            payload = text_search(
                query,
                api_key,
                location_bias=location_bias,
                page_size=page_size,
                page_token=page_token,
            )
        except (requests.RequestException, GooglePlacesError, ValueError) as exc:
            logger.warning("Search page %d failed for query=%s: %s", page, query, exc)
            break

        for raw in payload.get("places") or []:
            place = RawPlace.from_api(raw) if isinstance(raw, dict) else None
            if place is None:
                logger.debug("Skipping result without id: %s", raw)
                continue
            places.append(place)

        page_token = payload.get("nextPageToken")
        if not page_token:
            break
        if page < max_pages:
            time.sleep(page_delay)

    logger.info("Query %r returned %d places", query, len(places))
    return places


def place_details(place_id: str, api_key: str) -> RawPlace:
    headers = {"X-Goog-Api-Key": api_key, "X-Goog-FieldMask": DETAILS_FIELD_MASK}
    response = _SESSION.get(f"{_BASE_URL}/places/{place_id}", headers=headers, timeout=10)
    payload = response.json()
    _check_payload(payload, "place_details")
    response.raise_for_status()
    place = RawPlace.from_api(payload)
    if place is None:
        raise GooglePlacesError(f"place_details returned no id for {place_id}")
    return place


def download_photo(
    photo_name: str,
    api_key: str,
    destination: Path,
    *,
    min_bytes: int = 1000,
) -> bool:
    """Save a place photo to ``destination``.

    Returns ``False`` without raising on network errors or when the payload is
    smaller than ``min_bytes`` (placeholder images).
    """
    url = f"{_BASE_URL}/{photo_name}/media"
    try:
        response = _SESSION.get(url, params={"maxWidthPx": PHOTO_MAX_WIDTH, "key": api_key}, timeout=15)
        response.raise_for_status()
    except requests.RequestException as exc:
        logger.warning("Photo download failed for %s: %s", photo_name, exc)
        return False

    content = response.content or b""
    if len(content) < min_bytes:
        logger.debug("Discarding %d-byte photo for %s", len(content), photo_name)
        return False

    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_bytes(content)
    return True
