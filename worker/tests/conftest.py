import sys
from pathlib import Path

import pytest

# Ensure the `clinic_discovery` package is importable when running pytest from the repo root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from clinic_discovery.core.config import DiscoveryProfile, Settings  # noqa: E402


@pytest.fixture
def settings(tmp_path):
    return Settings(
        google_api_key="test-key",
        site_root=tmp_path,
        ledger_path=tmp_path / "scripts" / ".clinic-locations.json",
        blob_mapping_path=tmp_path / "scripts" / ".blob-mapping.json",
        page_delay=0,
        query_delay=0,
        city_pause=0,
    )


@pytest.fixture
def profile():
    return DiscoveryProfile(queries=("plastic surgery", "cosmetic surgery"))


def place_payload(place_id="ChIJ123", name="Smith Plastic Surgery", country="US", city="Miami", **extra):
    """A Places API (New) ``places[]`` entry."""
    payload = {
        "id": place_id,
        "displayName": {"text": name},
        "formattedAddress": f"100 Main St, {city}, FL 33101, USA",
        "addressComponents": [
            {"longText": "100", "shortText": "100", "types": ["street_number"]},
            {"longText": "Brickell", "shortText": "Brickell", "types": ["neighborhood", "political"]},
            {"longText": city, "shortText": city, "types": ["locality", "political"]},
            {"longText": "Miami-Dade County", "shortText": "Miami-Dade County", "types": ["administrative_area_level_2", "political"]},
            {"longText": "Florida", "shortText": "FL", "types": ["administrative_area_level_1", "political"]},
            {"longText": "United States", "shortText": country, "types": ["country", "political"]},
            {"longText": "33101", "shortText": "33101", "types": ["postal_code"]},
        ],
        "location": {"latitude": 25.76, "longitude": -80.19},
        "rating": 4.8,
        "userRatingCount": 120,
        "nationalPhoneNumber": "(305) 555-0100",
        "websiteUri": "https://smithplastics.example.com",
        "googleMapsUri": "https://maps.google.com/?cid=1",
        "reviews": [
            {
                "authorAttribution": {"displayName": "Jane Marie Doe"},
                "rating": 5,
                "publishTime": "2024-05-01T10:00:00Z",
                "text": {"text": "Great experience."},
            }
        ],
    }
    payload.update(extra)
    return payload


@pytest.fixture
def make_place():
    return place_payload
