"""Core data models shared by the Places discovery pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


@dataclass(slots=True, frozen=True)
class AddressComponent:
    long_text: str
    short_text: str
    types: Tuple[str, ...] = ()

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "AddressComponent":
        return cls(
            long_text=str(raw.get("longText") or ""),
            short_text=str(raw.get("shortText") or ""),
            types=tuple(str(t) for t in raw.get("types") or ()),
        )


@dataclass(slots=True, frozen=True)
class PlaceReview:
    author: Optional[str] = None
    rating: Optional[float] = None
    publish_time: Optional[str] = None
    text: Optional[str] = None

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "PlaceReview":
        attribution = raw.get("authorAttribution") or {}
        text = raw.get("text") or {}
        return cls(
            author=_strip_or_none(attribution.get("displayName")),
            rating=_safe_float(raw.get("rating")),
            publish_time=_strip_or_none(raw.get("publishTime")),
            text=text.get("text") if isinstance(text, dict) else _strip_or_none(text),
        )


@dataclass(slots=True)
class RawPlace:
    """Snapshot of a place returned by the Places API (New).

    Optional provider fields are ``None`` (or empty) when absent from the
    payload; nothing downstream reads the raw JSON directly.
    """

    id: str
    name: str
    formatted_address: str = ""
    address_components: List[AddressComponent] = field(default_factory=list)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    rating: Optional[float] = None
    rating_count: Optional[int] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    maps_url: Optional[str] = None
    photo_names: List[str] = field(default_factory=list)
    reviews: List[PlaceReview] = field(default_factory=list)
    types: List[str] = field(default_factory=list)
    primary_type: Optional[str] = None

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> Optional["RawPlace"]:
        """Parse one ``places[]`` entry; returns ``None`` when it has no id."""
        place_id = _strip_or_none(raw.get("id"))
        if not place_id:
            return None

        display = raw.get("displayName") or {}
        location = raw.get("location") or {}
        return cls(
            id=place_id,
            name=(display.get("text") or "").strip() or "Unknown",
            formatted_address=(raw.get("formattedAddress") or "").strip(),
            address_components=[
                AddressComponent.from_api(c) for c in raw.get("addressComponents") or [] if isinstance(c, dict)
            ],
            latitude=_safe_float(location.get("latitude")),
            longitude=_safe_float(location.get("longitude")),
            rating=_safe_float(raw.get("rating")),
            rating_count=_safe_int(raw.get("userRatingCount")),
            phone=_strip_or_none(raw.get("nationalPhoneNumber") or raw.get("internationalPhoneNumber")),
            website=_strip_or_none(raw.get("websiteUri")),
            maps_url=_strip_or_none(raw.get("googleMapsUri")),
            photo_names=[p["name"] for p in raw.get("photos") or [] if isinstance(p, dict) and p.get("name")],
            reviews=[PlaceReview.from_api(r) for r in raw.get("reviews") or [] if isinstance(r, dict)],
            types=[str(t) for t in raw.get("types") or []],
            primary_type=_strip_or_none(raw.get("primaryType")),
        )

    def merged_with(self, details: "RawPlace") -> "RawPlace":
        """Overlay populated detail fields on top of this search result."""
        return RawPlace(
            id=self.id,
            name=details.name if details.name != "Unknown" else self.name,
            formatted_address=details.formatted_address or self.formatted_address,
            address_components=details.address_components or self.address_components,
            latitude=details.latitude if details.latitude is not None else self.latitude,
            longitude=details.longitude if details.longitude is not None else self.longitude,
            rating=details.rating if details.rating is not None else self.rating,
            rating_count=details.rating_count if details.rating_count is not None else self.rating_count,
            phone=details.phone or self.phone,
            website=details.website or self.website,
            maps_url=details.maps_url or self.maps_url,
            photo_names=details.photo_names or self.photo_names,
            reviews=details.reviews or self.reviews,
            types=details.types or self.types,
            primary_type=details.primary_type or self.primary_type,
        )


@dataclass(slots=True, frozen=True)
class NormalizedLocation:
    city: str
    city_slug: str
    state: str
    state_full_name: str
    county: str
    neighborhood: str
    zip_code: str
    country: str


@dataclass(slots=True, frozen=True)
class LocationBias:
    latitude: float
    longitude: float
    radius: float = 50000.0

    def to_api(self) -> Dict[str, Any]:
        return {
            "circle": {
                "center": {"latitude": self.latitude, "longitude": self.longitude},
                "radius": self.radius,
            }
        }


def _strip_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    value_str = str(value).strip()
    return value_str or None


def _safe_float(value: Any) -> Optional[float]:
    try:
        if value is None:
            return None
        return float(value)
    except (TypeError, ValueError):
        return None


def _safe_int(value: Any) -> Optional[int]:
    try:
        if value is None:
            return None
        return int(value)
    except (TypeError, ValueError):
        return None
