"""Utilities for transforming Places API results into directory records."""

import logging
import re
from datetime import date
from typing import Iterable, List, Optional

from clinic_discovery.core.config import DiscoveryProfile
from clinic_discovery.models import AddressComponent, NormalizedLocation, PlaceReview, RawPlace
from clinic_discovery.schemas import Coordinates, EntityRecord, Review

logger = logging.getLogger(__name__)

SLUG_MAX_LENGTH = 60
MAX_REVIEWS = 5
MAX_REVIEW_CHARS = 500

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_COUNTRY_SUFFIX = re.compile(r",\s*(USA|United States)$")


def slugify(text: str) -> str:
    slug = _NON_ALNUM.sub("-", (text or "").lower()).strip("-")
    return slug[:SLUG_MAX_LENGTH].rstrip("-")


def _find(components: Iterable[AddressComponent], type_name: str) -> Optional[AddressComponent]:
    for component in components:
        if type_name in component.types:
            return component
    return None


def parse_address_components(components: Iterable[AddressComponent]) -> NormalizedLocation:
    """Resolve structured address parts by type tag; missing parts become ''."""
    components = list(components or [])

    def long_text(type_name: str) -> str:
        component = _find(components, type_name)
        return component.long_text if component else ""

    state = _find(components, "administrative_area_level_1")
    country = _find(components, "country")
    city = long_text("locality")

    return NormalizedLocation(
        city=city,
        city_slug=slugify(city),
        state=state.short_text if state else "",
        state_full_name=state.long_text if state else "",
        county=long_text("administrative_area_level_2"),
        neighborhood=long_text("neighborhood"),
        zip_code=long_text("postal_code"),
        country=country.short_text if country else "",
    )


def is_relevant(place: RawPlace, profile: DiscoveryProfile) -> bool:
    name = (place.name or "").lower()
    if not any(keyword in name for keyword in profile.keywords):
        return False
    return not any(keyword in name for keyword in profile.exclude_keywords)


def shorten_author(display_name: Optional[str]) -> str:
    """'Jane Marie Doe' -> 'Jane M. D.'"""
    tokens = (display_name or "").split()
    if not tokens:
        return "Anonymous"
    return " ".join([tokens[0], *(f"{token[0]}." for token in tokens[1:])])


def build_reviews(reviews: Iterable[PlaceReview], today: date) -> List[Review]:
    built: List[Review] = []
    for review in list(reviews or [])[:MAX_REVIEWS]:
        built.append(
            Review(
                author=shorten_author(review.author),
                rating=review.rating or 0,
                date=review.publish_time.split("T")[0] if review.publish_time else today.isoformat(),
                text=(review.text or "")[:MAX_REVIEW_CHARS],
            )
        )
    return built


def build_description(place: RawPlace, location: NormalizedLocation, profile: DiscoveryProfile) -> str:
    text = f"{place.name} is a {profile.practice_noun} located in {location.city}, {location.state}."
    if place.rating:
        text += (
            f" With a {place.rating:g}-star rating from {place.rating_count or 0} reviews,"
            f" they offer {profile.services_phrase}."
        )
    return text


def build_specialties(profile: DiscoveryProfile) -> List[str]:
    specialties = [profile.category_label]
    for item in profile.specialties:
        if item not in specialties:
            specialties.append(item)
    return specialties


def clean_street_address(formatted_address: str) -> str:
    return _COUNTRY_SUFFIX.sub("", formatted_address or "").strip()


def to_clinic_record(
    place: RawPlace,
    location: NormalizedLocation,
    profile: DiscoveryProfile,
    *,
    today: date,
    logo: Optional[str] = None,
) -> EntityRecord:
    return EntityRecord(
        name=place.name,
        slug=slugify(place.name),
        city_slug=location.city_slug,
        city_display=location.city,
        state=location.state,
        state_full_name=location.state_full_name,
        county=location.county,
        neighborhood=location.neighborhood,
        address=clean_street_address(place.formatted_address),
        zip_code=location.zip_code,
        coordinates=Coordinates(lat=place.latitude or 0.0, lng=place.longitude or 0.0),
        phone=place.phone or "",
        website=place.website,
        google_maps_url=place.maps_url or f"https://www.google.com/maps/place/?q=place_id:{place.id}",
        category=profile.category_code,
        category_label=profile.category_label,
        description=build_description(place, location, profile),
        specialties=build_specialties(profile),
        rating=min(max(place.rating or 0.0, 0.0), 5.0),
        review_count=place.rating_count or 0,
        reviews=build_reviews(place.reviews, today),
        logo=logo,
        last_updated=today.isoformat(),
    )
