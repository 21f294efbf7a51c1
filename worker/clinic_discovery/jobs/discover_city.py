"""CLI job to discover clinics for one city and persist them."""

import argparse
import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from clinic_discovery.core.config import ConfigError, DiscoveryProfile, Settings, get_settings, load_profile
from clinic_discovery.core.store import ensure_city, upsert_clinic
from clinic_discovery.etl.dedupe import SeenPlaces
from clinic_discovery.etl.transform import is_relevant, parse_address_components, slugify, to_clinic_record
from clinic_discovery.models import LocationBias, RawPlace
from clinic_discovery.vendors import google_places

logger = logging.getLogger(__name__)

SUMMARY_PREFIX = "Total clinics added:"


@dataclass
class DiscoveryResult:
    written: int = 0
    by_city: Counter = field(default_factory=Counter)


def location_bias_for(city: str, profile: DiscoveryProfile) -> Optional[LocationBias]:
    coords = profile.city_coords.get(slugify(city))
    if coords is None:
        logger.info("No coordinates configured for %s; searching without a location bias", city)
        return None
    return LocationBias(latitude=coords[0], longitude=coords[1], radius=profile.radius_meters)


def _with_details(place: RawPlace, api_key: str) -> RawPlace:
    if place.reviews:
        return place
    try:
        details = google_places.place_details(place.id, api_key)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Failed to fetch details for %s: %s", place.id, exc)
        return place
    return place.merged_with(details)


def process_place(
    place: RawPlace,
    seen: SeenPlaces,
    *,
    settings: Settings,
    profile: DiscoveryProfile,
    today: date,
) -> Optional[str]:
    """Run one search result through filter, normalize, and write.

    Returns the resolved city name when a clinic file was written.
    """
    if not place.address_components or seen.seen(place.id):
        return None
    if not is_relevant(place, profile):
        logger.debug("Skipping irrelevant place %s", place.name)
        return None
    seen.mark(place.id)

    place = _with_details(place, settings.google_api_key)
    location = parse_address_components(place.address_components)
    if location.country != "US":
        logger.debug("Skipping non-US place %s (country=%s)", place.name, location.country or "?")
        return None
    if not location.city_slug:
        logger.warning("Skipping %s: address has no locality", place.name)
        return None

    ensure_city(settings.cities_dir, location, profile.category_label)

    slug = slugify(place.name)
    logo = None
    if place.photo_names:
        filename = f"{slug}.jpg"
        if google_places.download_photo(
            place.photo_names[0],
            settings.google_api_key,
            settings.logos_dir / filename,
            min_bytes=settings.min_asset_bytes,
        ):
            logo = f"{settings.logos_url_prefix}{filename}"

    record = to_clinic_record(place, location, profile, today=today, logo=logo)
    upsert_clinic(settings.clinics_dir, record)
    logger.info("%s -> %s, %s", place.name, location.city, location.state)
    return location.city


def discover_city(
    *,
    city: str,
    state: str,
    settings: Settings,
    profile: DiscoveryProfile,
    today: Optional[date] = None,
) -> DiscoveryResult:
    api_key = settings.require_google_api_key()
    today = today or date.today()
    state = state.upper()
    bias = location_bias_for(city, profile)
    seen = SeenPlaces()
    result = DiscoveryResult()

    logger.info("Discovering clinics for %s, %s (%d queries)", city, state, len(profile.queries))
    for index, query in enumerate(profile.queries):
        full_query = f"{query} in {city}, {state}"
        places = google_places.search_places(
            full_query,
            api_key,
            location_bias=bias,
            max_pages=settings.max_pages,
            page_size=settings.page_size,
            page_delay=settings.page_delay,
        )
        for place in places:
            resolved_city = process_place(place, seen, settings=settings, profile=profile, today=today)
            if resolved_city:
                result.written += 1
                result.by_city[resolved_city] += 1

        if index < len(profile.queries) - 1:
            time.sleep(settings.query_delay)

    logger.info("Completed %s, %s: written=%d unique_places=%d", city, state, result.written, len(seen))
    return result


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Discover clinics for one city via Google Places")
    parser.add_argument("--city", required=True, help="City to search, e.g. 'Fort Myers'")
    parser.add_argument("--state", required=True, help="Two-letter state code, e.g. FL")
    return parser


def main(argv=None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = build_parser().parse_args(argv)
    settings = get_settings()

    try:
        profile = load_profile(settings.profile_path)
        result = discover_city(city=args.city, state=args.state, settings=settings, profile=profile)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc

    print(f"{SUMMARY_PREFIX} {result.written}")
    for name, count in result.by_city.most_common():
        print(f"  {name}: {count}")


if __name__ == "__main__":
    main()
