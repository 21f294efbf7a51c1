"""CLI job to backfill clinic logos from their websites."""

import argparse
import logging
import time
from typing import Optional

from clinic_discovery.core.config import Settings, get_settings
from clinic_discovery.core.logo_extractor import LogoExtractor
from clinic_discovery.core.store import iter_clinic_files, read_document, update_clinic_fields

logger = logging.getLogger(__name__)

REQUEST_DELAY_SECONDS = 1.0


def backfill_logos(settings: Settings, *, extractor: Optional[LogoExtractor] = None, limit: Optional[int] = None) -> int:
    """Give clinics with a website but no logo one; returns how many were updated."""
    extractor = extractor or LogoExtractor(settings.logos_dir, url_prefix=settings.logos_url_prefix)
    updated = 0
    attempted = 0

    with extractor:
        for path in iter_clinic_files(settings.clinics_dir):
            if limit is not None and attempted >= limit:
                break
            document = read_document(path)
            if document is None or document.get("logo") or not document.get("website"):
                continue
            name = document.get("name") or path.stem
            slug = document.get("slug") or path.stem

            attempted += 1
            if attempted > 1:
                time.sleep(REQUEST_DELAY_SECONDS)
            logger.info("Looking for a logo for %s", name)
            logo = extractor.extract(str(document["website"]), str(slug))
            if not logo:
                continue
            # only the logo key changes; unmodelled keys stay
            update_clinic_fields(path, {"logo": logo})
            updated += 1

    logger.info("Extracted %d logos from %d clinics", updated, attempted)
    return updated


def main(argv=None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    parser = argparse.ArgumentParser(description="Backfill clinic logos from clinic websites")
    parser.add_argument("--limit", type=int, help="Maximum number of clinics to try")
    args = parser.parse_args(argv)

    updated = backfill_logos(get_settings(), limit=args.limit)
    print(f"Logos extracted: {updated}")


if __name__ == "__main__":
    main()
