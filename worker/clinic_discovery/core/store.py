"""File-backed persistence for clinic and city records."""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional

import yaml

from clinic_discovery.models import NormalizedLocation
from clinic_discovery.schemas import EntityRecord, LocationRecord

logger = logging.getLogger(__name__)

RECORD_SUFFIX = ".yaml"


def dump_document(document: Dict[str, Any]) -> str:
    return yaml.safe_dump(document, sort_keys=False, allow_unicode=True, width=120)


def _write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def upsert_clinic(clinics_dir: Path, record: EntityRecord) -> Path:
    """Write ``record`` to ``<slug>.yaml``, replacing any previous version."""
    if not record.slug:
        raise ValueError("slug is required for upsert")
    path = clinics_dir / f"{record.slug}{RECORD_SUFFIX}"
    existed = path.exists()
    _write_text(path, dump_document(record.to_document()))
    logger.debug("%s clinic %s", "Replaced" if existed else "Created", record.slug)
    return path


def load_clinic(path: Path) -> EntityRecord:
    with path.open("r", encoding="utf-8") as fh:
        return EntityRecord.model_validate(yaml.safe_load(fh) or {})


def read_document(path: Path) -> Optional[Dict[str, Any]]:
    """Load a record file as a raw mapping; ``None`` (logged) when it is unusable."""
    try:
        with path.open("r", encoding="utf-8") as fh:
            document = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        logger.error("Skipping unparseable %s: %s", path.name, exc)
        return None
    if not isinstance(document, dict):
        logger.error("Skipping %s: not a mapping", path.name)
        return None
    return document


def update_clinic_fields(path: Path, updates: Dict[str, Any]) -> None:
    """Set ``updates`` on an existing clinic file, keeping every other key as found."""
    document = read_document(path)
    if document is None:
        raise ValueError(f"{path.name} is not a readable clinic file")
    document.update(updates)
    _write_text(path, dump_document(document))


def iter_clinic_files(clinics_dir: Path) -> Iterator[Path]:
    if not clinics_dir.is_dir():
        return iter(())
    return iter(sorted(clinics_dir.glob(f"*{RECORD_SUFFIX}")))


def city_description(location: NormalizedLocation, category_label: str) -> str:
    return (
        f"Find top {category_label.lower()} clinics in {location.city}, {location.state}. "
        "Browse verified clinics with patient reviews, ratings, and contact information."
    )


def city_meta_description(location: NormalizedLocation, category_label: str) -> str:
    return (
        f"Top {category_label.lower()} clinics in {location.city}, {location.state}. "
        "Compare board-certified surgeons with real patient reviews."
    )


def ensure_city(cities_dir: Path, location: NormalizedLocation, category_label: str) -> Optional[LocationRecord]:
    """Create the city file on first encounter; returns the new record or ``None``."""
    path = cities_dir / f"{location.city_slug}{RECORD_SUFFIX}"
    if path.exists():
        return None

    record = LocationRecord(
        name=location.city,
        slug=location.city_slug,
        state=location.state,
        state_full_name=location.state_full_name,
        county=location.county,
        description=city_description(location, category_label),
        meta_description=city_meta_description(location, category_label),
    )
    _write_text(path, dump_document(record.to_document()))
    logger.info("Created city %s, %s", location.city, location.state)
    return record


def repair_clinic_files(clinics_dir: Path) -> int:
    """Give every clinic file explicit ``[]`` values for null or missing lists.

    Returns how many files were rewritten. Unparseable files are logged and
    left untouched; other keys are preserved as found.
    """
    list_keys = EntityRecord.list_field_aliases()
    repaired = 0
    for path in iter_clinic_files(clinics_dir):
        document = read_document(path)
        if document is None:
            continue
        missing = [key for key in list_keys if document.get(key) is None]
        if not missing:
            continue
        for key in missing:
            document[key] = []
        _write_text(path, dump_document(document))
        repaired += 1
    if repaired:
        logger.info("Repaired %d clinic files", repaired)
    return repaired


def _replace_strings(value: Any, replace: Callable[[str], str]) -> Any:
    if isinstance(value, str):
        return replace(value)
    if isinstance(value, list):
        return [_replace_strings(item, replace) for item in value]
    if isinstance(value, dict):
        return {key: _replace_strings(item, replace) for key, item in value.items()}
    return value


def rewrite_asset_paths(clinics_dir: Path, replacements: Dict[str, str]) -> int:
    """Swap public asset paths for their durable URLs in every clinic file."""
    if not replacements:
        return 0

    def replace(text: str) -> str:
        for old, new in replacements.items():
            # blob URLs end with the local path, so skip values already rewritten
            if old in text and new not in text:
                text = text.replace(old, new)
        return text

    updated = 0
    for path in iter_clinic_files(clinics_dir):
        document = read_document(path)
        if document is None:
            continue
        rewritten = _replace_strings(document, replace)
        if rewritten != document:
            _write_text(path, dump_document(rewritten))
            updated += 1
    if updated:
        logger.info("Rewrote asset paths in %d clinic files", updated)
    return updated
