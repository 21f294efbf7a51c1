"""Durable per-city status ledger for region runs."""

import json
import logging
from datetime import date
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from clinic_discovery.schemas import CityEntry, LocationsLedger, Region

logger = logging.getLogger(__name__)

MAX_ERROR_CHARS = 200


class LedgerError(RuntimeError):
    """Raised when the ledger is missing, malformed, or lacks a region."""


def load_ledger(path: Path) -> LocationsLedger:
    try:
        with Path(path).open("r", encoding="utf-8") as fh:
            return LocationsLedger.model_validate(json.load(fh))
    except FileNotFoundError as exc:
        raise LedgerError(f"Ledger file {path} does not exist") from exc
    except (json.JSONDecodeError, ValidationError) as exc:
        raise LedgerError(f"Ledger file {path} is malformed: {exc}") from exc


def save_ledger(path: Path, ledger: LocationsLedger) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = ledger.model_dump(mode="json", exclude_none=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


def get_region(ledger: LocationsLedger, region_id: str) -> Region:
    region = ledger.regions.get(region_id)
    if region is None:
        available = ", ".join(sorted(ledger.regions)) or "(none)"
        raise LedgerError(f'Region "{region_id}" not found. Available: {available}')
    return region


def queued_cities(region: Region) -> List[CityEntry]:
    return [entry for entry in region.cities if entry.status == "queued"]


def mark_running(entry: CityEntry) -> None:
    entry.status = "running"


def mark_done(entry: CityEntry, clinics: int, today: Optional[date] = None) -> None:
    entry.status = "done"
    entry.clinics = clinics
    entry.date = (today or date.today()).isoformat()
    entry.error = None


def mark_failed(entry: CityEntry, error: str) -> None:
    entry.status = "failed"
    entry.error = (error or "Unknown error")[:MAX_ERROR_CHARS]


def requeue(region: Region, city: Optional[str] = None) -> List[CityEntry]:
    """Reset failed/running entries (optionally one city) back to queued."""
    reset: List[CityEntry] = []
    for entry in region.cities:
        if entry.status not in ("failed", "running"):
            continue
        if city and entry.city.lower() != city.lower():
            continue
        entry.status = "queued"
        entry.error = None
        reset.append(entry)
    return reset
