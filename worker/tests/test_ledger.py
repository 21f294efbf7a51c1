import json
from datetime import date

import pytest

from clinic_discovery.core import ledger
from clinic_discovery.schemas import CityEntry, LocationsLedger


def _write(path, payload):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload), encoding="utf-8")


def test_load_and_save_round_trip(tmp_path):
    path = tmp_path / "ledger.json"
    _write(path, {"regions": {"south-florida": {"name": "South Florida", "cities": [{"city": "Miami", "state": "FL", "status": "queued"}]}}})

    data = ledger.load_ledger(path)
    ledger.mark_done(data.regions["south-florida"].cities[0], 12, date(2025, 2, 1))
    ledger.save_ledger(path, data)

    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved["regions"]["south-florida"]["cities"][0] == {
        "city": "Miami",
        "state": "FL",
        "status": "done",
        "clinics": 12,
        "date": "2025-02-01",
    }
    assert path.read_text(encoding="utf-8").endswith("\n")


def test_load_ledger_errors(tmp_path):
    with pytest.raises(ledger.LedgerError):
        ledger.load_ledger(tmp_path / "missing.json")

    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(ledger.LedgerError):
        ledger.load_ledger(bad)

    invalid = tmp_path / "invalid.json"
    _write(invalid, {"regions": {"x": {"name": "X", "cities": [{"city": "A", "state": "FL", "status": "paused"}]}}})
    with pytest.raises(ledger.LedgerError):
        ledger.load_ledger(invalid)


def test_get_region_lists_available_regions():
    data = LocationsLedger.model_validate({"regions": {"a": {"name": "A"}, "b": {"name": "B"}}})
    with pytest.raises(ledger.LedgerError, match="Available: a, b"):
        ledger.get_region(data, "nope")


def test_mark_failed_truncates_error():
    entry = CityEntry(city="Miami", state="FL", status="running")
    ledger.mark_failed(entry, "e" * 500)
    assert entry.status == "failed"
    assert len(entry.error) == 200


def test_mark_done_clears_error():
    entry = CityEntry(city="Miami", state="FL", status="running", error="old")
    ledger.mark_done(entry, 3, date(2025, 1, 1))
    assert entry.error is None
    assert entry.clinics == 3


def test_requeue_resets_failed_and_running_only():
    data = LocationsLedger.model_validate(
        {
            "regions": {
                "r": {
                    "name": "R",
                    "cities": [
                        {"city": "Miami", "state": "FL", "status": "failed", "error": "boom"},
                        {"city": "Tampa", "state": "FL", "status": "running"},
                        {"city": "Naples", "state": "FL", "status": "done", "clinics": 4},
                    ],
                }
            }
        }
    )
    region = data.regions["r"]

    assert [e.city for e in ledger.requeue(region, "miami")] == ["Miami"]
    assert region.cities[0].status == "queued" and region.cities[0].error is None
    assert [e.city for e in ledger.requeue(region)] == ["Tampa"]
    assert region.cities[2].status == "done"
    assert [e.city for e in ledger.queued_cities(region)] == ["Miami", "Tampa"]
