from datetime import date

import pytest
import yaml

from clinic_discovery.core import store
from clinic_discovery.etl.transform import parse_address_components, to_clinic_record
from clinic_discovery.jobs import extract_logos
from clinic_discovery.models import RawPlace


class FakeExtractor:
    def __init__(self, found=None):
        self.found = found or {}
        self.calls = []
        self.closed = False

    def extract(self, website, slug):
        self.calls.append((website, slug))
        return self.found.get(slug)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.closed = True


@pytest.fixture
def sleeps(monkeypatch):
    calls = []
    monkeypatch.setattr(extract_logos.time, "sleep", calls.append)
    return calls


def _write_clinic(settings, make_place, profile, name, **overrides):
    place = RawPlace.from_api(make_place(place_id=name, name=name))
    record = to_clinic_record(place, parse_address_components(place.address_components), profile, today=date(2025, 1, 1))
    for key, value in overrides.items():
        setattr(record, key, value)
    return store.upsert_clinic(settings.clinics_dir, record)


def test_backfill_only_targets_clinics_with_site_and_no_logo(settings, make_place, profile, sleeps):
    settings.clinics_dir.mkdir(parents=True)
    _write_clinic(settings, make_place, profile, "Alpha Plastic Surgery")
    _write_clinic(settings, make_place, profile, "Beta Plastic Surgery", logo="/images/clinics/logos/beta.jpg")
    _write_clinic(settings, make_place, profile, "Gamma Plastic Surgery", website=None)
    _write_clinic(settings, make_place, profile, "Delta Plastic Surgery")
    extractor = FakeExtractor({"alpha-plastic-surgery": "/images/clinics/logos/alpha-plastic-surgery.png"})

    updated = extract_logos.backfill_logos(settings, extractor=extractor)

    assert updated == 1
    assert [slug for _, slug in extractor.calls] == ["alpha-plastic-surgery", "delta-plastic-surgery"]
    assert sleeps == [extract_logos.REQUEST_DELAY_SECONDS]
    assert extractor.closed
    alpha = store.load_clinic(settings.clinics_dir / "alpha-plastic-surgery.yaml")
    assert alpha.logo == "/images/clinics/logos/alpha-plastic-surgery.png"
    assert alpha.reviews[0].author == "Jane M. D."
    assert store.load_clinic(settings.clinics_dir / "delta-plastic-surgery.yaml").logo is None


def test_backfill_respects_limit_and_skips_unreadable(settings, make_place, profile, sleeps):
    settings.clinics_dir.mkdir(parents=True)
    (settings.clinics_dir / "aaa-broken.yaml").write_text("name: [unclosed\n", encoding="utf-8")
    _write_clinic(settings, make_place, profile, "Alpha Plastic Surgery")
    _write_clinic(settings, make_place, profile, "Delta Plastic Surgery")
    extractor = FakeExtractor()

    assert extract_logos.backfill_logos(settings, extractor=extractor, limit=1) == 0
    assert extractor.calls == [("https://smithplastics.example.com", "alpha-plastic-surgery")]


def test_backfill_with_no_clinic_directory(settings, sleeps):
    assert extract_logos.backfill_logos(settings, extractor=FakeExtractor()) == 0


def test_backfill_keeps_keys_outside_the_record_schema(settings, sleeps):
    settings.clinics_dir.mkdir(parents=True)
    path = settings.clinics_dir / "curated-clinic.yaml"
    path.write_text(
        "name: Curated Clinic\n"
        "slug: curated-clinic\n"
        "website: https://curated.example.com\n"
        "logo: null\n"
        "email: front@curated.example.com\n"
        "surgeons:\n"
        "  - name: Dr. Ana Ruiz\n"
        "reviews:\n"
        "  - author: Ann L.\n"
        "    rating: 5\n"
        "    procedure: Rhinoplasty\n",
        encoding="utf-8",
    )
    extractor = FakeExtractor({"curated-clinic": "/images/clinics/logos/curated-clinic.png"})

    assert extract_logos.backfill_logos(settings, extractor=extractor) == 1

    document = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert document["logo"] == "/images/clinics/logos/curated-clinic.png"
    assert document["email"] == "front@curated.example.com"
    assert document["surgeons"] == [{"name": "Dr. Ana Ruiz"}]
    assert document["reviews"][0]["procedure"] == "Rhinoplasty"
    assert extractor.calls == [("https://curated.example.com", "curated-clinic")]
