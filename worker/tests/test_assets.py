import json

import pytest
import yaml

from clinic_discovery.core import assets
from clinic_discovery.vendors.blob_store import BlobStoreError


class DummyUploader:
    def __init__(self, fail_for=()):
        self.calls = []
        self.fail_for = set(fail_for)

    def upload(self, local_file, pathname):
        self.calls.append(pathname)
        if local_file.name in self.fail_for:
            raise BlobStoreError("rejected")
        return f"https://blob.example.com/{pathname}"


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(assets.time, "sleep", lambda _: None)


def _logo(settings, name, size=2000):
    settings.logos_dir.mkdir(parents=True, exist_ok=True)
    (settings.logos_dir / name).write_bytes(b"x" * size)


def test_public_url_path():
    assert assets.public_url_path("public/images/clinics/logos/a.jpg") == "/images/clinics/logos/a.jpg"


def test_upload_new_assets_uploads_each_path_once(settings):
    _logo(settings, "a.jpg")
    _logo(settings, "b.png")
    (settings.logos_dir / "notes.txt").write_text("skip")
    uploader = DummyUploader()

    assert assets.upload_new_assets(settings, uploader) == 2
    assert assets.upload_new_assets(settings, uploader) == 0

    assert uploader.calls == ["images/clinics/logos/a.jpg", "images/clinics/logos/b.png"]
    mapping = json.loads(settings.blob_mapping_path.read_text(encoding="utf-8"))
    assert mapping == {
        "public/images/clinics/logos/a.jpg": "https://blob.example.com/images/clinics/logos/a.jpg",
        "public/images/clinics/logos/b.png": "https://blob.example.com/images/clinics/logos/b.png",
    }


def test_upload_failures_are_retried_next_time(settings):
    _logo(settings, "a.jpg")
    _logo(settings, "b.jpg")

    assert assets.upload_new_assets(settings, DummyUploader(fail_for={"a.jpg"})) == 1
    mapping = assets.load_mapping(settings.blob_mapping_path)
    assert list(mapping) == ["public/images/clinics/logos/b.jpg"]

    retry = DummyUploader()
    assert assets.upload_new_assets(settings, retry) == 1
    assert retry.calls == ["images/clinics/logos/a.jpg"]


def test_upload_skipped_without_token(settings):
    _logo(settings, "a.jpg")
    assert assets.upload_new_assets(settings) == 0
    assert not settings.blob_mapping_path.exists()


def test_sync_assets_rewrites_clinic_files(settings):
    _logo(settings, "smith.jpg")
    settings.clinics_dir.mkdir(parents=True)
    clinic = settings.clinics_dir / "smith.yaml"
    clinic.write_text("name: Smith\nlogo: /images/clinics/logos/smith.jpg\n", encoding="utf-8")

    assert assets.sync_assets(settings, DummyUploader()) == 1

    assert yaml.safe_load(clinic.read_text(encoding="utf-8"))["logo"] == "https://blob.example.com/images/clinics/logos/smith.jpg"
    before = clinic.read_bytes()
    assets.sync_assets(settings, DummyUploader())
    assert clinic.read_bytes() == before
