"""Move locally downloaded images to durable storage."""

import json
import logging
import time
from pathlib import Path
from typing import Dict, Optional

from clinic_discovery.core.config import PUBLIC_SUBDIR, Settings
from clinic_discovery.core.store import rewrite_asset_paths
from clinic_discovery.vendors.blob_store import BlobStoreError, BlobUploader

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".webp", ".svg", ".gif"}
UPLOAD_DELAY_SECONDS = 0.05


def load_mapping(path: Path) -> Dict[str, str]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def save_mapping(path: Path, mapping: Dict[str, str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(mapping, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


def public_url_path(local_path: str) -> str:
    """'public/images/x.jpg' -> '/images/x.jpg'"""
    prefix = f"{PUBLIC_SUBDIR.as_posix()}/"
    return "/" + (local_path[len(prefix):] if local_path.startswith(prefix) else local_path)


def upload_new_assets(settings: Settings, uploader: Optional[BlobUploader] = None) -> int:
    """Upload logos missing from the mapping; returns the number uploaded.

    Each local path is uploaded at most once. The mapping is only appended
    to, and is saved after the batch when anything new was uploaded.
    """
    if uploader is None:
        if not settings.blob_token:
            logger.warning("No BLOB_READ_WRITE_TOKEN; skipping asset upload")
            return 0
        uploader = BlobUploader(settings.blob_token, settings.blob_api_url)

    logos_dir = settings.logos_dir
    if not logos_dir.is_dir():
        return 0

    mapping = load_mapping(settings.blob_mapping_path)
    uploaded = 0
    for file in sorted(logos_dir.iterdir()):
        if file.suffix.lower() not in IMAGE_SUFFIXES:
            continue
        local_path = file.relative_to(settings.site_root).as_posix()
        if local_path in mapping:
            continue
        try:
            mapping[local_path] = uploader.upload(file, public_url_path(local_path).lstrip("/"))
        except (BlobStoreError, OSError, ValueError) as exc:
            logger.warning("Failed to upload %s: %s", file.name, exc)
            continue
        uploaded += 1
        time.sleep(UPLOAD_DELAY_SECONDS)

    if uploaded:
        save_mapping(settings.blob_mapping_path, mapping)
        logger.info("Uploaded %d new assets", uploaded)
    return uploaded


def sync_assets(settings: Settings, uploader: Optional[BlobUploader] = None) -> int:
    """Upload new assets, then point clinic files at every mapped URL."""
    uploaded = upload_new_assets(settings, uploader)
    mapping = load_mapping(settings.blob_mapping_path)
    replacements = {public_url_path(local): url for local, url in mapping.items()}
    rewrite_asset_paths(settings.clinics_dir, replacements)
    return uploaded
