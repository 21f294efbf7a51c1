"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass, field, replace
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional, Tuple

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

CLINICS_SUBDIR = Path("src/content/clinics")
CITIES_SUBDIR = Path("src/content/cities")
LOGOS_SUBDIR = Path("public/images/clinics/logos")
PUBLIC_SUBDIR = Path("public")
LOGOS_URL_PREFIX = "/" + LOGOS_SUBDIR.relative_to(PUBLIC_SUBDIR).as_posix() + "/"
MAX_PAGE_SIZE = 20


class ConfigError(RuntimeError):
    """Raised when mandatory configuration is missing."""


@dataclass(frozen=True)
class Settings:
    google_api_key: str
    site_root: Path
    ledger_path: Path
    blob_mapping_path: Path
    blob_token: str = ""
    blob_api_url: str = "https://blob.vercel-storage.com"
    profile_path: Optional[Path] = None
    max_pages: int = 3
    page_size: int = 20
    page_delay: float = 0.2
    query_delay: float = 0.3
    city_pause: float = 5.0
    city_timeout: int = 300
    min_asset_bytes: int = 1000
    build_command: str = "npm run build"
    deploy_command: str = "./deploy.sh"
    git_remote: str = "origin"
    git_branch: str = "main"

    @property
    def clinics_dir(self) -> Path:
        return self.site_root / CLINICS_SUBDIR

    @property
    def cities_dir(self) -> Path:
        return self.site_root / CITIES_SUBDIR

    @property
    def logos_dir(self) -> Path:
        return self.site_root / LOGOS_SUBDIR

    @property
    def logos_url_prefix(self) -> str:
        return LOGOS_URL_PREFIX

    def require_google_api_key(self) -> str:
        if not self.google_api_key:
            raise ConfigError("GOOGLE_API_KEY must be set in the environment to run discovery.")
        return self.google_api_key


def _env_ms(name: str, default: str) -> float:
    return int(os.getenv(name, default)) / 1000.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    google_api_key = os.getenv("GOOGLE_API_KEY", "")
    blob_token = os.getenv("BLOB_READ_WRITE_TOKEN", "")
    site_root = Path(os.getenv("SITE_ROOT") or os.getcwd()).resolve()
    ledger_path = Path(os.getenv("LEDGER_PATH") or site_root / "scripts" / ".clinic-locations.json")
    blob_mapping_path = Path(os.getenv("BLOB_MAPPING_PATH") or site_root / "scripts" / ".blob-mapping.json")
    profile_raw = os.getenv("DISCOVERY_PROFILE")

    if not google_api_key:
        logger.warning("GOOGLE_API_KEY is not configured; Google Places requests will fail.")
    if not blob_token:
        logger.warning("BLOB_READ_WRITE_TOKEN is not configured; asset uploads will be skipped.")

    return Settings(
        google_api_key=google_api_key,
        site_root=site_root,
        ledger_path=ledger_path,
        blob_mapping_path=blob_mapping_path,
        blob_token=blob_token,
        blob_api_url=os.getenv("BLOB_API_URL", "https://blob.vercel-storage.com"),
        profile_path=Path(profile_raw) if profile_raw else None,
        max_pages=int(os.getenv("WORKER_MAX_PAGES", "3")),
        page_size=max(1, min(int(os.getenv("WORKER_PAGE_SIZE", "20")), MAX_PAGE_SIZE)),
        page_delay=_env_ms("WORKER_PAGE_DELAY_MS", "200"),
        query_delay=_env_ms("WORKER_QUERY_DELAY_MS", "300"),
        city_pause=float(os.getenv("CITY_PAUSE_SECONDS", "5")),
        city_timeout=int(os.getenv("CITY_TIMEOUT_SECONDS", "300")),
        min_asset_bytes=int(os.getenv("MIN_ASSET_BYTES", "1000")),
        build_command=os.getenv("BUILD_COMMAND", "npm run build"),
        deploy_command=os.getenv("DEPLOY_COMMAND", "./deploy.sh"),
        git_remote=os.getenv("GIT_REMOTE", "origin"),
        git_branch=os.getenv("GIT_BRANCH", "main"),
    )


# ---------- Discovery profile ----------

DEFAULT_QUERIES: Tuple[str, ...] = (
    "plastic surgery",
    "cosmetic surgery",
    "plastic surgeon",
    "rhinoplasty",
    "breast augmentation",
    "liposuction",
    "tummy tuck",
    "BBL surgeon",
    "mommy makeover",
    "facelift surgeon",
    "medspa",
    "body contouring",
)

DEFAULT_KEYWORDS: Tuple[str, ...] = (
    "plastic",
    "cosmetic",
    "aesthetic",
    "surgery",
    "surgeon",
    "medspa",
    "med spa",
)

DEFAULT_EXCLUDE_KEYWORDS: Tuple[str, ...] = (
    "dental",
    "dentist",
    "veterinary",
    "chiropract",
    "physical therapy",
    "optom",
    "orthodon",
)

DEFAULT_CITY_COORDS: Dict[str, Tuple[float, float]] = {
    "miami": (25.7617, -80.1918),
    "fort-myers": (26.6406, -81.8723),
    "tampa": (27.9506, -82.4572),
    "orlando": (28.5383, -81.3792),
    "los-angeles": (34.0522, -118.2437),
    "new-york": (40.7128, -74.0060),
    "houston": (29.7604, -95.3698),
    "dallas": (32.7767, -96.7970),
    "chicago": (41.8781, -87.6298),
    "phoenix": (33.4484, -112.0740),
    "san-diego": (32.7157, -117.1611),
    "atlanta": (33.7490, -84.3880),
    "denver": (39.7392, -104.9903),
}


@dataclass(frozen=True)
class DiscoveryProfile:
    """What to search for and how to recognise a relevant result."""

    queries: Tuple[str, ...] = DEFAULT_QUERIES
    keywords: Tuple[str, ...] = DEFAULT_KEYWORDS
    exclude_keywords: Tuple[str, ...] = DEFAULT_EXCLUDE_KEYWORDS
    category_code: str = "plastic-surgery"
    category_label: str = "Plastic Surgery"
    practice_noun: str = "plastic surgery practice"
    services_phrase: str = "cosmetic and reconstructive surgery services"
    specialties: Tuple[str, ...] = ("Cosmetic Surgery",)
    radius_meters: float = 50000.0
    city_coords: Dict[str, Tuple[float, float]] = field(default_factory=lambda: dict(DEFAULT_CITY_COORDS))


_TUPLE_FIELDS = ("queries", "keywords", "exclude_keywords", "specialties")
_SCALAR_FIELDS = ("category_code", "category_label", "practice_noun", "services_phrase", "radius_meters")


def load_profile(path: Optional[Path] = None) -> DiscoveryProfile:
    """Build a profile from the defaults, overridden by an optional YAML file."""
    profile = DiscoveryProfile()
    if path is None:
        return profile

    with Path(path).open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Discovery profile {path} must be a mapping.")

    overrides: Dict[str, object] = {}
    for name in _TUPLE_FIELDS:
        if name in data:
            overrides[name] = tuple(str(item) for item in data[name] or [])
    for name in _SCALAR_FIELDS:
        if name in data:
            overrides[name] = float(data[name]) if name == "radius_meters" else str(data[name])

    coords = dict(profile.city_coords)
    for slug, value in (data.get("city_coords") or {}).items():
        try:
            coords[str(slug)] = (float(value["lat"]), float(value["lng"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid coordinates for {slug!r} in {path}") from exc
    overrides["city_coords"] = coords

    logger.info("Loaded discovery profile from %s", path)
    return replace(profile, **overrides)
