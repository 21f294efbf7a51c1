"""Website logo discovery for clinics that have no photo."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Callable, List, Optional, Tuple
from urllib.parse import urljoin, urlparse, urlunparse

import requests
from bs4 import BeautifulSoup

from clinic_discovery.core.config import LOGOS_URL_PREFIX

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
PAGE_TIMEOUT = 10
IMAGE_TIMEOUT = 15
MIN_LOGO_BYTES = 500

_LOGO_RE = re.compile("logo", re.IGNORECASE)
_EXTENSIONS = (("jpeg", "jpg"), ("jpg", "jpg"), ("svg", "svg"), ("webp", "webp"), ("gif", "gif"))


def sanitize_website(raw_url: str) -> Optional[str]:
    """Normalise raw website strings into absolute https URLs."""

    if not raw_url:
        return None

    url = raw_url.strip()
    if not url:
        return None

    parsed = urlparse(url, scheme="https")
    if not parsed.netloc:
        parsed = urlparse(f"https://{url}")

    if not parsed.netloc:
        return None

    normalized_path = parsed.path or "/"
    if not normalized_path.startswith("/"):
        normalized_path = f"/{normalized_path}"

    return urlunparse(parsed._replace(path=normalized_path, fragment=""))


def fetch_page(session: requests.Session, url: str, *, timeout: int = PAGE_TIMEOUT) -> Optional[Tuple[str, BeautifulSoup]]:
    """Fetch a URL and return the final URL + soup when it is HTML content."""

    try:
        response = session.get(url, timeout=timeout, allow_redirects=True)
        response.raise_for_status()
    except requests.RequestException as exc:  # noqa: BLE001
        logger.warning("Failed to fetch %s: %s", url, exc)
        return None

    content_type = response.headers.get("Content-Type", "").lower()
    if "text/html" not in content_type:
        logger.debug("Skipping non-HTML content at %s (content-type=%s)", url, content_type)
        return None
    return response.url, BeautifulSoup(response.text, "html.parser")


def _og_image(soup: BeautifulSoup) -> Optional[str]:
    tag = soup.find("meta", attrs={"property": "og:image"})
    return tag.get("content") if tag else None


def _classes(tag) -> str:
    value = tag.get("class") or []
    return " ".join(value) if isinstance(value, list) else str(value)


def _logo_img(soup: BeautifulSoup) -> Optional[str]:
    for img in soup.find_all("img", src=True):
        if _LOGO_RE.search(_classes(img)) or _LOGO_RE.search(img.get("id") or ""):
            return img["src"]
    for img in soup.find_all("img", src=True):
        if _LOGO_RE.search(img["src"]):
            return img["src"]
    for anchor in soup.find_all("a"):
        if _LOGO_RE.search(_classes(anchor)):
            img = anchor.find("img", src=True)
            if img:
                return img["src"]
    return None


def _header_img(soup: BeautifulSoup) -> Optional[str]:
    header = soup.find("header")
    img = header.find("img", src=True) if header else None
    return img["src"] if img else None


def _site_icon(soup: BeautifulSoup) -> Optional[str]:
    links = soup.find_all("link", href=True)
    for rel in ("apple-touch-icon", "icon"):
        for link in links:
            rels = link.get("rel") or []
            if isinstance(rels, str):
                rels = rels.split()
            if rel in (value.lower() for value in rels):
                return link["href"]
    return None


STRATEGIES: List[Callable[[BeautifulSoup], Optional[str]]] = [_og_image, _logo_img, _header_img, _site_icon]


def find_logo_url(soup: BeautifulSoup, base_url: str) -> Optional[str]:
    """Apply each strategy in order and return the first hit as an absolute URL."""
    for strategy in STRATEGIES:
        candidate = (strategy(soup) or "").strip()
        if candidate:
            return urljoin(base_url, candidate)
    return None


def extension_for(content_type: str) -> str:
    lowered = (content_type or "").lower()
    for marker, extension in _EXTENSIONS:
        if marker in lowered:
            return extension
    return "png"


class LogoExtractor:
    """Finds and downloads a clinic's logo from its own website."""

    def __init__(
        self,
        logos_dir: Path,
        *,
        url_prefix: str = LOGOS_URL_PREFIX,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.logos_dir = Path(logos_dir)
        self.url_prefix = url_prefix
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)
        self.session.headers.setdefault("Accept", "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8")

    def extract(self, website: str, slug: str) -> Optional[str]:
        """Return the public path of the saved logo, or ``None``."""
        root_url = sanitize_website(website)
        if not root_url:
            return None

        fetched = fetch_page(self.session, root_url)
        if not fetched:
            return None
        final_url, soup = fetched

        logo_url = find_logo_url(soup, final_url)
        if not logo_url:
            logger.info("No logo found on %s", final_url)
            return None
        return self._download(logo_url, slug)

    def _download(self, logo_url: str, slug: str) -> Optional[str]:
        try:
            response = self.session.get(logo_url, timeout=IMAGE_TIMEOUT)
            response.raise_for_status()
        except requests.RequestException as exc:  # noqa: BLE001
            logger.warning("Logo download failed for %s: %s", logo_url, exc)
            return None

        content = response.content or b""
        if len(content) < MIN_LOGO_BYTES:
            logger.info("Logo at %s too small (%d bytes), skipping", logo_url, len(content))
            return None

        filename = f"{slug}.{extension_for(response.headers.get('Content-Type', ''))}"
        self.logos_dir.mkdir(parents=True, exist_ok=True)
        (self.logos_dir / filename).write_bytes(content)
        logger.info("Saved logo %s (%dKB)", filename, round(len(content) / 1024))
        return f"{self.url_prefix}{filename}"

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "LogoExtractor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: D401
        self.close()
