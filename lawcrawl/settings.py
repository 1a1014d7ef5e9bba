"""Site definitions (sites.yaml) and environment-backed store settings."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import yaml

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).resolve().parent / "config"
SITES_FILE = CONFIG_DIR / "sites.yaml"

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)

TIER_ORDER = ("parts", "titles", "chapters", "sections")

# sites.yaml tier name -> record kind it produces
TIER_KINDS = {"parts": "part", "titles": "title", "chapters": "chapter", "sections": "section"}


@dataclass
class CrawlSettings:
    """Retry, throttle and batching knobs. Defaults apply unless a site overrides them."""

    max_retries: int = 3
    retry_delay: float = 5.0
    rate_limit_delay: float = 2.0
    batch_delay: float = 2.0
    request_timeout: float = 30.0
    render_timeout: float = 60.0
    batch_size: int = 2
    flush_every: int = 50
    user_agent: str = USER_AGENT

    @classmethod
    def from_dict(cls, data: dict | None, base: "CrawlSettings | None" = None) -> "CrawlSettings":
        known = {f.name for f in fields(cls)}
        unknown = set(data or {}) - known
        if unknown:
            raise ConfigurationError(f"Unknown crawl settings: {', '.join(sorted(unknown))}")
        merged = {f.name: getattr(base or cls(), f.name) for f in fields(cls)}
        merged.update(data or {})
        return cls(**merged)


@dataclass
class TierConfig:
    """How to load and parse one listing tier (parts, titles, chapters or sections)."""

    kind: str
    rows: str
    fields: dict
    required: list[str] = field(default_factory=lambda: ["number"])
    display_name: Optional[str] = None
    url_template: Optional[str] = None
    render: bool = False
    wait_for: Optional[str] = None
    content: Optional[str] = None


@dataclass
class SiteConfig:
    """One target legislature website."""

    slug: str
    name: str
    abbr: str
    base_url: str
    start_url: str
    mode: str
    crawl: CrawlSettings
    verify_ssl: bool = True
    parser: Optional[str] = None
    selectors: dict = field(default_factory=dict)
    tiers: dict[str, TierConfig] = field(default_factory=dict)

    @property
    def host(self) -> str:
        return urlparse(self.base_url).hostname or ""


def _build_tier(slug: str, name: str, raw: dict) -> TierConfig:
    if "rows" not in raw or "fields" not in raw:
        raise ConfigurationError(f"Site '{slug}' tier '{name}' needs 'rows' and 'fields'")
    return TierConfig(
        kind=TIER_KINDS[name],
        rows=raw["rows"],
        fields=raw["fields"],
        required=raw.get("required", ["number"]),
        display_name=raw.get("display_name"),
        url_template=raw.get("url_template"),
        render=raw.get("render", False),
        wait_for=raw.get("wait_for"),
        content=raw.get("content"),
    )


def _build_site(slug: str, raw: dict, defaults: CrawlSettings) -> SiteConfig:
    missing = [k for k in ("name", "base_url", "mode") if k not in raw]
    if missing:
        raise ConfigurationError(f"Site '{slug}' is missing {', '.join(missing)}")

    mode = raw["mode"]
    if mode not in ("crawl", "tiered"):
        raise ConfigurationError(f"Site '{slug}' has unknown mode '{mode}'")

    raw_tiers = raw.get("tiers", {})
    unknown = set(raw_tiers) - set(TIER_ORDER)
    if unknown:
        raise ConfigurationError(f"Site '{slug}' has unknown tiers: {', '.join(sorted(unknown))}")
    tiers = {name: _build_tier(slug, name, raw_tiers[name]) for name in TIER_ORDER if name in raw_tiers}
    if mode == "tiered" and "titles" not in tiers:
        raise ConfigurationError(f"Site '{slug}' in tiered mode needs a 'titles' tier")

    base_url = raw["base_url"].rstrip("/")
    return SiteConfig(
        slug=slug,
        name=raw["name"],
        abbr=raw.get("abbr", ""),
        base_url=base_url,
        start_url=raw.get("start_url", base_url),
        mode=mode,
        crawl=CrawlSettings.from_dict(raw.get("crawl"), defaults),
        verify_ssl=raw.get("verify_ssl", True),
        parser=raw.get("parser"),
        selectors=raw.get("selectors", {}),
        tiers=tiers,
    )


def load_sites(path: Path | None = None) -> dict[str, SiteConfig]:
    """Load every site definition from sites.yaml."""
    path = path or SITES_FILE
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read site config {path}: {e}") from e

    defaults = CrawlSettings.from_dict(data.get("defaults"))
    sites = {slug: _build_site(slug, raw, defaults) for slug, raw in data.get("sites", {}).items()}
    logger.debug("Loaded %d site definitions from %s", len(sites), path)
    return sites


def get_site(slug: str, path: Path | None = None) -> SiteConfig:
    sites = load_sites(path)
    if slug not in sites:
        raise ConfigurationError(f"Unknown site '{slug}'. Available: {', '.join(sorted(sites))}")
    return sites[slug]


@dataclass
class StoreSettings:
    """Document store credentials, supplied through the environment."""

    project_id: str
    credentials_path: str
    database: Optional[str] = None

    REQUIRED = ("FIREBASE_PROJECT_ID", "GOOGLE_APPLICATION_CREDENTIALS")

    @classmethod
    def from_env(cls, environ: dict | None = None) -> "StoreSettings":
        """Read settings from the environment, failing on any missing variable."""
        env = os.environ if environ is None else environ
        missing = [name for name in cls.REQUIRED if not env.get(name)]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}"
            )
        credentials_path = env["GOOGLE_APPLICATION_CREDENTIALS"]
        if not Path(credentials_path).is_file():
            raise ConfigurationError(f"Credentials file not found: {credentials_path}")
        return cls(
            project_id=env["FIREBASE_PROJECT_ID"],
            credentials_path=credentials_path,
            database=env.get("FIREBASE_DATABASE") or None,
        )
