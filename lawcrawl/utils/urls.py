"""URL helpers shared by parsers, the link discoverer and the frontier."""

from __future__ import annotations

from urllib.parse import urldefrag, urljoin

SKIPPED_SCHEMES = ("javascript:", "mailto:", "tel:", "data:")


def ensure_absolute_url(href: str | None, base: str) -> str | None:
    """Resolve ``href`` against ``base`` and drop any fragment.

    Protocol-relative hrefs get ``https:``. Returns None for empty hrefs,
    same-page anchors and non-HTTP schemes. Applying it to its own output
    returns the same value.
    """
    if not href:
        return None
    href = href.strip()
    if not href or href.startswith("#") or href.lower().startswith(SKIPPED_SCHEMES):
        return None
    if href.startswith("//"):
        href = "https:" + href
    url, _ = urldefrag(urljoin(base, href))
    if not url.startswith(("http://", "https://")):
        return None
    return url


def is_same_site(url: str, base_url: str) -> bool:
    """True if ``url`` lives under the configured site prefix."""
    return url.startswith(base_url)
