"""Input validation for URLs, feature names and page slugs before a run starts."""

import re
from urllib.parse import urlparse

_SLUG_RE = re.compile(r"^[a-z0-9]+(?:[-_][a-z0-9]+)*$")


def validate_url(url: str) -> str:
    """Validate that the url is an absolute http(s) URL.

    Returns the stripped URL on success.
    Raises ValueError otherwise.
    """
    if not isinstance(url, str) or not url.strip():
        raise ValueError("URL must be a non-empty string.")
    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise ValueError(f"Scheme '{parsed.scheme}' is not allowed. Use http or https.")
    if not parsed.hostname:
        raise ValueError("URL must have a valid hostname.")
    return url


def validate_slug(slug: str) -> str:
    """Validate a page slug. It doubles as a file name, so it must be kebab-case."""
    if not isinstance(slug, str) or not slug.strip():
        raise ValueError("Page slug must be a non-empty string.")
    slug = slug.strip()
    if not _SLUG_RE.match(slug):
        raise ValueError(
            f"Invalid page slug '{slug}': use lowercase letters, digits, '-' or '_'."
        )
    return slug


def validate_feature_name(name: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValueError("Feature name must be a non-empty string.")
    return name.strip()
