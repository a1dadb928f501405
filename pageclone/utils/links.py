"""Link classification shared by snapshot analysis and markup extraction."""

from urllib.parse import urljoin, urlparse

from pageclone.models import LinkType

_WEB_SCHEMES = ("http", "https")


def classify_link(href: str, base_url: str) -> LinkType:
    """anchor for '#...', external for another host or a non-web scheme, else internal."""
    if href.startswith("#"):
        return "anchor"
    try:
        parsed = urlparse(href)
        if parsed.scheme and parsed.scheme.lower() not in _WEB_SCHEMES:
            return "external"
        target = urlparse(urljoin(base_url, href))
        base = urlparse(base_url)
    except ValueError:
        # Unparseable hrefs are treated as relative paths.
        return "internal"
    if target.hostname and base.hostname and target.hostname != base.hostname:
        return "external"
    return "internal"


def internal_path(href: str) -> str:
    """Path part of an internal href with query string and fragment removed."""
    href = href.split("#", 1)[0].split("?", 1)[0]
    parsed = urlparse(href)
    if parsed.scheme or parsed.netloc:
        return parsed.path
    return href
