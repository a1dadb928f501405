"""Naming helpers: slugs, PascalCase identifiers and URL-derived page slugs."""

import re
from pathlib import PurePosixPath
from urllib.parse import unquote, urlparse


def slugify(name: str) -> str:
    """'Free AI Tools' -> 'free-ai-tools'."""
    slug = name.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def pascal_case(name: str) -> str:
    """'free-ai-tools' -> 'FreeAiTools'."""
    return "".join(word[:1].upper() + word[1:].lower() for word in re.split(r"[-_\s]+", name) if word)


def component_name_from_path(path: str) -> str:
    """'src/components/features/tool-card.tsx' -> 'ToolCard'."""
    stem = PurePosixPath(path).stem
    return "".join(part[:1].upper() + part[1:] for part in re.split(r"[-_.]", stem) if part)


def generate_slug_from_url(url: str) -> str:
    """Slug from the last path segment of a URL, 'index' for the site root."""
    try:
        path = unquote(urlparse(url).path)
    except ValueError:
        return "page"
    segments = [s for s in path.split("/") if s]
    last = segments[-1] if segments else "index"
    return slugify(last) or "page"
