"""Structured content extraction from raw page markup."""

import json
import logging
import re

from bs4 import BeautifulSoup

from pageclone.models import (
    ExtractedData,
    ImageData,
    ItemCounts,
    LinkData,
    ListData,
    PageMetadata,
    TextBlock,
    utc_now_iso,
)
from pageclone.utils.links import classify_link

logger = logging.getLogger(__name__)

TEXT_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6", "p", "span", "li"]
MIN_TEXT_LENGTH = 3

_WS_RE = re.compile(r"\s+")


def _clean(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def _meta_content(soup: BeautifulSoup, **attrs) -> str:
    tag = soup.find("meta", attrs=attrs)
    if tag and tag.get("content"):
        return str(tag["content"]).strip()
    return ""


def _extract_metadata(soup: BeautifulSoup) -> PageMetadata:
    title_tag = soup.find("title")
    canonical = soup.find("link", rel="canonical")
    return PageMetadata(
        title=_clean(title_tag.get_text()) if title_tag else "",
        description=_meta_content(soup, name="description"),
        og_title=_meta_content(soup, property="og:title"),
        og_description=_meta_content(soup, property="og:description"),
        og_image=_meta_content(soup, property="og:image"),
        canonical=str(canonical.get("href", "")).strip() if canonical else "",
    )


def _extract_structured_data(soup: BeautifulSoup) -> list:
    blocks = []
    for script in soup.find_all("script", type="application/ld+json"):
        raw = script.string or script.get_text()
        try:
            blocks.append(json.loads(raw))
        except (json.JSONDecodeError, TypeError):
            logger.debug("Skipping unparseable JSON-LD block")
    return blocks


def _extract_text(soup: BeautifulSoup) -> list[TextBlock]:
    blocks: list[TextBlock] = []
    for tag in soup.find_all(TEXT_TAGS):
        text = _clean(tag.get_text(" "))
        if len(text) < MIN_TEXT_LENGTH:
            continue
        order = len(blocks)
        blocks.append(TextBlock(id=f"{tag.name}-{order}", content=text, tag=tag.name, order=order))
    return blocks


def _int_attr(value) -> int | None:
    try:
        return int(str(value).strip().removesuffix("px"))
    except (TypeError, ValueError):
        return None


def _extract_images(soup: BeautifulSoup) -> list[ImageData]:
    images: list[ImageData] = []
    for img in soup.find_all("img"):
        src = str(img.get("src") or "").strip()
        if not src or src.startswith("data:"):
            continue
        images.append(
            ImageData(
                src=src,
                alt=str(img.get("alt") or ""),
                width=_int_attr(img.get("width")),
                height=_int_attr(img.get("height")),
            )
        )
    return images


def _extract_links(soup: BeautifulSoup, base_url: str) -> list[LinkData]:
    links: list[LinkData] = []
    for anchor in soup.find_all("a", href=True):
        href = str(anchor["href"]).strip()
        if not href or href.lower().startswith("javascript:"):
            continue
        links.append(LinkData(href=href, text=_clean(anchor.get_text(" ")), type=classify_link(href, base_url)))
    return links


def _extract_lists(soup: BeautifulSoup) -> list[ListData]:
    lists: list[ListData] = []
    for node in soup.find_all(["ul", "ol"]):
        items = [_clean(li.get_text(" ")) for li in node.find_all("li", recursive=False)]
        items = [item for item in items if item]
        if items:
            lists.append(ListData(id=f"list-{len(lists)}", ordered=node.name == "ol", items=items))
    return lists


def extract_page_data(html: str, base_url: str) -> ExtractedData:
    """Pull metadata, text blocks, images, links and lists out of raw markup.

    Script and style blocks are dropped before any text is read. JSON-LD
    blocks are parsed into ``structured_data`` first.
    """
    soup = BeautifulSoup(html or "", "lxml")
    structured = _extract_structured_data(soup)
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()

    text_content = _extract_text(soup)
    images = _extract_images(soup)
    links = _extract_links(soup, base_url)
    lists = _extract_lists(soup)

    return ExtractedData(
        metadata=_extract_metadata(soup),
        text_content=text_content,
        images=images,
        links=links,
        lists=lists,
        structured_data=structured,
        extracted_at=utc_now_iso(),
        item_counts=ItemCounts(
            text=len(text_content),
            images=len(images),
            links=len(links),
            list_items=sum(len(lst.items) for lst in lists),
        ),
    )
