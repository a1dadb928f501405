"""Tests for validation, naming and link helpers."""

import pytest

from pageclone.utils.links import classify_link, internal_path
from pageclone.utils.naming import component_name_from_path, generate_slug_from_url, pascal_case, slugify
from pageclone.utils.validator import validate_feature_name, validate_slug, validate_url

BASE_URL = "https://example.com/free-ai-tools"


# --- validator ---

class TestValidateUrl:
    def test_valid_url_stripped(self):
        assert validate_url("  https://example.com/a ") == "https://example.com/a"

    @pytest.mark.parametrize("url", ["", "ftp://example.com", "example.com/a", "https://"])
    def test_rejected(self, url):
        with pytest.raises(ValueError):
            validate_url(url)


class TestValidateSlug:
    @pytest.mark.parametrize("slug", ["demo", "free-ai-tools", "page_2"])
    def test_valid(self, slug):
        assert validate_slug(slug) == slug

    @pytest.mark.parametrize("slug", ["", "Demo", "a/b", "../x", "-lead", "trail-"])
    def test_invalid(self, slug):
        with pytest.raises(ValueError):
            validate_slug(slug)


def test_feature_name_must_not_be_blank():
    assert validate_feature_name(" Tools ") == "Tools"
    with pytest.raises(ValueError):
        validate_feature_name("   ")


# --- naming ---

class TestNaming:
    def test_slugify(self):
        assert slugify("Free AI Tools!") == "free-ai-tools"

    def test_pascal_case(self):
        assert pascal_case("free-ai_tools") == "FreeAiTools"

    def test_component_name_from_path(self):
        assert component_name_from_path("src/components/tool-card.tsx") == "ToolCard"
        assert component_name_from_path("src/lib/services/tools.service.ts") == "ToolsService"

    @pytest.mark.parametrize("url,slug", [
        ("https://example.com/free-ai-tools", "free-ai-tools"),
        ("https://example.com/category/Writing%20Tools/", "writing-tools"),
        ("https://example.com/", "index"),
        ("https://example.com/!!!", "page"),
    ])
    def test_generate_slug_from_url(self, url, slug):
        assert generate_slug_from_url(url) == slug


# --- links ---

class TestLinks:
    @pytest.mark.parametrize("href,kind", [
        ("#section", "anchor"),
        ("/tools", "internal"),
        ("tools/writing", "internal"),
        ("https://example.com/about", "internal"),
        ("https://other.org/", "external"),
        ("mailto:hi@example.com", "external"),
        ("tel:+123", "external"),
    ])
    def test_classify_link(self, href, kind):
        assert classify_link(href, BASE_URL) == kind

    def test_internal_path(self):
        assert internal_path("/a/b?x=1#top") == "/a/b"
        assert internal_path("https://example.com/c") == "/c"
