"""Tests for markup extraction."""

from pageclone.phases.extract import extract_page_data

BASE_URL = "https://example.com/free-ai-tools"


class TestExtractPageData:
    def test_metadata(self, source_html):
        meta = extract_page_data(source_html, BASE_URL).metadata
        assert meta.title == "Free AI Tools Directory"
        assert meta.description == "Browse free AI tools"
        assert meta.og_title == "Free AI Tools"
        assert meta.canonical == "https://example.com/free-ai-tools"

    def test_text_blocks_in_document_order(self, source_html):
        blocks = extract_page_data(source_html, BASE_URL).text_content
        assert [(b.tag, b.content) for b in blocks] == [
            ("h1", "Free AI Tools"),
            ("p", "Discover the best free AI tools for writing and design."),
            ("li", "Writing assistants"),
            ("li", "Image generators"),
        ]
        assert [b.order for b in blocks] == [0, 1, 2, 3]
        assert blocks[0].id == "h1-0"

    def test_scripts_and_styles_stripped(self, source_html):
        data = extract_page_data(source_html, BASE_URL)
        contents = " ".join(b.content for b in data.text_content)
        assert "should not appear" not in contents
        assert "color" not in contents

    def test_images_skip_data_uris(self, source_html):
        images = extract_page_data(source_html, BASE_URL).images
        assert [i.src for i in images] == ["https://cdn.example.com/logo.png", "/images/hero.jpg"]
        assert images[0].alt == "Logo"
        assert (images[0].width, images[0].height) == (120, 40)
        assert images[1].width is None

    def test_links_classified_and_javascript_skipped(self, source_html):
        links = extract_page_data(source_html, BASE_URL).links
        assert [(l.href, l.type) for l in links] == [
            ("/tools", "internal"),
            ("https://other.org/page", "external"),
            ("#top", "anchor"),
        ]

    def test_lists_and_structured_data(self, source_html):
        data = extract_page_data(source_html, BASE_URL)
        assert len(data.lists) == 1
        assert data.lists[0].items == ["Writing assistants", "Image generators"]
        assert data.lists[0].ordered is False
        assert data.structured_data == [{"@type": "WebPage", "name": "Free AI Tools"}]

    def test_item_counts(self, source_html):
        counts = extract_page_data(source_html, BASE_URL).item_counts
        assert (counts.text, counts.images, counts.links, counts.list_items) == (4, 2, 3, 2)

    def test_empty_markup(self):
        data = extract_page_data("", BASE_URL)
        assert data.text_content == []
        assert data.metadata.title == ""

    def test_invalid_json_ld_skipped(self):
        html = '<html><head><script type="application/ld+json">{broken</script></head><body></body></html>'
        assert extract_page_data(html, BASE_URL).structured_data == []
