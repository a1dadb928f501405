"""Tests for clone verification scoring."""

from pageclone.models import ExtractedData, ImageData, LinkData, PageMetadata, TextBlock
from pageclone.phases.extract import extract_page_data
from pageclone.phases.verify import SUGGESTIONS, verify_clone

BASE_URL = "https://example.com/free-ai-tools"


def _data(title="Page", texts=(), images=(), links=()):
    return ExtractedData(
        metadata=PageMetadata(title=title),
        text_content=[TextBlock(id=f"p-{i}", content=t, tag="p", order=i) for i, t in enumerate(texts)],
        images=[ImageData(src=s) for s in images],
        links=[LinkData(href=h, type="anchor" if h.startswith("#") else "internal") for h in links],
    )


def _fragments(n):
    return [f"{i} unique fragment about topic {i}" for i in range(n)]


class TestVerifyClone:
    def test_identical_pages_pass(self, source_html):
        source = extract_page_data(source_html, BASE_URL)
        clone = extract_page_data(source_html, BASE_URL)
        result = verify_clone(source, clone)
        assert result.passed is True
        assert result.score == 100
        assert result.issues == []
        assert result.suggestions == []

    def test_seventy_percent_text_is_critical(self):
        texts = _fragments(10)
        result = verify_clone(_data(texts=texts), _data(texts=texts[:7]))
        missing = [i for i in result.issues if i.type == "missing_text"]
        assert len(missing) == 1
        assert missing[0].severity == "critical"
        assert result.passed is False
        assert result.score == 73

    def test_critical_issue_fails_regardless_of_threshold(self):
        texts = _fragments(10)
        result = verify_clone(_data(texts=texts), _data(texts=texts[:7]), threshold=0)
        assert result.passed is False

    def test_score_rounds_half_up(self):
        result = verify_clone(_data(texts=_fragments(7)), _data())
        # 1 of 8 checks passes: 12.5 rounds to 13
        assert result.score == 13

    def test_title_prefix_match(self):
        source = _data(title="Free AI Tools Directory | Example")
        clone = _data(title="Free AI Tools Directory - Clone")
        assert verify_clone(source, clone).score == 100

    def test_title_mismatch_is_major(self):
        result = verify_clone(_data(title="Original"), _data(title="Different"))
        issue = result.issues[0]
        assert (issue.type, issue.severity) == ("data_mismatch", "major")
        assert issue.expected == "Original"
        assert result.score == 0

    def test_duplicate_text_counted_once(self):
        source = _data(texts=["Same heading text", "same heading text", "Another line here"])
        clone = _data(texts=["Same heading text", "Another line here"])
        assert verify_clone(source, clone).score == 100

    def test_clone_text_may_contain_source_probe(self):
        source = _data(texts=["Short intro"])
        clone = _data(texts=["Short intro, now with a longer tail"])
        assert verify_clone(source, clone).score == 100

    def test_missing_images_major(self):
        source = _data(images=["/a.png", "/b.png", "/c.png"])
        clone = _data(images=["/a.png"])
        result = verify_clone(source, clone)
        issue = next(i for i in result.issues if i.type == "missing_image")
        assert issue.severity == "major"
        assert SUGGESTIONS["missing_image"] in result.suggestions

    def test_anchor_links_ignored(self):
        source = _data(links=["/tools", "#top", "#faq"])
        clone = _data(links=["/tools"])
        result = verify_clone(source, clone)
        assert result.score == 100
        assert not any(i.type == "missing_link" for i in result.issues)

    def test_missing_links_major(self):
        source = _data(links=["/a", "/b", "/c", "/d"])
        clone = _data(links=["/a", "/b"])
        result = verify_clone(source, clone)
        assert any(i.type == "missing_link" and i.severity == "major" for i in result.issues)
        assert result.passed is False

    def test_idempotent(self, source_html, broken_clone_html):
        source = extract_page_data(source_html, BASE_URL)
        clone = extract_page_data(broken_clone_html, BASE_URL)
        first = verify_clone(source, clone)
        second = verify_clone(source, clone)
        assert first.score == second.score
        assert first.to_dict()["issues"] == second.to_dict()["issues"]

    def test_custom_threshold(self):
        source = _data(images=["/a.png", "/b.png", "/c.png", "/d.png"])
        clone = _data(images=["/a.png", "/b.png", "/c.png"])
        # 4 of 5 checks pass, no issue fires at 75% coverage
        assert verify_clone(source, clone).passed is False
        assert verify_clone(source, clone, threshold=80).passed is True
