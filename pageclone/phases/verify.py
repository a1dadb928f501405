"""Fidelity scoring of a replica's extraction against the source extraction.

The score is a weighted checklist: one metadata check, then one check per
distinct source text fragment, image and non-anchor link. Every check counts
the same. Coverage below a per-category threshold also raises an issue;
a critical issue fails verification regardless of the numeric score.
"""

import math
from typing import Optional

from pageclone.models import ExtractedData, VerificationIssue, VerificationResult

PASS_SCORE = 95

TEXT_COVERAGE_MIN = 0.8
IMAGE_COVERAGE_MIN = 0.7
LINK_COVERAGE_MIN = 0.7

TITLE_PREFIX = 20
TEXT_KEY_LENGTH = 50
TEXT_PROBE_LENGTH = 30

SUGGESTIONS = {
    "missing_text": "Re-extract text content ensuring all headings and paragraphs are captured",
    "missing_image": "Verify image URLs are correctly resolved and included",
    "missing_link": "Ensure all navigation links are properly extracted and rendered",
}


def _text_keys(data: ExtractedData) -> list[str]:
    keys = (block.content.lower()[:TEXT_KEY_LENGTH] for block in data.text_content)
    return list(dict.fromkeys(k for k in keys if k))


def _text_found(text: str, clone_texts: list[str]) -> bool:
    probe = text[:TEXT_PROBE_LENGTH]
    return any(probe in clone or clone[:TEXT_PROBE_LENGTH] in text for clone in clone_texts)


def _link_keys(data: ExtractedData) -> list[str]:
    return list(dict.fromkeys(link.href for link in data.links if link.type != "anchor"))


def verify_clone(
    source: ExtractedData,
    clone: ExtractedData,
    threshold: Optional[int] = None,
) -> VerificationResult:
    """Score the clone against the source. Never raises for mismatches."""
    threshold = PASS_SCORE if threshold is None else threshold
    issues: list[VerificationIssue] = []
    total = 0
    passed = 0

    # Metadata
    total += 1
    source_title = source.metadata.title
    if source_title and source_title[:TITLE_PREFIX] in clone.metadata.title:
        passed += 1
    else:
        issues.append(
            VerificationIssue(
                type="data_mismatch",
                severity="major",
                description="Page title mismatch",
                expected=source_title,
                actual=clone.metadata.title,
                fix=f'Update page title to: "{source_title}"',
            )
        )

    # Text coverage
    source_texts = _text_keys(source)
    clone_texts = _text_keys(clone)
    text_matches = sum(1 for text in source_texts if _text_found(text, clone_texts))
    total += len(source_texts)
    passed += text_matches
    if text_matches < len(source_texts) * TEXT_COVERAGE_MIN:
        issues.append(
            VerificationIssue(
                type="missing_text",
                severity="critical",
                description=f"Missing {len(source_texts) - text_matches} text blocks out of {len(source_texts)}",
                fix="Extract and include all text content from source page",
            )
        )

    # Image coverage
    source_images = list(dict.fromkeys(image.src for image in source.images))
    clone_images = {image.src for image in clone.images}
    image_matches = sum(1 for src in source_images if src in clone_images)
    total += len(source_images)
    passed += image_matches
    if image_matches < len(source_images) * IMAGE_COVERAGE_MIN:
        issues.append(
            VerificationIssue(
                type="missing_image",
                severity="major",
                description=f"Missing {len(source_images) - image_matches} images out of {len(source_images)}",
                fix="Include all image URLs from source page",
            )
        )

    # Link coverage
    source_links = _link_keys(source)
    clone_links = set(_link_keys(clone))
    link_matches = sum(1 for href in source_links if href in clone_links)
    total += len(source_links)
    passed += link_matches
    if link_matches < len(source_links) * LINK_COVERAGE_MIN:
        issues.append(
            VerificationIssue(
                type="missing_link",
                severity="major",
                description=f"Missing {len(source_links) - link_matches} links out of {len(source_links)}",
                fix="Include all navigation links from source page",
            )
        )

    # Half-up rounding keeps scores stable at .5 boundaries.
    score = math.floor(100 * passed / total + 0.5)
    fired = {issue.type for issue in issues}
    suggestions = [text for issue_type, text in SUGGESTIONS.items() if issue_type in fired]

    return VerificationResult(
        passed=score >= threshold and not any(i.severity == "critical" for i in issues),
        score=score,
        issues=issues,
        suggestions=suggestions,
    )
