"""Shared fixtures for the pageclone test suite."""

import pytest
from unittest.mock import patch

from pageclone.orchestrator import CloneOptions
from pageclone.progress import ProgressStore

SOURCE_URL = "https://example.com/free-ai-tools"


@pytest.fixture
def mock_config(tmp_path):
    """Patch the config singleton with test-friendly values."""
    test_config = {
        "progress_dir": str(tmp_path / "progress"),
        "archive_dir": str(tmp_path / "progress" / "archive"),
        "project_root": str(tmp_path / "site"),
        "route_pattern": "src/app/(site){route}/page.tsx",
        "shared_locations": [
            "src/components/ui/",
            "src/components/features/",
            "src/lib/services/",
            "src/lib/types/",
            "src/data/",
        ],
        "shared_paths": {
            "component": "src/components/features",
            "data": "src/data",
            "service": "src/lib/services",
        },
        "max_verification_attempts": 3,
        "pass_score": 95,
        "fetch_timeout_seconds": 5,
        "fetch_max_retries": 2,
        "fetch_backoff_min_seconds": 0,
        "fetch_backoff_max_seconds": 0,
        "cli_max_iterations": 3,
        "cli_threshold": 95,
        "cli_iteration_delay_seconds": 0,
        "clone_base_url": "http://localhost:3000",
        "graph_recursion_limit": 50,
    }
    with patch("pageclone.config._config", test_config):
        yield test_config


@pytest.fixture
def store(tmp_path, mock_config):
    """Progress store rooted in a temporary directory."""
    return ProgressStore(tmp_path / "progress")


@pytest.fixture
def site_root(tmp_path):
    root = tmp_path / "site"
    root.mkdir()
    return root


@pytest.fixture
def clone_options(site_root):
    return CloneOptions(
        source_url=SOURCE_URL,
        feature_name="Free AI Tools",
        page_slug="free-ai-tools",
        project_root=site_root,
    )


@pytest.fixture
def sample_snapshot():
    """Accessibility outline with landmarks, nested regions, controls and links."""
    return "\n".join([
        "- banner",
        '  - link "Home" [href="/", ref=e1]',
        "  - list",
        "    - listitem",
        '      - link "Tools" [href="/tools", ref=e2]',
        "    - listitem",
        '      - link "Docs" [href="https://docs.example.org/start"]',
        "- main",
        '  - heading "Free AI Tools" [level=1]',
        '  - region "Featured"',
        '    - button "Load more" [ref=e5]',
        '    - link "Jump to top" [href="#top"]',
        '  - tab "Popular"',
        '  - combobox "Sort"',
        '  - textbox "Search"',
        "- contentinfo",
        '  - link "Tools" [href="/tools"]',
        '  - link "Contact" [href="mailto:hi@example.com"]',
    ])


@pytest.fixture
def source_html():
    return """<html><head>
<title>Free AI Tools Directory</title>
<meta name="description" content="Browse free AI tools">
<meta property="og:title" content="Free AI Tools">
<link rel="canonical" href="https://example.com/free-ai-tools">
<script type="application/ld+json">{"@type": "WebPage", "name": "Free AI Tools"}</script>
<script>var hidden = "should not appear";</script>
<style>.hero { color: red; }</style>
</head><body>
<h1>Free AI Tools</h1>
<p>Discover the best free AI tools for writing and design.</p>
<span>ok</span>
<ul><li>Writing assistants</li><li>Image generators</li></ul>
<img src="https://cdn.example.com/logo.png" alt="Logo" width="120" height="40px">
<img src="data:image/png;base64,AAAA" alt="inline">
<img src="/images/hero.jpg" alt="Hero">
<a href="/tools">All tools</a>
<a href="https://other.org/page">Partner</a>
<a href="#top">Top</a>
<a href="javascript:void(0)">Noop</a>
</body></html>"""


@pytest.fixture
def broken_clone_html():
    """A replica that kept the title but lost most of the content."""
    return """<html><head><title>Free AI Tools Directory</title></head><body>
<h1>Free AI Tools</h1>
<a href="/tools">All tools</a>
</body></html>"""
