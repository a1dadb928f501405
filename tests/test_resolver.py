"""Tests for dependency analysis, cycle detection, ordering and stubs."""

import json

from pageclone.models import PageDependency
from pageclone.phases.analyze import analyze_page
from pageclone.phases.extract import extract_page_data
from pageclone.phases.plan import create_implementation_plan
from pageclone.resolver import (
    analyze_dependencies,
    create_stub,
    detect_circular_dependency,
    get_shared_path,
    resolve_dependencies,
    route_file_for,
    should_be_shared,
    stub_content,
    topological_sort,
)
from pageclone.models import DependencyGraph

BASE_URL = "https://example.com/free-ai-tools"


def _dep(path, depends_on=(), dep_type="component", status="needs_creation"):
    return PageDependency(type=dep_type, path=path, status=status, depends_on=list(depends_on))


# --- cycle detection ---

class TestDetectCircularDependency:
    def test_two_node_cycle(self):
        result = detect_circular_dependency([_dep("A", ["B"]), _dep("B", ["A"])])
        assert result.has_circular is True
        assert result.cycle == ["A", "B", "A"]

    def test_cycle_starts_and_ends_on_same_node(self):
        deps = [_dep("root", ["x"]), _dep("x", ["y"]), _dep("y", ["z"]), _dep("z", ["x"])]
        cycle = detect_circular_dependency(deps).cycle
        assert cycle[0] == cycle[-1] == "x"
        assert cycle == ["x", "y", "z", "x"]

    def test_self_loop(self):
        assert detect_circular_dependency([_dep("A", ["A"])]).cycle == ["A", "A"]

    def test_acyclic(self):
        result = detect_circular_dependency([_dep("A", ["B"]), _dep("B"), _dep("C", ["missing"])])
        assert result.has_circular is False
        assert result.cycle is None


# --- ordering ---

class TestTopologicalSort:
    def test_dependencies_precede_dependents(self):
        deps = [_dep("page", ["card", "data"]), _dep("card", ["data"]), _dep("data")]
        ordered = [d.path for d in topological_sort(deps)]
        assert ordered == ["data", "card", "page"]

    def test_every_node_before_its_dependents(self):
        deps = [_dep("e", ["d"]), _dep("d", ["b", "c"]), _dep("c", ["a"]), _dep("b", ["a"]), _dep("a")]
        ordered = [d.path for d in topological_sort(deps)]
        position = {path: i for i, path in enumerate(ordered)}
        for dep in deps:
            for target in dep.depends_on:
                assert position[target] < position[dep.path]

    def test_cycle_still_lists_each_node_once(self):
        ordered = [d.path for d in topological_sort([_dep("A", ["B"]), _dep("B", ["A"])])]
        assert sorted(ordered) == ["A", "B"]


# --- analysis ---

class TestAnalyzeDependencies:
    def test_classifies_plan_and_routes(self, mock_config, sample_snapshot, source_html, site_root):
        analysis = analyze_page(sample_snapshot, BASE_URL, "Free AI Tools")
        extracted = extract_page_data(source_html, BASE_URL)
        plan = create_implementation_plan(analysis, extracted, "Free AI Tools", "free-ai-tools")
        (site_root / "src/app/(site)/tools").mkdir(parents=True)
        (site_root / "src/app/(site)/tools/page.tsx").write_text("export default function P() {}")

        graph = analyze_dependencies(analysis, plan, site_root)

        assert graph.page_slug == "free-ai-tools"
        by_path = {d.path: d for d in graph.dependencies}
        assert by_path["src/app/(site)/tools/page.tsx"].status == "exists"
        assert by_path["src/app/(site)/page.tsx"].type == "route"
        assert by_path["src/lib/services/free-ai-tools.service.ts"].type == "service"
        assert by_path["src/app/(site)/free-ai-tools/loading.tsx"].depends_on == [
            "src/components/features/GridSkeleton.tsx"
        ]
        assert graph.linked_pages == ["/", "/tools"]

    def test_existing_shared_component_recorded(self, mock_config, sample_snapshot, site_root):
        analysis = analyze_page(sample_snapshot, BASE_URL, "t")
        plan = create_implementation_plan(analysis, extract_page_data("", BASE_URL), "Free AI Tools", "x")
        header = site_root / plan.components[0].path
        header.parent.mkdir(parents=True)
        header.write_text("export default function H() {}")
        graph = analyze_dependencies(analysis, plan, site_root)
        assert graph.shared_components == [plan.components[0].path]

    def test_route_file_for(self, mock_config):
        assert route_file_for("/tools/") == "src/app/(site)/tools/page.tsx"
        assert route_file_for("https://example.com/a/b?x=1") == "src/app/(site)/a/b/page.tsx"
        assert route_file_for("/") == "src/app/(site)/page.tsx"

    def test_route_file_for_collapses_dot_segments(self, mock_config):
        assert route_file_for("/a/../../../x/") == "src/app/(site)/x/page.tsx"
        assert route_file_for("https://example.com/..") == "src/app/(site)/page.tsx"

    def test_link_with_dot_segments_stubbed_inside_root(self, mock_config, site_root):
        url = "https://example.com/p"
        snapshot = '- navigation\n  - link "Escape" [href="/../../../../outside"]'
        analysis = analyze_page(snapshot, url, "p")
        plan = create_implementation_plan(analysis, extract_page_data("", url), "P", "p")

        graph = analyze_dependencies(analysis, plan, site_root)
        resolve_dependencies(graph, site_root)

        assert "src/app/(site)/outside/page.tsx" in [d.path for d in graph.dependencies]
        assert (site_root / "src/app/(site)/outside/page.tsx").exists()
        assert not (site_root.parent / "outside").exists()

    def test_path_outside_root_skipped(self, mock_config, sample_snapshot, site_root):
        analysis = analyze_page(sample_snapshot, BASE_URL, "t")
        plan = create_implementation_plan(analysis, extract_page_data("", BASE_URL), "Free AI Tools", "x")
        plan.components[0].path = "../../escape/Card.tsx"
        graph = analyze_dependencies(analysis, plan, site_root)
        assert "../../escape/Card.tsx" not in [d.path for d in graph.dependencies]


# --- stubs ---

class TestStubs:
    def test_component_stub(self):
        content = stub_content(_dep("src/components/features/x/tool-card.tsx"), "2025-01-01T00:00:00.000Z")
        assert "export interface ToolCardProps {}" in content
        assert "TODO: Implement ToolCard" in content

    def test_data_stub_is_flagged_json(self):
        payload = json.loads(stub_content(_dep("src/data/x.json", dep_type="data")))
        assert payload["_metadata"]["stub"] is True
        assert payload["data"] == []

    def test_service_stub_warns(self):
        content = stub_content(_dep("src/lib/services/tools.service.ts", dep_type="service"))
        assert "console.warn" in content
        assert "getById" in content

    def test_route_stub_names(self):
        assert "ToolsPage" in stub_content(_dep("src/app/(site)/tools/page.tsx", dep_type="route"))
        assert "IndexPage" in stub_content(_dep("src/app/(site)/page.tsx", dep_type="route"))
        assert "SlugPage" in stub_content(_dep("src/app/(site)/a/[slug]/page.tsx", dep_type="route"))

    def test_create_stub_writes_parents(self, tmp_path):
        result = create_stub(_dep("src/components/features/x/Card.tsx"), tmp_path)
        assert result.success is True
        assert (tmp_path / "src/components/features/x/Card.tsx").exists()

    def test_create_stub_reports_failure(self, tmp_path):
        blocker = tmp_path / "blocked"
        blocker.write_text("a file, not a directory")
        result = create_stub(_dep("src/Card.tsx"), blocker)
        assert result.success is False
        assert result.error

    def test_create_stub_refuses_path_outside_root(self, tmp_path):
        root = tmp_path / "site"
        root.mkdir()
        result = create_stub(_dep("../escape/Card.tsx"), root)
        assert result.success is False
        assert "outside the project root" in result.error
        assert not (tmp_path / "escape").exists()

    def test_create_stub_reports_invalid_path(self, tmp_path):
        result = create_stub(_dep("src/a\x00b/Card.tsx"), tmp_path)
        assert result.success is False
        assert result.error


# --- resolution ---

class TestResolveDependencies:
    def test_cycle_members_stubbed(self, mock_config, tmp_path):
        graph = DependencyGraph(
            page_slug="demo",
            dependencies=[_dep("src/a/A.tsx", ["src/b/B.tsx"]), _dep("src/b/B.tsx", ["src/a/A.tsx"])],
        )
        resolved = resolve_dependencies(graph, tmp_path)
        assert resolved.circular_dependencies == [["src/a/A.tsx", "src/b/B.tsx", "src/a/A.tsx"]]
        assert sorted(resolved.stubs) == ["src/a/A.tsx", "src/b/B.tsx"]
        assert all(d.status == "stub" for d in resolved.resolved)
        assert len(resolved.resolved) == 2

    def test_missing_stubbed_and_existing_shared(self, mock_config, tmp_path):
        existing = tmp_path / "src/components/ui/Button.tsx"
        existing.parent.mkdir(parents=True)
        existing.write_text("export default function Button() {}")
        graph = DependencyGraph(
            page_slug="demo",
            dependencies=[
                _dep("src/app/(site)/demo/page.tsx", ["src/components/ui/Button.tsx"]),
                _dep("src/components/ui/Button.tsx"),
            ],
        )
        resolved = resolve_dependencies(graph, tmp_path)
        assert [d.path for d in resolved.resolved] == [
            "src/components/ui/Button.tsx",
            "src/app/(site)/demo/page.tsx",
        ]
        assert resolved.resolved[0].status == "exists"
        assert resolved.stubs == ["src/app/(site)/demo/page.tsx"]
        assert resolved.shared_resources.components == ["src/components/ui/Button.tsx"]
        assert resolved.circular_dependencies is None

    def test_failed_stub_recorded_and_resolution_continues(self, mock_config, tmp_path):
        blocker = tmp_path / "blocked"
        blocker.write_text("file")
        graph = DependencyGraph(page_slug="demo", dependencies=[_dep("src/A.tsx"), _dep("src/B.tsx")])
        resolved = resolve_dependencies(graph, blocker)
        assert resolved.stubs == []
        assert [f.path for f in resolved.failed_stubs] == ["src/A.tsx", "src/B.tsx"]
        assert all(d.status == "needs_creation" for d in resolved.resolved)


# --- sharing ---

class TestSharing:
    def test_should_be_shared(self, mock_config):
        assert should_be_shared(_dep("src/app/x/Card.tsx"), 2) is True
        assert should_be_shared(_dep("src/components/ui/Card.tsx"), 1) is True
        assert should_be_shared(_dep("src/app/x/Card.tsx"), 1) is False

    def test_get_shared_path(self, mock_config):
        assert get_shared_path(_dep("src/app/x/Card.tsx")) == "src/components/features/Card.tsx"
        assert get_shared_path(_dep("src/app/x/items.json", dep_type="data")) == "src/data/items.json"
        assert get_shared_path(_dep("src/app/x/page.tsx", dep_type="route")) == "src/app/x/page.tsx"
