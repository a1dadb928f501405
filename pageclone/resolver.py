"""Dependency Resolver: existence probing, cycle breaking, ordering and stubs.

An edge A -> B means "A's depends_on includes B". The graph may legitimately
contain cycles; resolution breaks them by stubbing the members that still
need creating, then walks the dependency list in topological order.
"""

import json
import logging
import posixpath
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Optional

from pageclone.config import get_config
from pageclone.models import (
    CircularDependencyResult,
    DependencyGraph,
    ImplementationPlan,
    PageAnalysis,
    PageDependency,
    ResolvedDependencies,
    SharedResources,
    StubResult,
    utc_now_iso,
)
from pageclone.utils.links import internal_path
from pageclone.utils.naming import component_name_from_path, generate_slug_from_url

logger = logging.getLogger(__name__)


class _Mark(Enum):
    UNVISITED = 0
    ACTIVE = 1
    DONE = 2


def _project_root(project_root: Optional[Path]) -> Path:
    return Path(project_root if project_root is not None else get_config().get("project_root", "."))


def is_shared_location(path: str) -> bool:
    return any(fragment in path for fragment in get_config()["shared_locations"])


def _contained_target(root: Path, path: str) -> Path:
    """Absolute location of a project-relative path. Raises ValueError when it escapes the root."""
    target = (root / path).resolve()
    if not target.is_relative_to(root.resolve()):
        raise ValueError(f"{path} is outside the project root")
    return target


def _exists(root: Path, path: str) -> bool:
    try:
        return _contained_target(root, path).exists()
    except (OSError, ValueError):
        return False


def route_file_for(href: str) -> str:
    """Page file path that serves an internal href.

    Dot segments are collapsed against the site root, so no href can climb
    out of the route directory.
    """
    route = posixpath.normpath("/" + internal_path(href).lstrip("/"))
    if route == "/":
        route = ""
    return get_config()["route_pattern"].format(route=route)


# --- Analysis ---


def analyze_dependencies(
    analysis: PageAnalysis,
    plan: ImplementationPlan,
    project_root: Optional[Path] = None,
) -> DependencyGraph:
    """Classify every planned artifact and linked route as exists or needs_creation."""
    root = _project_root(project_root)
    dependencies: list[PageDependency] = []
    shared_components: list[str] = []
    shared_data: list[str] = []
    linked_pages: list[str] = []
    seen: set[str] = set()

    def _add(dep_type: str, path: str, depends_on: Optional[list[str]] = None) -> Optional[PageDependency]:
        if path in seen:
            return None
        seen.add(path)
        try:
            exists = _contained_target(root, path).exists()
        except (OSError, ValueError) as exc:
            logger.warning("Skipping dependency %s: %s", path, exc)
            return None
        dep = PageDependency(
            type=dep_type,
            path=path,
            status="exists" if exists else "needs_creation",
            depends_on=depends_on or [],
        )
        dependencies.append(dep)
        return dep

    for component in plan.components:
        depends_on = [component.reuses_existing] if component.reuses_existing else []
        dep = _add("component", component.path, depends_on)
        if dep and dep.status == "exists" and is_shared_location(dep.path):
            shared_components.append(dep.path)

    for data_file in plan.data_files:
        dep = _add("data", data_file.path)
        if dep and dep.status == "exists" and is_shared_location(dep.path):
            shared_data.append(dep.path)

    for service in plan.service_updates:
        _add("service", service.path)

    for entry in analysis.navigation:
        if entry.type != "internal":
            continue
        page = internal_path(entry.href) or "/"
        if page not in linked_pages:
            linked_pages.append(page)
        _add("route", route_file_for(page))

    for page in analysis.dependencies:
        if page not in linked_pages:
            linked_pages.append(page)

    return DependencyGraph(
        page_slug=generate_slug_from_url(analysis.url),
        dependencies=dependencies,
        shared_components=shared_components,
        shared_data=shared_data,
        linked_pages=linked_pages,
    )


# --- Graph algorithms ---


def detect_circular_dependency(dependencies: list[PageDependency]) -> CircularDependencyResult:
    """Three-state depth-first search; reports the first cycle found.

    The cycle is the traversal path from the re-entered node onward, closed
    by repeating that node, so the first and last elements are equal.
    """
    adjacency: dict[str, list[str]] = {}
    for dep in dependencies:
        adjacency.setdefault(dep.path, []).extend(dep.depends_on)
    for targets in list(adjacency.values()):
        for target in targets:
            adjacency.setdefault(target, [])

    marks = {node: _Mark.UNVISITED for node in adjacency}
    path: list[str] = []

    def _dfs(node: str) -> Optional[list[str]]:
        marks[node] = _Mark.ACTIVE
        path.append(node)
        for neighbor in adjacency[node]:
            if marks[neighbor] is _Mark.ACTIVE:
                return path[path.index(neighbor):] + [neighbor]
            if marks[neighbor] is _Mark.UNVISITED:
                cycle = _dfs(neighbor)
                if cycle:
                    return cycle
        path.pop()
        marks[node] = _Mark.DONE
        return None

    for node in adjacency:
        if marks[node] is _Mark.UNVISITED:
            cycle = _dfs(node)
            if cycle:
                return CircularDependencyResult(has_circular=True, cycle=cycle)
    return CircularDependencyResult(has_circular=False, cycle=None)


def topological_sort(dependencies: list[PageDependency]) -> list[PageDependency]:
    """Post-order depth-first sort: a dependency precedes everything that depends on it.

    Edges to paths outside the list are ignored. On a cyclic input the
    visited set stops the traversal, so each node still appears exactly once.
    """
    by_path = {dep.path: dep for dep in dependencies}
    visited: set[str] = set()
    ordered: list[PageDependency] = []

    def _visit(dep: PageDependency) -> None:
        if dep.path in visited:
            return
        visited.add(dep.path)
        for target in dep.depends_on:
            child = by_path.get(target)
            if child is not None:
                _visit(child)
        ordered.append(dep)

    for dep in dependencies:
        _visit(dep)
    return ordered


# --- Stubs ---


def _component_stub(path: str, timestamp: str) -> str:
    name = component_name_from_path(path)
    return f"""/**
 * {name} Component (Stub)
 *
 * Placeholder created during page cloning. Not implemented yet.
 *
 * @created {timestamp}
 */

export interface {name}Props {{}}

export default function {name}(props: {name}Props) {{
  return (
    <div className="p-4 border border-dashed border-gray-300 rounded">
      <p className="text-gray-500">TODO: Implement {name}</p>
    </div>
  );
}}
"""


def _data_stub(path: str, timestamp: str) -> str:
    payload = {
        "_metadata": {"stub": True, "createdAt": timestamp, "reason": "Dependency not yet implemented"},
        "data": [],
    }
    return json.dumps(payload, indent=2) + "\n"


def _service_stub(path: str, timestamp: str) -> str:
    name = component_name_from_path(path).replace("Service", "")
    return f"""/**
 * {name} Service (Stub)
 *
 * Placeholder created during page cloning. Not implemented yet.
 *
 * @created {timestamp}
 */

export async function getData(): Promise<unknown[]> {{
  console.warn('{name} service is a stub - implement getData()');
  return [];
}}

export async function getById(id: string): Promise<unknown | null> {{
  console.warn('{name} service is a stub - implement getById()');
  return null;
}}
"""


def _route_stub(path: str, timestamp: str) -> str:
    segment = PurePosixPath(path).parent.name
    if not segment or segment.startswith("("):
        segment = "index"
    name = component_name_from_path(segment.strip("[]")) + "Page"
    return f"""/**
 * {name} (Stub)
 *
 * Placeholder created during page cloning. Not implemented yet.
 *
 * @created {timestamp}
 */

export default function {name}() {{
  return (
    <main className="container mx-auto px-4 py-8">
      <h1 className="text-2xl font-bold mb-4">{name}</h1>
      <p className="text-gray-500">This page is a stub and is not yet implemented.</p>
    </main>
  );
}}
"""


_STUB_RENDERERS = {
    "component": _component_stub,
    "data": _data_stub,
    "service": _service_stub,
    "route": _route_stub,
}


def stub_content(dependency: PageDependency, timestamp: Optional[str] = None) -> str:
    return _STUB_RENDERERS[dependency.type](dependency.path, timestamp or utc_now_iso())


def create_stub(dependency: PageDependency, project_root: Optional[Path] = None) -> StubResult:
    """Write placeholder content for the dependency. Reports failure instead of raising.

    Paths that resolve outside the project root are refused.
    """
    try:
        target = _contained_target(_project_root(project_root), dependency.path)
        content = stub_content(dependency)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    except (OSError, ValueError) as exc:
        logger.warning("Could not create stub for %s: %s", dependency.path, exc)
        return StubResult(path=dependency.path, success=False, error=str(exc))
    logger.info("Created %s stub at %s", dependency.type, dependency.path)
    return StubResult(path=dependency.path, success=True)


# --- Resolution ---


def resolve_dependencies(graph: DependencyGraph, project_root: Optional[Path] = None) -> ResolvedDependencies:
    """Break cycles with stubs, sort, then stub whatever is still missing.

    The graph's dependencies are updated in place as their status changes.
    A stub that fails to write leaves its dependency as needs_creation and
    is recorded in ``failed_stubs``; resolution carries on.
    """
    root = _project_root(project_root)
    stubs: list[str] = []
    failed: list[StubResult] = []
    shared = SharedResources(components=list(graph.shared_components), data=list(graph.shared_data))
    by_path = {dep.path: dep for dep in graph.dependencies}

    def _stub(dep: PageDependency) -> None:
        result = create_stub(dep, root)
        if result.success:
            dep.status = "stub"
            stubs.append(result.path)
        else:
            failed.append(result)

    circular = detect_circular_dependency(graph.dependencies)
    cycles = None
    if circular.has_circular and circular.cycle:
        cycles = [circular.cycle]
        for path in dict.fromkeys(circular.cycle):
            dep = by_path.get(path)
            if dep is not None and dep.status == "needs_creation":
                _stub(dep)

    resolved: list[PageDependency] = []
    for dep in topological_sort(graph.dependencies):
        if dep.status == "stub":
            resolved.append(dep)
            continue
        if _exists(root, dep.path):
            dep.status = "exists"
            if is_shared_location(dep.path):
                bucket = {"component": shared.components, "data": shared.data}.get(dep.type)
                if bucket is not None and dep.path not in bucket:
                    bucket.append(dep.path)
        elif dep.status == "needs_creation" and not any(f.path == dep.path for f in failed):
            _stub(dep)
        resolved.append(dep)

    return ResolvedDependencies(
        resolved=resolved,
        stubs=stubs,
        circular_dependencies=cycles,
        shared_resources=shared,
        failed_stubs=failed,
    )


# --- Sharing ---


def should_be_shared(dependency: PageDependency, usage_count: int) -> bool:
    """Shared when more than one page uses it or it already lives in a shared directory."""
    return usage_count > 1 or is_shared_location(dependency.path)


def get_shared_path(dependency: PageDependency) -> str:
    shared_dir = get_config()["shared_paths"].get(dependency.type)
    if not shared_dir:
        return dependency.path
    return f"{shared_dir.rstrip('/')}/{PurePosixPath(dependency.path).name}"
