"""Implementation planning: which components, data files, services, types and
config changes a cloned page needs, laid out in the target project's conventions.
"""

from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from pageclone.models import (
    ComponentPlan,
    ConfigUpdate,
    DataFilePlan,
    ExtractedData,
    ImageData,
    ImplementationPlan,
    PageAnalysis,
    Section,
    ServiceUpdate,
    TypeDefinition,
)
from pageclone.utils.naming import pascal_case, slugify

SECTION_TO_COMPONENT = {
    "header": "Header",
    "sidebar": "Sidebar",
    "main": "MainContent",
    "footer": "Footer",
    "panel": "Panel",
    "modal": "Modal",
}

LOADING_SKELETON = "src/components/features/GridSkeleton.tsx"
SPLIT_DATA_THRESHOLD = 100


def extract_image_domains(images: list[ImageData]) -> list[str]:
    """Unique hostnames of absolute http(s) image URLs, in first-seen order."""
    domains: list[str] = []
    for image in images:
        try:
            parsed = urlparse(image.src)
        except ValueError:
            continue
        if parsed.scheme in ("http", "https") and parsed.hostname and parsed.hostname not in domains:
            domains.append(parsed.hostname)
    return domains


def scan_existing_components(project_root: Path) -> dict[str, list[str]]:
    """Component files already in the project, keyed by their directory relative to the root."""
    found: dict[str, list[str]] = {}
    for base in ("src/components/features", "src/components/ui"):
        root = project_root / base
        if not root.is_dir():
            continue
        for path in sorted(root.rglob("*.tsx")):
            rel_dir = path.parent.relative_to(project_root).as_posix()
            found.setdefault(rel_dir, []).append(path.stem)
    return found


def find_existing_component(
    section: Section, existing: dict[str, list[str]], own_path: str = ""
) -> Optional[str]:
    """Path of another existing component whose name mentions the section type, if any."""
    for directory, names in existing.items():
        for name in names:
            candidate = f"{directory}/{name}.tsx"
            if section.type in name.lower() and candidate != own_path:
                return candidate
    return None


def component_props(section: Section) -> list[str]:
    props = []
    if section.type in ("main", "panel"):
        props.append("data")
    if section.type in ("header", "sidebar"):
        props.append("navigation")
    if section.children:
        props.append("items")
    props.append("className")
    return props


def plan_components(
    analysis: PageAnalysis,
    feature_name: str,
    page_route: str,
    existing: Optional[dict[str, list[str]]] = None,
) -> list[ComponentPlan]:
    """One component per section and per direct child section, plus page, loading and error."""
    existing = existing or {}
    prefix = pascal_case(feature_name)
    feature_dir = f"src/components/features/{slugify(feature_name)}"
    components: list[ComponentPlan] = []
    seen: set[str] = set()

    def _add(section: Section) -> None:
        name = prefix + SECTION_TO_COMPONENT.get(section.type, "Section")
        path = f"{feature_dir}/{name}.tsx"
        if path in seen:
            return
        seen.add(path)
        components.append(
            ComponentPlan(
                name=name,
                path=path,
                props=component_props(section),
                reuses_existing=find_existing_component(section, existing, path),
            )
        )

    for section in analysis.sections:
        _add(section)
        for child in section.children:
            _add(child)

    route_dir = f"src/app/(site)/{page_route}"
    components.append(ComponentPlan(name=f"{prefix}Page", path=f"{route_dir}/page.tsx", props=["data"]))
    components.append(
        ComponentPlan(name=f"{prefix}Loading", path=f"{route_dir}/loading.tsx", reuses_existing=LOADING_SKELETON)
    )
    components.append(ComponentPlan(name=f"{prefix}Error", path=f"{route_dir}/error.tsx", props=["error", "reset"]))
    return components


def plan_data_files(extracted: ExtractedData, feature_name: str, page_slug: str) -> list[DataFilePlan]:
    data_dir = f"src/data/{slugify(feature_name)}"
    files = [
        DataFilePlan(
            path=f"{data_dir}/{page_slug}.json",
            data_schema={
                "_metadata": {"sourceUrl": "string", "extractedAt": "string (ISO date)", "itemCounts": "ItemCounts"},
                "metadata": "PageMetadata",
                "textContent": "TextBlock[]",
                "images": "ImageData[]",
                "links": "LinkData[]",
                "lists": "ListData[]",
            },
            source_mapping={
                "metadata": "extractedData.metadata",
                "textContent": "extractedData.textContent",
                "images": "extractedData.images",
                "links": "extractedData.links",
                "lists": "extractedData.lists",
            },
        )
    ]

    counts = extracted.item_counts
    if counts.text + counts.images + counts.links > SPLIT_DATA_THRESHOLD:
        files.append(
            DataFilePlan(
                path=f"{data_dir}/index.json",
                data_schema={"categories": "CategoryRef[]", "totalItems": "number", "lastUpdated": "string (ISO date)"},
                source_mapping={
                    "categories": "derived from content structure",
                    "totalItems": "extractedData.itemCounts",
                },
            )
        )

    files.append(
        DataFilePlan(
            path=f"{data_dir}/metadata.json",
            data_schema={
                "lastScrapedAt": "string (ISO date)",
                "sourceUrl": "string",
                "version": "string",
                "itemCounts": "ItemCounts",
            },
            source_mapping={
                "lastScrapedAt": "extractedData.extractedAt",
                "sourceUrl": "analysis.url",
                "itemCounts": "extractedData.itemCounts",
            },
        )
    )
    return files


def plan_service_updates(feature_name: str, data_files: list[DataFilePlan]) -> list[ServiceUpdate]:
    name = pascal_case(feature_name)
    functions = [f"get{name}Data"]
    if len(data_files) > 2:
        functions += [f"get{name}Categories", f"get{name}BySlug", f"get{name}ByCategory"]
    functions += [f"search{name}", f"invalidate{name}Cache"]
    return [ServiceUpdate(path=f"src/lib/services/{slugify(feature_name)}.service.ts", functions=functions)]


def plan_type_definitions(feature_name: str, extracted: ExtractedData) -> list[TypeDefinition]:
    path = f"src/lib/types/{slugify(feature_name)}.ts"
    name = pascal_case(feature_name)
    types = [
        TypeDefinition(
            name=f"{name}Data",
            path=path,
            properties={
                "metadata": "PageMetadata",
                "textContent": "TextBlock[]",
                "images": "ImageData[]",
                "links": "LinkData[]",
                "lists": "ListData[]",
                "extractedAt": "string",
            },
        )
    ]
    if extracted.lists:
        types.append(
            TypeDefinition(
                name=f"{name}ListItem",
                path=path,
                properties={"id": "string", "content": "string", "order": "number"},
            )
        )
    return types


def plan_config_updates(extracted: ExtractedData) -> list[ConfigUpdate]:
    domains = extract_image_domains(extracted.images)
    if not domains:
        return []
    patterns = [{"protocol": "https", "hostname": domain} for domain in domains]
    return [ConfigUpdate(path="next.config.js", changes={"images.remotePatterns": patterns})]


def page_route_for(
    feature_name: str,
    page_slug: str,
    is_dynamic_route: bool = False,
    parent_route: Optional[str] = None,
) -> str:
    if parent_route:
        parent = parent_route.strip("/")
        return f"{parent}/[slug]" if is_dynamic_route else f"{parent}/{page_slug}"
    base = slugify(feature_name)
    return f"{base}/[slug]" if is_dynamic_route else base


def create_implementation_plan(
    analysis: PageAnalysis,
    extracted: ExtractedData,
    feature_name: str,
    page_slug: str,
    is_dynamic_route: bool = False,
    parent_route: Optional[str] = None,
    project_root: Optional[Path] = None,
) -> ImplementationPlan:
    """Build the full plan. Dependencies and stubs are filled in by the resolver."""
    page_route = page_route_for(feature_name, page_slug, is_dynamic_route, parent_route)
    existing = scan_existing_components(project_root) if project_root is not None else {}
    data_files = plan_data_files(extracted, feature_name, page_slug)
    return ImplementationPlan(
        page_route=page_route,
        components=plan_components(analysis, feature_name, page_route, existing),
        data_files=data_files,
        service_updates=plan_service_updates(feature_name, data_files),
        type_definitions=plan_type_definitions(feature_name, extracted),
        config_updates=plan_config_updates(extracted),
    )
