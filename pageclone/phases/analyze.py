"""Snapshot Analyzer: turns an accessibility outline into a PageAnalysis.

The outline is indentation-delimited, two spaces per level:

    - banner
      - link "Home" [href="/", ref=e3]
    - main
      - region "Featured"
        - button "Load more"
"""

import itertools
import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

from pageclone.models import InteractiveElement, NavigationEntry, PageAnalysis, Section
from pageclone.utils.links import classify_link, internal_path

logger = logging.getLogger(__name__)

ROLE_TO_SECTION_TYPE = {
    "banner": "header",
    "header": "header",
    "navigation": "header",
    "main": "main",
    "complementary": "sidebar",
    "aside": "sidebar",
    "contentinfo": "footer",
    "footer": "footer",
    "dialog": "modal",
    "alertdialog": "modal",
    "region": "panel",
    "article": "panel",
    "section": "panel",
}

INTERACTIVE_ROLES = {
    "button": "button",
    "link": "link",
    "tab": "tab",
    "combobox": "dropdown",
    "listbox": "dropdown",
    "menuitem": "dropdown",
    "details": "accordion",
    "disclosure": "accordion",
}

FORM_ROLES = frozenset({"textbox", "checkbox", "radio", "switch", "slider", "spinbutton", "searchbox"})

# Tailwind responsive prefixes and their min-width in pixels.
BREAKPOINT_TOKENS = {"sm": 640, "md": 768, "lg": 1024, "xl": 1280, "2xl": 1536}
DEFAULT_BREAKPOINTS = (640, 768, 1024, 1280, 1536)

_LINE_RE = re.compile(r"^(\s*)-\s*")
_ROLE_RE = re.compile(r"^(\w+)")
_NAME_RE = re.compile(r'^"([^"]*)"')
_ATTRS_RE = re.compile(r"^\[([^\]]*)\]")
_ATTR_SPLIT_RE = re.compile(r",\s*(?=[a-zA-Z_]+=)")
_BREAKPOINT_RE = re.compile(r"(?<![\w-])(2xl|sm|md|lg|xl):")


@dataclass
class SnapshotNode:
    role: str
    name: str
    attributes: dict[str, str]
    depth: int
    children: list["SnapshotNode"] = field(default_factory=list)

    @property
    def ref(self) -> Optional[str]:
        return self.attributes.get("ref")


# --- Parsing ---


def parse_snapshot_line(line: str) -> Optional[SnapshotNode]:
    """Parse one outline line, or return None if it is not a '- role ...' entry."""
    lead = _LINE_RE.match(line)
    if not lead:
        return None
    depth = len(lead.group(1)) // 2
    content = line[lead.end():]

    role_match = _ROLE_RE.match(content)
    if not role_match:
        return None
    role = role_match.group(1).lower()
    remaining = content[role_match.end():].strip()

    name = ""
    name_match = _NAME_RE.match(remaining)
    if name_match:
        name = name_match.group(1)
        remaining = remaining[name_match.end():].strip()

    attributes: dict[str, str] = {}
    attrs_match = _ATTRS_RE.match(remaining)
    if attrs_match:
        for pair in _ATTR_SPLIT_RE.split(attrs_match.group(1)):
            key, sep, value = pair.partition("=")
            key = key.strip()
            if not sep or not key:
                continue
            value = value.strip()
            if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
                value = value[1:-1]
            attributes[key] = value

    return SnapshotNode(role=role, name=name, attributes=attributes, depth=depth)


def parse_snapshot(snapshot: str) -> list[SnapshotNode]:
    """Parse the outline into a forest. Each node owns its children list."""
    if not snapshot or not isinstance(snapshot, str):
        return []

    roots: list[SnapshotNode] = []
    stack: list[SnapshotNode] = []
    for line in snapshot.splitlines():
        if not line.strip():
            continue
        node = parse_snapshot_line(line)
        if node is None:
            continue
        while stack and stack[-1].depth >= node.depth:
            stack.pop()
        if stack:
            stack[-1].children.append(node)
        else:
            roots.append(node)
        stack.append(node)
    return roots


def _walk(nodes: Iterable[SnapshotNode]) -> Iterable[SnapshotNode]:
    for node in nodes:
        yield node
        yield from _walk(node.children)


def selector_for(node: SnapshotNode, parent_selector: str = "") -> str:
    """Selector hint: the ref when present, else role/label scoped under the parent."""
    if node.ref:
        return f'[ref="{node.ref}"]'
    selector = f'[role="{node.role}"]'
    if node.name:
        escaped = node.name.replace('"', '\\"')
        selector += f'[aria-label="{escaped}"]'
    if parent_selector:
        return f"{parent_selector} {selector}"
    return selector


# --- Identification ---


def identify_sections(nodes: list[SnapshotNode]) -> list[Section]:
    """Map landmark roles to sections, nesting inner sections under their outer one."""
    counter = itertools.count()

    def _collect(node: SnapshotNode, parent_selector: str) -> list[Section]:
        section_type = ROLE_TO_SECTION_TYPE.get(node.role)
        if section_type is None:
            found = []
            for child in node.children:
                found.extend(_collect(child, parent_selector))
            return found

        selector = selector_for(node, parent_selector)
        section = Section(id=f"section-{next(counter)}", type=section_type, selector=selector)
        for child in node.children:
            section.children.extend(_collect(child, selector))
        return [section]

    sections: list[Section] = []
    for node in nodes:
        sections.extend(_collect(node, ""))
    return sections


def _action_for(node: SnapshotNode, element_type: str) -> str:
    name = node.name or "unnamed"
    if element_type == "button":
        return f'Click "{name}" button'
    if element_type == "link":
        href = node.attributes.get("href", "")
        return f'Navigate to "{name}"' + (f" ({href})" if href else "")
    if element_type == "tab":
        return f'Switch to "{name}" tab'
    if element_type == "dropdown":
        return f'Open "{name}" dropdown'
    if element_type == "accordion":
        return f'Expand/collapse "{name}" section'
    return f'Input into "{name}" field'


def identify_interactive_elements(nodes: list[SnapshotNode]) -> list[InteractiveElement]:
    """Every interactive or form control anywhere in the tree, in document order.

    In-page anchor links are navigation, not interactions, and are skipped.
    """
    elements: list[InteractiveElement] = []

    def _visit(node: SnapshotNode, parent_selector: str) -> None:
        selector = selector_for(node, parent_selector)
        element_type = INTERACTIVE_ROLES.get(node.role)
        if element_type is None and node.role in FORM_ROLES:
            element_type = "form"
        is_anchor = element_type == "link" and node.attributes.get("href", "").startswith("#")
        if element_type and not is_anchor:
            elements.append(
                InteractiveElement(type=element_type, action=_action_for(node, element_type), selector=selector)
            )
        for child in node.children:
            _visit(child, selector)

    for node in nodes:
        _visit(node, "")
    return elements


def identify_navigation(nodes: list[SnapshotNode], base_url: str) -> list[NavigationEntry]:
    """Links carrying an href, first occurrence wins."""
    entries: list[NavigationEntry] = []
    seen: set[str] = set()
    for node in _walk(nodes):
        if node.role != "link":
            continue
        href = node.attributes.get("href", "")
        if not href or href in seen:
            continue
        seen.add(href)
        entries.append(NavigationEntry(href=href, text=node.name or href, type=classify_link(href, base_url)))
    return entries


def _to_pixels(value) -> Optional[int]:
    if isinstance(value, int):
        return value
    match = re.match(r"^\s*(\d+)\s*(?:px)?\s*$", str(value))
    return int(match.group(1)) if match else None


def identify_breakpoints(source: str, detected: Optional[list] = None) -> list[int]:
    """Explicit breakpoints first, then responsive prefixes found in the source, else defaults."""
    if detected:
        widths = {px for px in (_to_pixels(v) for v in detected) if px is not None}
        if widths:
            return sorted(widths)

    found = {BREAKPOINT_TOKENS[token] for token in _BREAKPOINT_RE.findall(source or "")}
    if found:
        return sorted(found)
    return list(DEFAULT_BREAKPOINTS)


def extract_dependencies(navigation: list[NavigationEntry]) -> list[str]:
    """Internal, non-root paths linked from the page, deduplicated in order."""
    dependencies: list[str] = []
    for entry in navigation:
        if entry.type != "internal":
            continue
        path = internal_path(entry.href)
        if path and path != "/" and path not in dependencies:
            dependencies.append(path)
    return dependencies


def analyze_page(
    snapshot: str,
    url: str,
    title: str,
    detected_breakpoints: Optional[list] = None,
) -> PageAnalysis:
    """Parse the snapshot once and derive every part of the analysis from the tree."""
    nodes = parse_snapshot(snapshot)
    navigation = identify_navigation(nodes, url)
    analysis = PageAnalysis(
        url=url,
        title=title,
        sections=identify_sections(nodes),
        interactive_elements=identify_interactive_elements(nodes),
        navigation=navigation,
        responsive_breakpoints=identify_breakpoints(snapshot, detected_breakpoints),
        dependencies=extract_dependencies(navigation),
    )
    logger.info(
        "Analyzed %s: %d sections, %d interactive elements, %d links, %d dependencies",
        url,
        len(analysis.sections),
        len(analysis.interactive_elements),
        len(analysis.navigation),
        len(analysis.dependencies),
    )
    return analysis
