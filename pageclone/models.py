"""Pydantic data model shared by every phase of a page-cloning run.

Field names are snake_case in Python and camelCase on disk, so a progress
record written by this package round-trips through the JSON schema used by
the rest of the toolchain.
"""

from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

PhaseName = Literal["analyze", "extract", "plan", "implement", "verify"]
PHASE_ORDER: tuple[PhaseName, ...] = ("analyze", "extract", "plan", "implement", "verify")

PhaseState = Literal["pending", "in_progress", "completed", "failed"]
RunStatus = Literal["in_progress", "completed", "failed"]
LinkType = Literal["internal", "external", "anchor"]
DependencyType = Literal["component", "data", "service", "route"]
DependencyStatus = Literal["needs_creation", "exists", "stub"]
ResultStatus = Literal["success", "needs_retry", "failed"]


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict:
        """JSON-ready dict using the on-disk camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# --- Progress record ---


class PhaseStatus(CamelModel):
    status: PhaseState = "pending"
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    error: Optional[str] = None


class ErrorLog(CamelModel):
    phase: PhaseName
    error: str
    timestamp: str
    resolution: Optional[str] = None


# --- Snapshot analysis ---


class Section(CamelModel):
    id: str
    type: str
    selector: str
    children: list["Section"] = Field(default_factory=list)


class InteractiveElement(CamelModel):
    type: Literal["button", "link", "tab", "dropdown", "accordion", "form"]
    action: str
    selector: str


class NavigationEntry(CamelModel):
    href: str
    text: str
    type: LinkType


class PageAnalysis(CamelModel):
    url: str
    title: str
    sections: list[Section] = Field(default_factory=list)
    interactive_elements: list[InteractiveElement] = Field(default_factory=list)
    navigation: list[NavigationEntry] = Field(default_factory=list)
    responsive_breakpoints: list[int] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)


# --- Extraction ---


class PageMetadata(CamelModel):
    title: str = ""
    description: str = ""
    og_title: str = ""
    og_description: str = ""
    og_image: str = ""
    canonical: str = ""


class TextBlock(CamelModel):
    id: str
    content: str
    tag: str
    order: int


class ImageData(CamelModel):
    src: str
    alt: str = ""
    width: Optional[int] = None
    height: Optional[int] = None


class LinkData(CamelModel):
    href: str
    text: str = ""
    type: LinkType = "internal"


class ListData(CamelModel):
    id: str
    ordered: bool = False
    items: list[str] = Field(default_factory=list)


class ItemCounts(CamelModel):
    text: int = 0
    images: int = 0
    links: int = 0
    list_items: int = 0


class ExtractedData(CamelModel):
    metadata: PageMetadata = Field(default_factory=PageMetadata)
    text_content: list[TextBlock] = Field(default_factory=list)
    images: list[ImageData] = Field(default_factory=list)
    links: list[LinkData] = Field(default_factory=list)
    lists: list[ListData] = Field(default_factory=list)
    structured_data: list[Any] = Field(default_factory=list)
    extracted_at: str = Field(default_factory=utc_now_iso)
    item_counts: ItemCounts = Field(default_factory=ItemCounts)


# --- Dependencies ---


class PageDependency(CamelModel):
    type: DependencyType
    path: str
    status: DependencyStatus = "needs_creation"
    depends_on: list[str] = Field(default_factory=list)


class DependencyGraph(CamelModel):
    page_slug: str
    dependencies: list[PageDependency] = Field(default_factory=list)
    shared_components: list[str] = Field(default_factory=list)
    shared_data: list[str] = Field(default_factory=list)
    linked_pages: list[str] = Field(default_factory=list)


class CircularDependencyResult(CamelModel):
    has_circular: bool
    cycle: Optional[list[str]] = None


class StubResult(CamelModel):
    path: str
    success: bool
    error: Optional[str] = None


class SharedResources(CamelModel):
    components: list[str] = Field(default_factory=list)
    data: list[str] = Field(default_factory=list)


class ResolvedDependencies(CamelModel):
    resolved: list[PageDependency] = Field(default_factory=list)
    stubs: list[str] = Field(default_factory=list)
    circular_dependencies: Optional[list[list[str]]] = None
    shared_resources: SharedResources = Field(default_factory=SharedResources)
    failed_stubs: list[StubResult] = Field(default_factory=list)


# --- Implementation plan ---


class ComponentPlan(CamelModel):
    name: str
    path: str
    props: list[str] = Field(default_factory=list)
    reuses_existing: Optional[str] = None


class DataFilePlan(CamelModel):
    path: str
    data_schema: dict[str, Any] = Field(default_factory=dict, alias="schema")
    source_mapping: dict[str, str] = Field(default_factory=dict)


class ServiceUpdate(CamelModel):
    path: str
    functions: list[str] = Field(default_factory=list)


class TypeDefinition(CamelModel):
    name: str
    path: str
    properties: dict[str, str] = Field(default_factory=dict)


class ConfigUpdate(CamelModel):
    path: str
    changes: dict[str, Any] = Field(default_factory=dict)


class ImplementationPlan(CamelModel):
    page_route: str
    components: list[ComponentPlan] = Field(default_factory=list)
    data_files: list[DataFilePlan] = Field(default_factory=list)
    service_updates: list[ServiceUpdate] = Field(default_factory=list)
    type_definitions: list[TypeDefinition] = Field(default_factory=list)
    config_updates: list[ConfigUpdate] = Field(default_factory=list)
    dependencies: list[PageDependency] = Field(default_factory=list)
    stubs: list[str] = Field(default_factory=list)


# --- Verification ---


class VerificationIssue(CamelModel):
    type: Literal["missing_text", "missing_image", "missing_link", "data_mismatch"]
    severity: Literal["critical", "major", "minor"]
    description: str
    expected: Optional[str] = None
    actual: Optional[str] = None
    fix: Optional[str] = None


class VerificationResult(CamelModel):
    passed: bool
    score: int
    issues: list[VerificationIssue] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)


# --- Progress record and phase results ---


class ProgressRecord(CamelModel):
    source_url: str
    page_slug: str
    started_at: str
    last_updated_at: str
    completed_at: Optional[str] = None
    status: RunStatus = "in_progress"
    phases: dict[PhaseName, PhaseStatus]
    page_analysis: Optional[PageAnalysis] = None
    extracted_data: Optional[ExtractedData] = None
    implementation_plan: Optional[ImplementationPlan] = None
    files_created: list[str] = Field(default_factory=list)
    files_modified: list[str] = Field(default_factory=list)
    errors: list[ErrorLog] = Field(default_factory=list)
    verification_attempts: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _all_phases_present(self) -> "ProgressRecord":
        missing = [p for p in PHASE_ORDER if p not in self.phases]
        if missing:
            raise ValueError(f"phases missing entries for: {', '.join(missing)}")
        return self


class PhaseResult(CamelModel):
    phase: PhaseName
    status: ResultStatus
    data: Any = None
    errors: list[str] = Field(default_factory=list)
    timestamp: str = Field(default_factory=utc_now_iso)
