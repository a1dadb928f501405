"""Orchestrator: sequences the five phases of a cloning run.

The progress record is the only state carried between phases. Each phase
method re-reads it, so phases can be invoked one at a time from separate
processes and pick up exactly what earlier phases persisted.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Literal, Optional

from pageclone.config import get_config
from pageclone.errors import (
    ImplementationError,
    ProgressSourceMismatchError,
    ProgressStoreError,
    ScrapingError,
    classify_error,
    detect_captcha,
    get_recovery_strategy,
    user_friendly_message,
)
from pageclone.models import (
    ErrorLog,
    ExtractedData,
    ImplementationPlan,
    PageAnalysis,
    PhaseName,
    PhaseResult,
    ProgressRecord,
    ResultStatus,
    RunStatus,
)
from pageclone.phases.analyze import analyze_page
from pageclone.phases.extract import extract_page_data
from pageclone.phases.plan import create_implementation_plan
from pageclone.phases.verify import verify_clone
from pageclone.progress import ProgressStore, next_phase
from pageclone.resolver import analyze_dependencies, resolve_dependencies
from pageclone.utils.formatter import render_summary
from pageclone.utils.validator import validate_feature_name, validate_slug, validate_url

logger = logging.getLogger(__name__)

OrchestratorStatus = Literal[
    "idle", "analyzing", "extracting", "planning", "implementing", "verifying", "paused", "completed", "failed"
]

_RUNNING_STATUS: dict[PhaseName, OrchestratorStatus] = {
    "analyze": "analyzing",
    "extract": "extracting",
    "plan": "planning",
    "implement": "implementing",
    "verify": "verifying",
}

_FINAL_STATUS: dict[RunStatus, OrchestratorStatus] = {
    "in_progress": "paused",
    "completed": "completed",
    "failed": "failed",
}

IMPLEMENT_INSTRUCTIONS = [
    "Create TypeScript interfaces from typeDefinitions",
    "Create data files from dataFiles with extracted data",
    "Create service functions from serviceUpdates",
    "Create components from components list",
    "Create page, loading and error components",
    "Update next.config.js for remote images if needed",
    "Report created and modified files through mark_implement_phase_complete",
]


@dataclass
class CloneOptions:
    source_url: str
    feature_name: str
    page_slug: str
    is_dynamic_route: bool = False
    parent_route: Optional[str] = None
    resume: bool = True
    project_root: Optional[Path] = None


@dataclass
class GenerationOutcome:
    files_created: list[str] = field(default_factory=list)
    files_modified: list[str] = field(default_factory=list)


# Turns a resolved plan into application source files. Supplied by the caller.
Generator = Callable[[ImplementationPlan, ExtractedData, PageAnalysis], GenerationOutcome]


@dataclass
class CloneResult:
    success: bool
    status: RunStatus
    page_slug: str
    source_url: str
    phases: list[PhaseResult]
    files_created: list[str]
    files_modified: list[str]
    errors: list[ErrorLog]
    summary: str


class PageCloningOrchestrator:
    """Runs individual phases against the progress record for one page slug."""

    def __init__(
        self,
        options: CloneOptions,
        store: Optional[ProgressStore] = None,
        generator: Optional[Generator] = None,
    ):
        self.options = options
        self.store = store or ProgressStore()
        self.generator = generator
        self.status: OrchestratorStatus = "idle"
        self.phase_results: list[PhaseResult] = []
        self._initialized = False

    @property
    def page_slug(self) -> str:
        return self.options.page_slug

    @property
    def project_root(self) -> Path:
        if self.options.project_root is not None:
            return Path(self.options.project_root)
        return Path(get_config().get("project_root", "."))

    def initialize(self) -> ProgressRecord:
        """Resume the existing record for this slug, or create a fresh one.

        Raises ProgressSourceMismatchError when the existing record tracks a
        different source URL; the record is left untouched.
        """
        validate_url(self.options.source_url)
        validate_feature_name(self.options.feature_name)
        validate_slug(self.page_slug)

        record = self.store.read(self.page_slug) if self.options.resume else None
        if record is not None and record.source_url != self.options.source_url:
            raise ProgressSourceMismatchError(
                f"Progress record '{self.page_slug}' tracks {record.source_url}, not {self.options.source_url}. "
                "Use another page slug or start fresh with resume disabled.",
                self.page_slug,
            )
        if record is not None:
            logger.info("Resuming %s at phase %s", self.page_slug, next_phase(record))
        else:
            record = self.store.create(self.options.source_url, self.page_slug)
        self._initialized = True
        return record

    def record(self) -> Optional[ProgressRecord]:
        return self.store.read(self.page_slug)

    def get_next_phase(self) -> Optional[PhaseName]:
        return self.store.get_next_phase(self.page_slug)

    # --- Phases ---

    def analyze(self, snapshot: str, title: str, detected_breakpoints: Optional[list] = None) -> PhaseResult:
        """Analyze the page snapshot and persist the analysis."""
        try:
            self._begin("analyze")
            if detect_captcha(snapshot):
                raise ScrapingError("CAPTCHA or bot detection encountered", "CAPTCHA", False, self.options.source_url)
            analysis = analyze_page(snapshot, self.options.source_url, title, detected_breakpoints)
            self.store.save_page_analysis(self.page_slug, analysis)
            self.store.update_phase_status(self.page_slug, "analyze", "completed")
        except Exception as exc:
            return self._handle_phase_error("analyze", exc)
        return self._result("analyze", "success", analysis.to_dict())

    def extract(self, html: str) -> PhaseResult:
        """Extract structured content from the source markup and persist it."""
        try:
            if not html or not html.strip():
                raise _missing("Source markup is empty. Fetch the page before extracting.")
            self._begin("extract")
            extracted = extract_page_data(html, self.options.source_url)
            self.store.save_extracted_data(self.page_slug, extracted)
            self.store.update_phase_status(self.page_slug, "extract", "completed")
        except Exception as exc:
            return self._handle_phase_error("extract", exc)
        counts = extracted.item_counts
        logger.info(
            "Extracted %d text blocks, %d images, %d links", counts.text, counts.images, counts.links
        )
        return self._result("extract", "success", extracted.to_dict())

    def plan(self) -> PhaseResult:
        """Plan the implementation and resolve its dependencies, stubbing what is missing."""
        try:
            record = self._require_record()
            if record.page_analysis is None:
                raise _missing("Page analysis not available. Run the analyze phase first.")
            if record.extracted_data is None:
                raise _missing("Extracted data not available. Run the extract phase first.")

            self._begin("plan")
            root = self.project_root
            plan = create_implementation_plan(
                record.page_analysis,
                record.extracted_data,
                self.options.feature_name,
                self.page_slug,
                is_dynamic_route=self.options.is_dynamic_route,
                parent_route=self.options.parent_route,
                project_root=root,
            )
            graph = analyze_dependencies(record.page_analysis, plan, root)
            resolved = resolve_dependencies(graph, root)
            plan.dependencies = resolved.resolved
            plan.stubs = resolved.stubs

            self.store.save_implementation_plan(self.page_slug, plan)
            if resolved.stubs:
                self.store.add_created_files(self.page_slug, resolved.stubs)
            self.store.update_phase_status(self.page_slug, "plan", "completed")
        except Exception as exc:
            return self._handle_phase_error("plan", exc)

        errors = [f"Stub not written for {f.path}: {f.error}" for f in resolved.failed_stubs]
        data = {
            "plan": plan.to_dict(),
            "circularDependencies": resolved.circular_dependencies,
            "sharedResources": resolved.shared_resources.to_dict(),
        }
        return self._result("plan", "success", data, errors)

    def implement(self) -> PhaseResult:
        """Hand the plan to the generator, or return it as instructions for an external one.

        Without a generator the phase stays in progress until
        ``mark_implement_phase_complete`` reports the written files.
        """
        try:
            record = self._require_record()
            if record.implementation_plan is None:
                raise _missing("Implementation plan not available. Run the plan phase first.")

            self._begin("implement")
            if self.generator is None:
                data = {
                    "plan": record.implementation_plan.to_dict(),
                    "instructions": IMPLEMENT_INSTRUCTIONS,
                }
                logger.info("Implement phase prepared for %s, awaiting generated files", self.page_slug)
                return self._result("implement", "success", data)

            outcome = self.generator(record.implementation_plan, record.extracted_data, record.page_analysis)
            self.mark_implement_phase_complete(outcome.files_created, outcome.files_modified)
        except Exception as exc:
            return self._handle_phase_error("implement", exc)
        data = {"filesCreated": outcome.files_created, "filesModified": outcome.files_modified}
        return self._result("implement", "success", data)

    def mark_implement_phase_complete(self, files_created: list[str], files_modified: list[str]) -> ProgressRecord:
        """Record the files written by the generator and complete the implement phase."""
        self.store.add_created_files(self.page_slug, files_created)
        self.store.add_modified_files(self.page_slug, files_modified)
        record = self.store.update_phase_status(self.page_slug, "implement", "completed")
        logger.info(
            "Implement phase completed: %d files created, %d files modified",
            len(files_created),
            len(files_modified),
        )
        return record

    def verify(
        self,
        clone_html: Optional[str] = None,
        clone_data: Optional[ExtractedData] = None,
        source_data: Optional[ExtractedData] = None,
    ) -> PhaseResult:
        """Score the replica against the source extraction.

        Returns needs_retry while attempts remain, failed once they run out.
        """
        config = get_config()
        try:
            record = self._require_record()
            source = source_data or record.extracted_data
            if source is None:
                raise _missing("Source extraction not available. Run the extract phase first.")
            if clone_data is None:
                if not clone_html:
                    raise _missing("Clone markup or clone extraction is required for verification.")
                clone_data = extract_page_data(clone_html, self.options.source_url)

            self._begin("verify")
            attempt = self.store.increment_verification_attempts(self.page_slug)
            result = verify_clone(source, clone_data, config.get("pass_score"))

            max_attempts = config.get("max_verification_attempts", 3)
            if result.passed:
                self.store.update_phase_status(self.page_slug, "verify", "completed")
                return self._result("verify", "success", result.to_dict())
            if attempt < max_attempts:
                logger.info("Verification attempt %d/%d scored %d", attempt, max_attempts, result.score)
                return self._result("verify", "needs_retry", result.to_dict(), result.suggestions)

            message = f"Max verification attempts reached ({attempt}). Last score {result.score}."
            self.store.update_phase_status(self.page_slug, "verify", "failed", message)
        except Exception as exc:
            return self._handle_phase_error("verify", exc)
        return self._result("verify", "failed", result.to_dict(), [message, *result.suggestions])

    # --- Completion ---

    def complete(self) -> CloneResult:
        """Build the terminal synopsis. Archiving is a separate call on the store.

        A run that stopped early, for instance while waiting on generated
        files, is reported as in progress rather than failed.
        """
        record = self.record()
        status: RunStatus
        if record is not None:
            status = record.status
        elif any(r.status == "failed" for r in self.phase_results):
            status = "failed"
        elif self.phase_results and all(r.status == "success" for r in self.phase_results):
            status = "completed"
        else:
            status = "in_progress"
        success = status == "completed"
        self.status = _FINAL_STATUS[status]

        summary = render_summary(
            self.options.source_url,
            self.options.feature_name,
            self.page_slug,
            status,
            record=record,
            results=self.phase_results,
        )
        logger.info("Run for %s finished: %s", self.page_slug, self.status)
        return CloneResult(
            success=success,
            status=status,
            page_slug=self.page_slug,
            source_url=self.options.source_url,
            phases=list(self.phase_results),
            files_created=list(record.files_created) if record else [],
            files_modified=list(record.files_modified) if record else [],
            errors=list(record.errors) if record else [],
            summary=summary,
        )

    # --- Internals ---

    def _require_record(self) -> ProgressRecord:
        if not self._initialized:
            self.initialize()
        record = self.record()
        if record is None:
            raise ImplementationError(
                f"No progress record for '{self.page_slug}'.", "PROGRESS_STATE", self.page_slug
            )
        return record

    def _begin(self, phase: PhaseName) -> None:
        if not self._initialized:
            self.initialize()
        self.status = _RUNNING_STATUS[phase]
        logger.info("Starting %s phase for %s", phase, self.page_slug)
        self.store.update_phase_status(self.page_slug, phase, "in_progress")

    def _result(
        self, phase: PhaseName, status: ResultStatus, data: Any = None, errors: Optional[list[str]] = None
    ) -> PhaseResult:
        result = PhaseResult(phase=phase, status=status, data=data, errors=errors or [])
        self.phase_results.append(result)
        if status == "failed":
            self.status = "failed"
        return result

    def _handle_phase_error(self, phase: PhaseName, exc: Exception) -> PhaseResult:
        classified = classify_error(exc, phase=phase, url=self.options.source_url)
        recovery = get_recovery_strategy(classified)
        message = user_friendly_message(classified)
        logger.warning("Phase %s failed for %s: %s", phase, self.page_slug, exc)

        try:
            if self._initialized and self.store.exists(self.page_slug):
                self.store.log_error(self.page_slug, phase, message, recovery.user_message)
                self.store.update_phase_status(self.page_slug, phase, "failed", message)
        except (ProgressStoreError, ValueError) as store_exc:
            logger.warning("Could not record %s failure for %s: %s", phase, self.page_slug, store_exc)

        status: ResultStatus = "needs_retry" if recovery.action in ("retry", "fix") else "failed"
        data = {"error": classified.to_response(), "recovery": recovery.action}
        return self._result(phase, status, data, [message])


def _missing(message: str) -> ImplementationError:
    return ImplementationError(message, "MISSING_INPUT")


# --- Convenience entry points ---


def create_orchestrator(
    options: CloneOptions,
    store: Optional[ProgressStore] = None,
    generator: Optional[Generator] = None,
) -> PageCloningOrchestrator:
    orchestrator = PageCloningOrchestrator(options, store=store, generator=generator)
    orchestrator.initialize()
    return orchestrator


def execute_phase(
    options: CloneOptions,
    phase: PhaseName,
    phase_input: Optional[dict] = None,
    store: Optional[ProgressStore] = None,
    generator: Optional[Generator] = None,
) -> PhaseResult:
    """Run exactly one phase in a fresh orchestrator, resuming the persisted record.

    ``phase_input`` carries the phase's explicit arguments: ``snapshot``,
    ``title`` and ``detected_breakpoints`` for analyze, ``html`` for extract,
    ``clone_html`` or ``clone_data`` for verify.
    """
    phase_input = phase_input or {}
    orchestrator = create_orchestrator(options, store=store, generator=generator)
    if phase == "analyze":
        return orchestrator.analyze(
            phase_input.get("snapshot", ""),
            phase_input.get("title", ""),
            phase_input.get("detected_breakpoints"),
        )
    if phase == "extract":
        return orchestrator.extract(phase_input.get("html", ""))
    if phase == "plan":
        return orchestrator.plan()
    if phase == "implement":
        return orchestrator.implement()
    if phase == "verify":
        return orchestrator.verify(
            clone_html=phase_input.get("clone_html"),
            clone_data=phase_input.get("clone_data"),
        )
    raise ValueError(f"Unknown phase '{phase}'.")


def get_clone_status(page_slug: str, store: Optional[ProgressStore] = None) -> Optional[ProgressRecord]:
    return (store or ProgressStore()).read(page_slug)


def resume_clone(page_slug: str, store: Optional[ProgressStore] = None) -> Optional[dict]:
    """Where a run left off: its next phase plus whatever earlier phases persisted."""
    record = get_clone_status(page_slug, store)
    if record is None:
        return None
    return {
        "next_phase": next_phase(record),
        "record": record,
        "page_analysis": record.page_analysis,
        "extracted_data": record.extracted_data,
        "implementation_plan": record.implementation_plan,
    }
