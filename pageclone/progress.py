"""Progress Store: one durable JSON document per page slug.

Every mutator is a full read-modify-write of the record followed by an
atomic replace of the file, so a crash leaves either the previous or the new
record on disk, never a partial one. There is no file locking; callers
serialize operations per page slug.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Callable, Optional

from pydantic import ValidationError

from pageclone.config import get_config
from pageclone.errors import (
    ProgressNotFoundError,
    ProgressParseError,
    ProgressStoreError,
    ProgressValidationError,
    ProgressWriteError,
)
from pageclone.models import (
    PHASE_ORDER,
    ErrorLog,
    ExtractedData,
    ImplementationPlan,
    PageAnalysis,
    PhaseName,
    PhaseState,
    PhaseStatus,
    ProgressRecord,
    RunStatus,
    utc_now_iso,
)
from pageclone.utils.validator import validate_slug

logger = logging.getLogger(__name__)


def overall_status(record: ProgressRecord) -> RunStatus:
    """failed if any phase failed, completed if all five completed, else in_progress."""
    states = [record.phases[p].status for p in PHASE_ORDER]
    if "failed" in states:
        return "failed"
    if all(s == "completed" for s in states):
        return "completed"
    return "in_progress"


def next_phase(record: Optional[ProgressRecord]) -> Optional[PhaseName]:
    """First phase in fixed order that is not completed, or None when all are."""
    if record is None:
        return "analyze"
    for phase in PHASE_ORDER:
        if record.phases[phase].status != "completed":
            return phase
    return None


def last_completed_phase(record: Optional[ProgressRecord]) -> Optional[PhaseName]:
    """Last completed phase before the first phase that is not completed."""
    if record is None:
        return None
    last = None
    for phase in PHASE_ORDER:
        if record.phases[phase].status != "completed":
            break
        last = phase
    return last


class ProgressStore:
    """Reads and writes progress records under a progress directory."""

    def __init__(self, progress_dir: Optional[Path] = None, archive_dir: Optional[Path] = None):
        config = get_config()
        self.progress_dir = Path(progress_dir or config["progress_dir"])
        if archive_dir is not None:
            self.archive_dir = Path(archive_dir)
        elif progress_dir is None and config.get("archive_dir"):
            self.archive_dir = Path(config["archive_dir"])
        else:
            self.archive_dir = self.progress_dir / "archive"

    def path_for(self, page_slug: str) -> Path:
        return self.progress_dir / f"{validate_slug(page_slug)}.json"

    # --- Lifecycle ---

    def create(self, source_url: str, page_slug: str) -> ProgressRecord:
        """Create a fresh record with every phase pending and persist it immediately."""
        now = utc_now_iso()
        record = ProgressRecord(
            source_url=source_url,
            page_slug=validate_slug(page_slug),
            started_at=now,
            last_updated_at=now,
            status="in_progress",
            phases={phase: PhaseStatus() for phase in PHASE_ORDER},
        )
        self._write(record)
        logger.info("Created progress record for %s", page_slug)
        return record

    def read(self, page_slug: str) -> Optional[ProgressRecord]:
        """Return the record, or None if no run exists for this slug.

        A corrupted or schema-invalid file raises instead of returning None,
        so a damaged run is never mistaken for "start fresh".
        """
        path = self.path_for(page_slug)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise ProgressStoreError(f"Could not read {path}: {exc}", page_slug) from exc

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ProgressParseError(f"Progress file {path} is not valid JSON: {exc}", page_slug) from exc

        try:
            return ProgressRecord.model_validate(data)
        except ValidationError as exc:
            raise ProgressValidationError(
                f"Progress file {path} does not match the record schema: {exc}", page_slug
            ) from exc

    def exists(self, page_slug: str) -> bool:
        return self.path_for(page_slug).exists()

    def archive(self, page_slug: str) -> Path:
        """Stamp completedAt, copy the record to the archive and delete the active file.

        Returns the archive path. A failure to delete the active file after the
        copy is written is logged and does not raise.
        """
        record = self._require(page_slug)
        now = utc_now_iso()
        record.completed_at = now
        record.last_updated_at = now

        stamp = now.replace(":", "-").replace(".", "-")
        archive_path = self.archive_dir / f"{page_slug}-{stamp}.json"
        self._write_to(archive_path, record)

        try:
            self.path_for(page_slug).unlink()
        except OSError as exc:
            logger.warning("Archived %s but could not remove the active record: %s", page_slug, exc)

        logger.info("Archived progress record for %s to %s", page_slug, archive_path)
        return archive_path

    # --- Phase status ---

    def update_phase_status(
        self,
        page_slug: str,
        phase: PhaseName,
        status: PhaseState,
        error: Optional[str] = None,
    ) -> ProgressRecord:
        """Transition one phase and recompute the overall run status."""
        if phase not in PHASE_ORDER:
            raise ValueError(f"Unknown phase '{phase}'.")

        def _apply(record: ProgressRecord) -> None:
            entry = record.phases[phase]
            now = utc_now_iso()
            entry.status = status
            if status == "in_progress":
                if entry.started_at is None:
                    entry.started_at = now
                entry.completed_at = None
                entry.error = None
            elif status in ("completed", "failed"):
                if entry.started_at is None:
                    entry.started_at = now
                entry.completed_at = now
                entry.error = error if status == "failed" else None
            else:
                entry.completed_at = None
                entry.error = error
            record.status = overall_status(record)

        return self._mutate(page_slug, _apply)

    def get_next_phase(self, page_slug: str) -> Optional[PhaseName]:
        return next_phase(self.read(page_slug))

    def get_last_completed_phase(self, page_slug: str) -> Optional[PhaseName]:
        return last_completed_phase(self.read(page_slug))

    # --- Attachments ---

    def save_page_analysis(self, page_slug: str, analysis: PageAnalysis) -> ProgressRecord:
        return self._mutate(page_slug, lambda r: setattr(r, "page_analysis", analysis))

    def save_extracted_data(self, page_slug: str, data: ExtractedData) -> ProgressRecord:
        return self._mutate(page_slug, lambda r: setattr(r, "extracted_data", data))

    def save_implementation_plan(self, page_slug: str, plan: ImplementationPlan) -> ProgressRecord:
        return self._mutate(page_slug, lambda r: setattr(r, "implementation_plan", plan))

    def add_created_file(self, page_slug: str, file_path: str) -> ProgressRecord:
        return self.add_created_files(page_slug, [file_path])

    def add_created_files(self, page_slug: str, file_paths: list[str]) -> ProgressRecord:
        return self._mutate(page_slug, lambda r: _extend_unique(r.files_created, file_paths))

    def add_modified_file(self, page_slug: str, file_path: str) -> ProgressRecord:
        return self.add_modified_files(page_slug, [file_path])

    def add_modified_files(self, page_slug: str, file_paths: list[str]) -> ProgressRecord:
        return self._mutate(page_slug, lambda r: _extend_unique(r.files_modified, file_paths))

    def log_error(
        self,
        page_slug: str,
        phase: PhaseName,
        error: str,
        resolution: Optional[str] = None,
    ) -> ProgressRecord:
        entry = ErrorLog(phase=phase, error=error, timestamp=utc_now_iso(), resolution=resolution)
        return self._mutate(page_slug, lambda r: r.errors.append(entry))

    def increment_verification_attempts(self, page_slug: str) -> int:
        record = self._mutate(
            page_slug, lambda r: setattr(r, "verification_attempts", r.verification_attempts + 1)
        )
        return record.verification_attempts

    # --- Internals ---

    def _require(self, page_slug: str) -> ProgressRecord:
        record = self.read(page_slug)
        if record is None:
            raise ProgressNotFoundError(f"No progress record for '{page_slug}'.", page_slug)
        return record

    def _mutate(self, page_slug: str, apply: Callable[[ProgressRecord], None]) -> ProgressRecord:
        record = self._require(page_slug)
        apply(record)
        record.last_updated_at = utc_now_iso()
        self._write(record)
        return record

    def _write(self, record: ProgressRecord) -> None:
        self._write_to(self.path_for(record.page_slug), record)

    def _write_to(self, path: Path, record: ProgressRecord) -> None:
        payload = json.dumps(record.to_dict(), indent=2, ensure_ascii=False)
        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=path.parent, prefix=f".{path.stem}-", suffix=".tmp", delete=False
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(payload)
            os.replace(tmp_name, path)
        except OSError as exc:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise ProgressWriteError(f"Failed to write {path}: {exc}", record.page_slug) from exc


def _extend_unique(target: list[str], items: list[str]) -> None:
    for item in items:
        if item not in target:
            target.append(item)
