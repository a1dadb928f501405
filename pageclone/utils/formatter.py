"""Output Formatter: renders the terminal synopsis of a cloning run."""

from typing import Optional

from pageclone.models import PHASE_ORDER, PhaseResult, ProgressRecord, RunStatus
from pageclone.progress import next_phase

MAX_LISTED_FILES = 10

_PHASE_ICONS = {
    "completed": "✓",
    "success": "✓",
    "in_progress": "↻",
    "needs_retry": "↻",
    "pending": "·",
    "failed": "✗",
}

_HEADERS = {
    "completed": "=== Page Cloning Complete ===",
    "failed": "=== Page Cloning Failed ===",
    "in_progress": "=== Page Cloning In Progress ===",
}


def _render_phases(record: Optional[ProgressRecord], results: list[PhaseResult]) -> list[str]:
    lines = []
    if record is not None:
        for phase in PHASE_ORDER:
            entry = record.phases[phase]
            lines.append(f"  {_PHASE_ICONS[entry.status]} {phase}: {entry.status}")
            if entry.error:
                lines.append(f"      - {entry.error}")
        return lines

    for result in results:
        lines.append(f"  {_PHASE_ICONS[result.status]} {result.phase}: {result.status}")
        for error in result.errors:
            lines.append(f"      - {error}")
    return lines


def render_summary(
    source_url: str,
    feature_name: str,
    page_slug: str,
    status: RunStatus,
    record: Optional[ProgressRecord] = None,
    results: Optional[list[PhaseResult]] = None,
) -> str:
    """Human-readable synopsis: header, phase outcomes, created and modified files.

    Phase outcomes come from the progress record when one is available,
    otherwise from the in-process phase results. A run still in progress
    names the phase it will resume at.
    """
    results = results or []
    lines = [_HEADERS[status]]
    lines.append(f"Source: {source_url}")
    lines.append(f"Feature: {feature_name}")
    lines.append(f"Page Slug: {page_slug}")
    if status == "in_progress" and record is not None:
        lines.append(f"Resumes at: {next_phase(record)}")
    lines.append("")
    lines.append("Phases:")
    lines.extend(_render_phases(record, results))

    created = record.files_created if record else []
    modified = record.files_modified if record else []

    if created:
        lines.append("")
        lines.append(f"Files created: {len(created)}")
        for path in created[:MAX_LISTED_FILES]:
            lines.append(f"  - {path}")
        if len(created) > MAX_LISTED_FILES:
            lines.append(f"  ... and {len(created) - MAX_LISTED_FILES} more")

    if modified:
        lines.append("")
        lines.append(f"Files modified: {len(modified)}")
        for path in modified:
            lines.append(f"  - {path}")

    if record and record.errors:
        lines.append("")
        lines.append(f"Errors logged: {len(record.errors)}")

    lines.append("=" * 29)
    return "\n".join(lines)
