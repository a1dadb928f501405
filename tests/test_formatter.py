"""Tests for the run synopsis."""

from pageclone.models import PhaseResult
from pageclone.utils.formatter import render_summary


class TestRenderSummary:
    def test_from_record(self, store):
        store.create("https://x.com/p", "demo")
        store.update_phase_status("demo", "analyze", "completed")
        store.update_phase_status("demo", "extract", "failed", "markup was empty")
        store.add_created_files("demo", [f"src/file-{i}.tsx" for i in range(12)])
        store.add_modified_file("demo", "next.config.js")
        store.log_error("demo", "extract", "markup was empty")
        record = store.read("demo")

        summary = render_summary("https://x.com/p", "Demo", "demo", "failed", record=record)

        assert summary.startswith("=== Page Cloning Failed ===")
        assert "✓ analyze: completed" in summary
        assert "✗ extract: failed" in summary
        assert "      - markup was empty" in summary
        assert "Files created: 12" in summary
        assert "  - src/file-9.tsx" in summary
        assert "src/file-10.tsx" not in summary
        assert "... and 2 more" in summary
        assert "Files modified: 1" in summary
        assert "Errors logged: 1" in summary

    def test_from_results_without_record(self):
        results = [
            PhaseResult(phase="analyze", status="success"),
            PhaseResult(phase="extract", status="needs_retry", errors=["timed out"]),
        ]
        summary = render_summary("https://x.com/p", "Demo", "demo", "completed", results=results)
        assert summary.startswith("=== Page Cloning Complete ===")
        assert "Page Slug: demo" in summary
        assert "↻ extract: needs_retry" in summary
        assert "- timed out" in summary
        assert summary.endswith("=" * 29)
        assert "Files created" not in summary

    def test_in_progress_names_resume_phase(self, store):
        store.create("https://x.com/p", "demo")
        for phase in ("analyze", "extract", "plan"):
            store.update_phase_status("demo", phase, "completed")
        store.update_phase_status("demo", "implement", "in_progress")
        record = store.read("demo")

        summary = render_summary("https://x.com/p", "Demo", "demo", "in_progress", record=record)

        assert summary.startswith("=== Page Cloning In Progress ===")
        assert "Resumes at: implement" in summary
        assert "↻ implement: in_progress" in summary
        assert "Failed" not in summary
