"""Command-line entry point.

Without ``--snapshot`` the CLI fetches a page and re-scores its clone until
it passes. With a saved snapshot it runs, or resumes, the full phase
pipeline against the progress store.
"""

import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx

from pageclone.config import get_config
from pageclone.errors import ProgressStoreError
from pageclone.graph import run_pipeline
from pageclone.orchestrator import CloneOptions, create_orchestrator
from pageclone.phases.extract import extract_page_data
from pageclone.phases.verify import verify_clone
from pageclone.progress import ProgressStore
from pageclone.utils.fetcher import fetch_html
from pageclone.utils.naming import generate_slug_from_url
from pageclone.utils.validator import validate_feature_name, validate_url

USAGE = """\
Usage: pageclone <url> <feature-name> [options]

Arguments:
  url                     Source page URL to clone
  feature-name            Feature name for generated code

Options:
  --slug <slug>           Page slug (default: derived from URL)
  --max-iterations <n>    Maximum verification iterations (default: 5)
  --threshold <n>         Pass score threshold, 0-100 (default: 95)
  --clone-url <url>       Clone page URL (default: <clone_base_url>/<slug>)
  --snapshot <file>       Run the phase pipeline from a saved accessibility snapshot
  --implemented           With --snapshot: the generated files are written, go on to verify
  --verbose               Enable debug logging
  --help, -h              Show this help message
"""


@dataclass
class CliOptions:
    url: str
    feature_name: str
    slug: str
    max_iterations: int
    threshold: int
    clone_url: Optional[str] = None
    verbose: bool = False
    snapshot: Optional[str] = None
    implemented: bool = False


def _usage_error(message: str) -> None:
    print(f"[pageclone] {message}", file=sys.stderr)
    print(USAGE, file=sys.stderr)
    sys.exit(1)


def _int_flag(name: str, value: Optional[str]) -> int:
    if value is None:
        _usage_error(f"{name} requires a value.")
    try:
        return int(value)
    except ValueError:
        _usage_error(f"{name} must be an integer, got '{value}'.")


def parse_args(args: list[str]) -> CliOptions:
    """Parse argv (without the program name). Exits on --help or bad usage."""
    if "--help" in args or "-h" in args:
        print(USAGE)
        sys.exit(0)
    if len(args) < 2:
        _usage_error("Expected <url> and <feature-name>.")

    config = get_config()
    url, feature_name = args[0], args[1]
    try:
        validate_url(url)
        validate_feature_name(feature_name)
    except ValueError as exc:
        _usage_error(str(exc))

    options = CliOptions(
        url=url,
        feature_name=feature_name,
        slug=generate_slug_from_url(url),
        max_iterations=config.get("cli_max_iterations", 5),
        threshold=config.get("cli_threshold", 95),
    )

    rest = args[2:]
    i = 0
    while i < len(rest):
        flag = rest[i]
        value = rest[i + 1] if i + 1 < len(rest) else None
        if flag == "--slug":
            if not value:
                _usage_error("--slug requires a value.")
            options.slug = value
            i += 2
        elif flag == "--max-iterations":
            options.max_iterations = _int_flag(flag, value)
            if options.max_iterations < 1:
                _usage_error("--max-iterations must be at least 1.")
            i += 2
        elif flag == "--threshold":
            options.threshold = _int_flag(flag, value)
            if not 0 <= options.threshold <= 100:
                _usage_error("--threshold must be between 0 and 100.")
            i += 2
        elif flag == "--clone-url":
            if not value:
                _usage_error("--clone-url requires a value.")
            options.clone_url = value
            i += 2
        elif flag == "--snapshot":
            if not value:
                _usage_error("--snapshot requires a file path.")
            options.snapshot = value
            i += 2
        elif flag == "--implemented":
            options.implemented = True
            i += 1
        elif flag == "--verbose":
            options.verbose = True
            i += 1
        else:
            _usage_error(f"Unknown option '{flag}'.")

    if options.implemented and not options.snapshot:
        _usage_error("--implemented only applies together with --snapshot.")
    return options


def _clone_url(options: CliOptions) -> str:
    if options.clone_url:
        return options.clone_url
    base = get_config().get("clone_base_url", "http://localhost:3000").rstrip("/")
    return f"{base}/{options.slug}"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def run_auto(options: CliOptions) -> int:
    """Extract the source once, then fetch and score the clone each iteration.

    Returns the process exit code.
    """
    _configure_logging(options.verbose)
    delay = get_config().get("cli_iteration_delay_seconds", 5)
    clone_url = _clone_url(options)

    print(f"[pageclone] Source: {options.url}")
    print(f"[pageclone] Clone:  {clone_url}")
    try:
        source = extract_page_data(fetch_html(options.url), options.url)
    except httpx.HTTPError as exc:
        print(f"[pageclone] Could not fetch source page: {exc}", file=sys.stderr)
        return 2
    counts = source.item_counts
    print(f"[pageclone] Extracted {counts.text} text blocks, {counts.images} images, {counts.links} links")

    for iteration in range(1, options.max_iterations + 1):
        print(f"\n[pageclone] Iteration {iteration}/{options.max_iterations}")
        try:
            clone = extract_page_data(fetch_html(clone_url), options.url)
        except httpx.HTTPError as exc:
            print(f"[pageclone] Could not fetch clone page: {exc}", file=sys.stderr)
        else:
            result = verify_clone(source, clone, options.threshold)
            print(f"[pageclone] Score: {result.score}/100 (threshold {options.threshold})")
            for issue in result.issues:
                print(f"  [{issue.severity}] {issue.type}: {issue.description}")
            for suggestion in result.suggestions:
                print(f"  -> {suggestion}")
            if result.passed:
                print(f"[pageclone] Clone of '{options.feature_name}' passed verification.")
                return 0

        if iteration < options.max_iterations:
            time.sleep(delay)

    print(f"[pageclone] Max iterations ({options.max_iterations}) reached without passing.")
    return 2


def run_phases(options: CliOptions) -> int:
    """Run or resume the phase pipeline for one page.

    Code generation happens outside this tool. The first run stops at the
    implement phase with the plan saved in the progress record; a later run
    with ``--implemented`` records that step and goes on to verify the clone.
    Exit codes: 0 completed (record archived), 1 bad input, 2 failed,
    3 waiting on generated files or a corrected clone.
    """
    _configure_logging(options.verbose)
    try:
        snapshot = Path(options.snapshot).read_text(encoding="utf-8")
    except OSError as exc:
        print(f"[pageclone] Could not read snapshot: {exc}", file=sys.stderr)
        return 1

    clone_options = CloneOptions(
        source_url=options.url,
        feature_name=options.feature_name,
        page_slug=options.slug,
    )
    store = ProgressStore()
    clone_url = _clone_url(options)

    def _fetch_clone() -> str:
        try:
            return fetch_html(clone_url)
        except httpx.HTTPError as exc:
            print(f"[pageclone] Could not fetch clone page: {exc}", file=sys.stderr)
            return ""

    try:
        orchestrator = create_orchestrator(clone_options, store=store)
        resume_at = orchestrator.get_next_phase()
        if options.implemented and resume_at == "implement":
            orchestrator.mark_implement_phase_complete([], [])
            resume_at = orchestrator.get_next_phase()

        html, title = "", ""
        if resume_at in ("analyze", "extract"):
            print(f"[pageclone] Fetching source: {options.url}")
            html = fetch_html(options.url)
            title = extract_page_data(html, options.url).metadata.title or options.feature_name

        result = run_pipeline(clone_options, snapshot, title, html, clone_source=_fetch_clone, store=store)
    except httpx.HTTPError as exc:
        print(f"[pageclone] Could not fetch source page: {exc}", file=sys.stderr)
        return 2
    except (ProgressStoreError, ValueError) as exc:
        print(f"[pageclone] {exc}", file=sys.stderr)
        return 1

    print(result.summary)
    if result.status == "completed":
        return 0
    if result.status == "failed":
        return 2
    if store.get_next_phase(options.slug) == "implement":
        print("[pageclone] Write the files from the implementation plan, then re-run with --implemented.")
    else:
        print(f"[pageclone] Update the clone at {clone_url}, then re-run to verify again.")
    return 3


def main() -> None:
    """CLI entry point."""
    options = parse_args(sys.argv[1:])
    if options.snapshot:
        sys.exit(run_phases(options))
    sys.exit(run_auto(options))


if __name__ == "__main__":
    main()
