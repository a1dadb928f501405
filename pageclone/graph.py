"""LangGraph StateGraph definition for a full page-cloning run.

The entry edge routes to the first phase the progress record has not
completed, so running the graph again after a crash resumes the run.
Collaborators travel in the run config under ``configurable``:

    orchestrator   PageCloningOrchestrator bound to the page slug
    clone_source   optional callable returning the replica's current markup
"""

import logging
from typing import Callable, Optional

from langchain_core.runnables import RunnableConfig
from langgraph.graph import END, START, StateGraph

from pageclone.config import get_config
from pageclone.orchestrator import (
    CloneOptions,
    CloneResult,
    Generator,
    PageCloningOrchestrator,
    create_orchestrator,
)
from pageclone.progress import ProgressStore
from pageclone.state import CloneState

logger = logging.getLogger(__name__)

PHASE_NODES = ("analyze", "extract", "plan", "implement", "verify")


def _orchestrator(config: RunnableConfig) -> PageCloningOrchestrator:
    return config["configurable"]["orchestrator"]


def _updates(result) -> dict:
    return {"last_status": result.status, "results": [result.to_dict()]}


# --- Nodes ---


def analyze_node(state: CloneState, config: RunnableConfig) -> dict:
    result = _orchestrator(config).analyze(
        state.get("snapshot", ""), state.get("title", ""), state.get("detected_breakpoints")
    )
    return _updates(result)


def extract_node(state: CloneState, config: RunnableConfig) -> dict:
    return _updates(_orchestrator(config).extract(state.get("html", "")))


def plan_node(state: CloneState, config: RunnableConfig) -> dict:
    return _updates(_orchestrator(config).plan())


def implement_node(state: CloneState, config: RunnableConfig) -> dict:
    orchestrator = _orchestrator(config)
    result = orchestrator.implement()
    record = orchestrator.record()
    completed = record is not None and record.phases["implement"].status == "completed"
    return {**_updates(result), "implement_completed": completed}


def verify_node(state: CloneState, config: RunnableConfig) -> dict:
    clone_source: Optional[Callable[[], str]] = config["configurable"].get("clone_source")
    clone_html = clone_source() if clone_source is not None else state.get("clone_html")
    return _updates(_orchestrator(config).verify(clone_html=clone_html))


# --- Routing ---


def _route_entry(state: CloneState) -> str:
    """Start at the resume point; a fully completed record goes straight to the end."""
    return state.get("next_phase") or "end"


def _route_after_phase(next_node: str) -> Callable[[CloneState], str]:
    def _route(state: CloneState) -> str:
        return next_node if state.get("last_status") == "success" else "end"

    return _route


def _route_after_implement(state: CloneState) -> str:
    """Verify only once generated files are reported; otherwise wait for the generator."""
    if state.get("last_status") == "success" and state.get("implement_completed"):
        return "verify"
    return "end"


def _route_after_verify(state: CloneState) -> str:
    """Priority order:
    1. success or failed -> end
    2. needs_retry with generation available -> implement again
    3. needs_retry without a generator -> end, the caller re-runs later
    """
    if state.get("last_status") != "needs_retry":
        return "end"
    if state.get("implement_completed"):
        return "implement"
    return "end"


# --- Build the graph ---

workflow = StateGraph(CloneState)

workflow.add_node("analyze", analyze_node)
workflow.add_node("extract", extract_node)
workflow.add_node("plan", plan_node)
workflow.add_node("implement", implement_node)
workflow.add_node("verify", verify_node)

workflow.add_conditional_edges(
    START,
    _route_entry,
    {**{name: name for name in PHASE_NODES}, "end": END},
)
workflow.add_conditional_edges("analyze", _route_after_phase("extract"), {"extract": "extract", "end": END})
workflow.add_conditional_edges("extract", _route_after_phase("plan"), {"plan": "plan", "end": END})
workflow.add_conditional_edges("plan", _route_after_phase("implement"), {"implement": "implement", "end": END})
workflow.add_conditional_edges("implement", _route_after_implement, {"verify": "verify", "end": END})
workflow.add_conditional_edges("verify", _route_after_verify, {"implement": "implement", "end": END})

graph = workflow.compile()


# --- Step-execution helpers ---

_NODE_FNS = {
    "analyze": analyze_node,
    "extract": extract_node,
    "plan": plan_node,
    "implement": implement_node,
    "verify": verify_node,
}


def run_single_step(state: CloneState, node_name: str, config: RunnableConfig) -> CloneState:
    """Run a single node and return the updated state.

    Used for manual step-by-step driving of a run.
    """
    node_fn = _NODE_FNS[node_name]
    updates = node_fn(state, config)
    results = state.get("results", []) + updates.pop("results", [])
    return {**state, **updates, "results": results}


def run_pipeline(
    options: CloneOptions,
    snapshot: str,
    title: str,
    html: str,
    generator: Optional[Generator] = None,
    clone_source: Optional[Callable[[], str]] = None,
    clone_html: Optional[str] = None,
    detected_breakpoints: Optional[list] = None,
    store: Optional[ProgressStore] = None,
) -> CloneResult:
    """Run (or resume) every remaining phase, then summarize.

    The record is archived only when the run reached overall status
    completed; otherwise it stays in place for the next invocation.
    """
    orchestrator = create_orchestrator(options, store=store, generator=generator)
    state: CloneState = {
        "snapshot": snapshot,
        "title": title,
        "detected_breakpoints": detected_breakpoints,
        "html": html,
        "clone_html": clone_html,
        "next_phase": orchestrator.get_next_phase(),
        "implement_completed": False,
        "results": [],
    }
    config: RunnableConfig = {
        "configurable": {"orchestrator": orchestrator, "clone_source": clone_source},
        "recursion_limit": get_config().get("graph_recursion_limit", 50),
    }

    graph.invoke(state, config=config)

    result = orchestrator.complete()
    if result.success:
        archive_path = orchestrator.store.archive(options.page_slug)
        logger.info("Archived completed run to %s", archive_path)
    return result
