"""Pipeline state passed between graph nodes for one full cloning run."""

import operator
from typing import Annotated, Literal, Optional, TypedDict


class CloneState(TypedDict, total=False):
    snapshot: str  # Accessibility outline of the source page.
    title: str
    detected_breakpoints: Optional[list]
    html: str  # Source page markup.
    clone_html: Optional[str]  # Replica markup, when no clone source is configured.
    next_phase: Optional[str]  # Resume point read from the progress record.
    last_status: Literal["success", "needs_retry", "failed"]
    implement_completed: bool
    results: Annotated[list[dict], operator.add]  # Phase results, in run order.
