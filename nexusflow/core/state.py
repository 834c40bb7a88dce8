"""Workflow state carried through the orchestration graph.

Runtime entities (nodes, edges, ledger) live on the engine; the graph state
only carries what one phase hands to the next.
"""

from typing import TypedDict

from ..schemas.unified_models import (
    AgentRecord,
    ProcurementIntent,
    Proposal,
    RunOutcome,
)


class Candidate(TypedDict):
    """Supplier eligible to quote, paired with its node id."""

    node_id: str
    record: AgentRecord


class WorkflowState(TypedDict):
    """State shared between workflow phases."""

    intent: ProcurementIntent
    request_id: str | None
    candidates: list[Candidate]
    proposals: list[Proposal]
    winner_id: str | None
    logistics_id: str | None
    outcome: RunOutcome | None


def initial_state(intent: ProcurementIntent) -> WorkflowState:
    """Empty state for a new run."""
    return {
        "intent": intent,
        "request_id": None,
        "candidates": [],
        "proposals": [],
        "winner_id": None,
        "logistics_id": None,
        "outcome": None,
    }
