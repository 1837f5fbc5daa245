"""Validation and merge of AI-generated workflow graphs.

Takes an untrusted candidate graph (typically produced by a language model)
plus the optional graph it is meant to replace, and returns a corrected graph
that satisfies the workflow invariants, together with the corrections made.

Passes, in order (each assumes the previous ones already hold):

  1. normalize_edge_types   every edge gets CANONICAL_EDGE_TYPE
  2. enforce_single_trigger keep the first trigger, drop the others and
                            every edge touching a dropped trigger
  3. drop_invalid_structure drop duplicate node ids (first wins) and edges
                            whose source/target is not in the graph
  4. check_completeness     triggers need config.triggerType, actions need
                            config.actionType; otherwise the whole candidate
                            is rejected with IncompleteNodeConfigurationError
  5. merge_graphs           full replace of the existing graph (metadata
                            falls back to the existing name/description)
  6. find_selected_node_id  first node flagged ``selected``

"add" placeholder nodes are ignored by every check and passed through.

All passes are pure and deterministic: the input is never mutated, and
re-validating a corrected graph returns the same graph with no warnings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from workflow_builder.graph.model import (
    ACTION,
    TRIGGER,
    WorkflowGraph,
    WorkflowNode,
    parse_candidate_graph,
)

logger = logging.getLogger("workflow_builder.graph.validator")

# Connector type used by edges drawn by hand in the editor
CANONICAL_EDGE_TYPE = "animated"

# Action categories the AI graph source can configure
SUPPORTED_ACTIONS: tuple[str, ...] = (
    "Send Email",
    "Send Slack Message",
    "Create Ticket",
    "Database Query",
    "HTTP Request",
    "Generate Text",
    "Generate Image",
)

# Warning codes
EDGE_TYPE_NORMALIZED = "edge_type_normalized"
TRIGGER_COUNT_CORRECTED = "trigger_count_corrected"
DUPLICATE_NODE_DROPPED = "duplicate_node_dropped"
DANGLING_EDGE_DROPPED = "dangling_edge_dropped"

# Config key each node kind must carry
_REQUIRED_CONFIG: dict[str, str] = {
    TRIGGER: "triggerType",
    ACTION: "actionType",
}


# ---------------------------------------------------------------------------
# Errors and results
# ---------------------------------------------------------------------------


class GraphValidationError(Exception):
    """A candidate graph that must not be persisted."""


class IncompleteNodeConfigurationError(GraphValidationError):
    """Raised when triggers/actions lack their type configuration.

    count:             number of incomplete nodes.
    node_ids:          their ids, in input order.
    supported_actions: action categories to suggest to the user.
    """

    def __init__(
        self,
        node_ids: list[str],
        supported_actions: tuple[str, ...] = SUPPORTED_ACTIONS,
    ) -> None:
        self.node_ids = node_ids
        self.count = len(node_ids)
        self.supported_actions = supported_actions
        super().__init__(
            f"Cannot create workflow: The AI tried to create {self.count} incomplete "
            "node(s). The requested action type may not be supported. Please try a "
            "different description using supported actions: "
            f"{_join_choices(supported_actions)}."
        )


def _join_choices(choices: tuple[str, ...]) -> str:
    if len(choices) <= 1:
        return "".join(choices)
    return f"{', '.join(choices[:-1])}, or {choices[-1]}"


@dataclass(frozen=True)
class GraphWarning:
    """A non-fatal correction applied to the candidate.

    code:    one of the *_DROPPED / *_CORRECTED / *_NORMALIZED constants.
    message: short user-facing notice (toast text).
    detail:  structured facts about the correction.
    """

    code: str
    message: str
    detail: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "detail": dict(self.detail)}


@dataclass
class ValidationResult:
    """Corrected graph plus everything the caller needs to present it."""

    graph: WorkflowGraph
    warnings: list[GraphWarning] = field(default_factory=list)
    selected_node_id: str | None = None

    @property
    def notices(self) -> list[str]:
        return [w.message for w in self.warnings]

    def to_dict(self) -> dict[str, Any]:
        return {
            "graph": self.graph.to_dict(),
            "warnings": [w.to_dict() for w in self.warnings],
            "selectedNodeId": self.selected_node_id,
        }


# ---------------------------------------------------------------------------
# Passes
# ---------------------------------------------------------------------------


def normalize_edge_types(graph: WorkflowGraph) -> list[GraphWarning]:
    """Force every edge to CANONICAL_EDGE_TYPE. Mutates ``graph``."""
    changed = 0
    for edge in graph.edges:
        if edge.type != CANONICAL_EDGE_TYPE:
            edge.type = CANONICAL_EDGE_TYPE
            changed += 1
    if not changed:
        return []
    logger.debug("Normalized %d edge type(s) to %r", changed, CANONICAL_EDGE_TYPE)
    return [
        GraphWarning(
            code=EDGE_TYPE_NORMALIZED,
            message=f"Normalized {changed} connection(s) to the standard connector",
            detail={"count": changed, "type": CANONICAL_EDGE_TYPE},
        )
    ]


def enforce_single_trigger(graph: WorkflowGraph) -> list[GraphWarning]:
    """Keep only the first trigger (input order). Mutates ``graph``."""
    triggers = graph.nodes_of_kind(TRIGGER)
    if len(triggers) <= 1:
        return []

    kept = triggers[0]
    dropped = triggers[1:]
    dropped_objs = {id(n) for n in dropped}
    graph.nodes = [n for n in graph.nodes if id(n) not in dropped_objs]
    # Ids still held by a surviving node keep their edges
    removed_ids = {n.id for n in dropped} - graph.node_ids()

    before = len(graph.edges)
    graph.edges = [
        e for e in graph.edges
        if e.source not in removed_ids and e.target not in removed_ids
    ]

    logger.warning(
        "Candidate graph has %d triggers; keeping %r, dropping %s",
        len(triggers), kept.id, [n.id for n in dropped],
    )
    return [
        GraphWarning(
            code=TRIGGER_COUNT_CORRECTED,
            message="Removed extra triggers (workflows can only have 1 trigger)",
            detail={
                "found": len(triggers),
                "kept": kept.id,
                "dropped": [n.id for n in dropped],
                "edges_dropped": before - len(graph.edges),
                "summary": f"{len(triggers)} triggers reduced to 1",
            },
        )
    ]


def drop_invalid_structure(graph: WorkflowGraph) -> list[GraphWarning]:
    """Drop duplicate node ids and edges that reference missing nodes. Mutates ``graph``."""
    warnings: list[GraphWarning] = []

    seen: set[str] = set()
    unique: list[WorkflowNode] = []
    duplicates: list[str] = []
    for node in graph.nodes:
        if node.id in seen:
            duplicates.append(node.id)
            continue
        seen.add(node.id)
        unique.append(node)
    if duplicates:
        graph.nodes = unique
        logger.warning("Dropped %d node(s) with duplicate ids: %s", len(duplicates), duplicates)
        warnings.append(
            GraphWarning(
                code=DUPLICATE_NODE_DROPPED,
                message=f"Removed {len(duplicates)} duplicate node(s)",
                detail={"node_ids": duplicates},
            )
        )

    node_ids = graph.node_ids()
    dangling = [e for e in graph.edges if e.source not in node_ids or e.target not in node_ids]
    if dangling:
        graph.edges = [e for e in graph.edges if e.source in node_ids and e.target in node_ids]
        pairs = [f"{e.source}->{e.target}" for e in dangling]
        logger.warning("Dropped %d dangling edge(s): %s", len(dangling), pairs)
        warnings.append(
            GraphWarning(
                code=DANGLING_EDGE_DROPPED,
                message=f"Removed {len(dangling)} connection(s) to missing steps",
                detail={"edges": pairs},
            )
        )
    return warnings


def find_incomplete_nodes(graph: WorkflowGraph) -> list[WorkflowNode]:
    """Triggers without triggerType and actions without actionType, in input order."""
    incomplete: list[WorkflowNode] = []
    for node in graph.real_nodes():
        required = _REQUIRED_CONFIG.get(node.kind)
        if required is None:
            continue
        value = node.config.get(required)
        if not (isinstance(value, str) and value.strip()):
            incomplete.append(node)
    return incomplete


def check_completeness(graph: WorkflowGraph) -> None:
    """Raise IncompleteNodeConfigurationError if any trigger/action is unconfigured."""
    incomplete = find_incomplete_nodes(graph)
    if incomplete:
        error = IncompleteNodeConfigurationError([n.id for n in incomplete])
        logger.error(
            "Rejecting candidate graph: %d incomplete node(s) %s",
            error.count, error.node_ids,
        )
        raise error


def merge_graphs(corrected: WorkflowGraph, existing: WorkflowGraph | None) -> WorkflowGraph:
    """Full replace: the corrected candidate supersedes ``existing`` entirely.

    Only the name and description fall back to the existing graph when the
    candidate leaves them out.
    """
    if existing is None:
        return corrected
    return WorkflowGraph(
        nodes=corrected.nodes,
        edges=corrected.edges,
        name=corrected.name or existing.name,
        description=corrected.description if corrected.description is not None else existing.description,
    )


def find_selected_node_id(graph: WorkflowGraph) -> str | None:
    """Id of the first node flagged as selected."""
    return next((n.id for n in graph.nodes if n.selected), None)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def validate_graph(
    candidate: Any,
    existing: Any = None,
) -> ValidationResult:
    """Correct ``candidate`` and merge it over ``existing``.

    candidate: WorkflowGraph, raw dict, or JSON / fenced-JSON string.
    existing:  the graph being modified (same accepted forms), or None when
               creating a new workflow.

    Raises IncompleteNodeConfigurationError; no partial graph is returned.
    """
    graph = parse_candidate_graph(candidate)
    existing_graph = parse_candidate_graph(existing) if existing is not None else None

    warnings: list[GraphWarning] = []
    warnings += normalize_edge_types(graph)
    warnings += enforce_single_trigger(graph)
    warnings += drop_invalid_structure(graph)
    check_completeness(graph)

    merged = merge_graphs(graph, existing_graph)
    return ValidationResult(
        graph=merged,
        warnings=warnings,
        selected_node_id=find_selected_node_id(merged),
    )
