"""Prompt → validated graph → persisted workflow.

The editor's "Ask AI" flow, without the UI:

  generate_and_apply()      ask the AI graph source for a graph, sending the
                            current graph (placeholders removed) as context
  apply_generated_workflow() validate the candidate, then create a new
                            workflow or replace the existing one

A candidate with incomplete nodes raises IncompleteNodeConfigurationError
before anything is persisted. Backend failures raise WorkflowClientError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from workflow_builder.client.workflow_client import WorkflowClient
from workflow_builder.graph.model import WorkflowGraph, parse_candidate_graph
from workflow_builder.graph.validator import GraphWarning, validate_graph

logger = logging.getLogger("workflow_builder.assembly")

DEFAULT_WORKFLOW_NAME = "AI Generated Workflow"

CREATED = "created"
MODIFIED = "modified"
GENERATED = "generated"

_NOTICES = {
    CREATED: "Created workflow",
    MODIFIED: "Modified workflow",
    GENERATED: "Generated workflow",
}


@dataclass
class AssemblyOutcome:
    """Result of applying a generated graph.

    action:           CREATED, MODIFIED (replaced a non-empty graph) or
                      GENERATED (filled an empty existing workflow).
    workflow_id:      id of the created or updated workflow.
    graph:            the graph that was persisted.
    warnings:         non-fatal corrections made by the validator.
    selected_node_id: node the editor should select, if any.
    """

    action: str
    workflow_id: str
    graph: WorkflowGraph
    warnings: list[GraphWarning] = field(default_factory=list)
    selected_node_id: str | None = None

    @property
    def notices(self) -> list[str]:
        """Toast-style messages: corrections first, then the success notice."""
        return [w.message for w in self.warnings] + [_NOTICES[self.action]]

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "workflowId": self.workflow_id,
            "graph": self.graph.to_dict(),
            "warnings": [w.to_dict() for w in self.warnings],
            "selectedNodeId": self.selected_node_id,
            "notices": self.notices,
        }


def existing_context(existing: Any) -> WorkflowGraph | None:
    """Graph to send to the AI as context, or None when there is nothing real in it."""
    if existing is None:
        return None
    graph = parse_candidate_graph(existing).without_placeholders()
    return graph if graph.nodes else None


async def apply_generated_workflow(
    client: WorkflowClient,
    candidate: Any,
    *,
    workflow_id: str | None = None,
    existing: Any = None,
) -> AssemblyOutcome:
    """Validate ``candidate`` and persist it.

    Without ``workflow_id`` a new workflow is created. With one, the stored
    graph is replaced wholesale; ``existing`` (the graph the AI was shown)
    only decides name/description fallbacks and the MODIFIED/GENERATED label.
    """
    context = existing_context(existing)
    result = validate_graph(candidate, context)
    graph = result.graph

    if not workflow_id:
        graph.name = graph.name or DEFAULT_WORKFLOW_NAME
        graph.description = graph.description or ""
        created = await client.create(graph)
        new_id = str(created["id"])
        logger.info("Created workflow %s (%d nodes, %d edges)", new_id, len(graph.nodes), len(graph.edges))
        return AssemblyOutcome(
            action=CREATED,
            workflow_id=new_id,
            graph=graph,
            warnings=result.warnings,
            selected_node_id=result.selected_node_id,
        )

    if context is not None:
        action = MODIFIED
        logger.info(
            "Replacing workflow %s: %d nodes -> %d nodes",
            workflow_id, len(context.nodes), len(graph.nodes),
        )
    else:
        action = GENERATED
        graph.name = graph.name or DEFAULT_WORKFLOW_NAME

    await client.update(workflow_id, graph)
    return AssemblyOutcome(
        action=action,
        workflow_id=workflow_id,
        graph=graph,
        warnings=result.warnings,
        selected_node_id=result.selected_node_id,
    )


async def generate_and_apply(
    client: WorkflowClient,
    prompt: str,
    *,
    workflow_id: str | None = None,
    existing: Any = None,
) -> AssemblyOutcome:
    """Ask the AI graph source for a graph, then apply it."""
    prompt = prompt.strip()
    if not prompt:
        raise ValueError("Prompt must not be empty")

    context = existing_context(existing)
    logger.info(
        "Generating workflow (existing context: %s)",
        f"{len(context.nodes)} nodes, {len(context.edges)} edges" if context else "none",
    )
    raw = await client.generate(prompt, context)
    return await apply_generated_workflow(
        client, raw, workflow_id=workflow_id, existing=context,
    )
