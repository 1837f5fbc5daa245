"""Workflow graph model and the validator/merger for AI-generated graphs."""

from workflow_builder.graph.model import (
    WorkflowEdge,
    WorkflowGraph,
    WorkflowNode,
    parse_candidate_graph,
)
from workflow_builder.graph.validator import (
    CANONICAL_EDGE_TYPE,
    SUPPORTED_ACTIONS,
    GraphValidationError,
    GraphWarning,
    IncompleteNodeConfigurationError,
    ValidationResult,
    validate_graph,
)

__all__ = [
    "CANONICAL_EDGE_TYPE",
    "SUPPORTED_ACTIONS",
    "GraphValidationError",
    "GraphWarning",
    "IncompleteNodeConfigurationError",
    "ValidationResult",
    "WorkflowEdge",
    "WorkflowGraph",
    "WorkflowNode",
    "parse_candidate_graph",
    "validate_graph",
]
