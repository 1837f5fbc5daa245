"""Workflow graph representation.

Canonical workflow graph format (as exchanged with the editor, the AI graph
source and the workflow backend):

  {
    "name": "Order alert",
    "description": "",
    "nodes": [
      {
        "id": "trigger-1",
        "type": "trigger",
        "position": {"x": 0, "y": 0},
        "data": {
          "type": "trigger",
          "label": "New Order",
          "config": {"triggerType": "Webhook"}
        },
        "selected": false
      },
      ...
    ],
    "edges": [
      {"id": "e1", "source": "trigger-1", "target": "action-1", "type": "animated"}
    ]
  }

Parsing tolerates anything an AI model may return: non-dict payloads,
non-list ``nodes`` / ``edges``, non-dict entries (skipped), missing ids.
Keys this module does not model are preserved in ``extra`` and written back by
to_dict(), so editor-only fields survive a validation round-trip.
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from typing import Any

TRIGGER = "trigger"
ACTION = "action"
CONDITION = "condition"
TRANSFORM = "transform"
PLACEHOLDER = "add"

NODE_KINDS: frozenset[str] = frozenset({TRIGGER, ACTION, CONDITION, TRANSFORM, PLACEHOLDER})

_NODE_KEYS = frozenset({"id", "type", "data", "selected"})
_EDGE_KEYS = frozenset({"id", "source", "target", "type"})


def _str(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


@dataclass
class WorkflowNode:
    """A node in a workflow graph.

    id:       Unique node ID within the graph.
    type:     Top-level node type ("trigger", "action", "condition",
              "transform" or the "add" placeholder).
    data:     Node payload; ``data["type"]`` and ``data["config"]`` are the
              fields the validator reads.
    selected: Editor selection flag.
    extra:    Any other keys (position, measured size, ...), kept verbatim.
    """

    id: str
    type: str = ""
    data: dict[str, Any] = field(default_factory=dict)
    selected: bool = False
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def kind(self) -> str:
        """data.type when present, otherwise the top-level type."""
        data_type = self.data.get("type")
        if isinstance(data_type, str) and data_type:
            return data_type
        return self.type

    @property
    def is_placeholder(self) -> bool:
        return self.type == PLACEHOLDER or self.kind == PLACEHOLDER

    @property
    def config(self) -> dict[str, Any]:
        config = self.data.get("config")
        return config if isinstance(config, dict) else {}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "WorkflowNode":
        data = raw.get("data")
        return cls(
            id=_str(raw.get("id")),
            type=_str(raw.get("type")),
            data=copy.deepcopy(data) if isinstance(data, dict) else {},
            selected=bool(raw.get("selected")),
            extra={k: copy.deepcopy(v) for k, v in raw.items() if k not in _NODE_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "type": self.type, **copy.deepcopy(self.extra)}
        out["data"] = copy.deepcopy(self.data)
        if self.selected:
            out["selected"] = True
        return out


@dataclass
class WorkflowEdge:
    """A directed connection between two nodes.

    type is the render/connector type; the validator forces it to the
    canonical value used for manually drawn edges.
    """

    source: str
    target: str
    type: str | None = None
    id: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "WorkflowEdge":
        edge_type = raw.get("type")
        return cls(
            source=_str(raw.get("source")),
            target=_str(raw.get("target")),
            type=edge_type if isinstance(edge_type, str) else None,
            id=_str(raw.get("id")),
            extra={k: copy.deepcopy(v) for k, v in raw.items() if k not in _EDGE_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.id:
            out["id"] = self.id
        out["source"] = self.source
        out["target"] = self.target
        out["type"] = self.type
        out.update(copy.deepcopy(self.extra))
        return out


@dataclass
class WorkflowGraph:
    """Nodes, edges and workflow metadata."""

    nodes: list[WorkflowNode] = field(default_factory=list)
    edges: list[WorkflowEdge] = field(default_factory=list)
    name: str | None = None
    description: str | None = None

    def node_ids(self) -> set[str]:
        """Return the set of all node IDs currently in the graph."""
        return {n.id for n in self.nodes}

    def get_node(self, node_id: str) -> WorkflowNode | None:
        """Find a node by ID. Returns None if not found."""
        return next((n for n in self.nodes if n.id == node_id), None)

    def real_nodes(self) -> list[WorkflowNode]:
        """Nodes without the editor's "add" placeholders."""
        return [n for n in self.nodes if not n.is_placeholder]

    def nodes_of_kind(self, kind: str) -> list[WorkflowNode]:
        return [n for n in self.nodes if not n.is_placeholder and n.kind == kind]

    def without_placeholders(self) -> "WorkflowGraph":
        """Copy with placeholder nodes and their edges removed."""
        keep = {n.id for n in self.real_nodes()}
        return WorkflowGraph(
            nodes=[copy.deepcopy(n) for n in self.real_nodes()],
            edges=[copy.deepcopy(e) for e in self.edges if e.source in keep and e.target in keep],
            name=self.name,
            description=self.description,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }
        if self.name is not None:
            out["name"] = self.name
        if self.description is not None:
            out["description"] = self.description
        return out

    @classmethod
    def from_dict(cls, raw: Any) -> "WorkflowGraph":
        """Parse a raw graph payload. Never raises; malformed parts are skipped."""
        if isinstance(raw, WorkflowGraph):
            return copy.deepcopy(raw)
        if not isinstance(raw, dict):
            return cls()

        raw_nodes = raw.get("nodes")
        raw_edges = raw.get("edges")
        nodes = [
            WorkflowNode.from_dict(n)
            for n in (raw_nodes if isinstance(raw_nodes, list) else [])
            if isinstance(n, dict)
        ]
        edges = [
            WorkflowEdge.from_dict(e)
            for e in (raw_edges if isinstance(raw_edges, list) else [])
            if isinstance(e, dict)
        ]
        name = raw.get("name")
        description = raw.get("description")
        return cls(
            nodes=nodes,
            edges=edges,
            name=name if isinstance(name, str) and name else None,
            description=description if isinstance(description, str) else None,
        )


def _strip_fences(text: str) -> str:
    """Remove an optional ```json ... ``` fence around model output."""
    stripped = text.strip()
    if not stripped.startswith("```"):
        return stripped
    lines = stripped.splitlines()[1:]
    if lines and lines[-1].strip() == "```":
        lines = lines[:-1]
    inner = "\n".join(lines)
    if inner.rstrip().endswith("```"):
        inner = inner.rstrip()[:-3]
    return inner.strip()


def parse_candidate_graph(raw: Any) -> WorkflowGraph:
    """Parse AI graph source output (dict, JSON string, or fenced JSON).

    Unparseable strings yield an empty graph; the validator then decides what
    an empty candidate means.
    """
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        text = _strip_fences(raw)
        if not text:
            return WorkflowGraph()
        try:
            raw = json.loads(text)
        except json.JSONDecodeError:
            return WorkflowGraph()
    return WorkflowGraph.from_dict(raw)
