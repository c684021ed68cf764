"""
signalgrid persistence — document schema + validator
=====================================================
The local save slot and exported blueprint files share one document shape:

    {
      "nodes": [
        {
          "id":     "3f2a...",        // unique (str or int, required)
          "type":   "THRESHOLD",      // INPUT | THRESHOLD | COMPETITIVE | OUTPUT (required)
          "x":      120,              // canvas position (number, optional → 0)
          "y":      80,
          "val":    7.0,              // number, or null for OFF (optional → OFF)
          "thresh": 5.0,              // number (optional → 0)
          "logic":  "GT",             // GT | LT | EQ (optional → GT)
          "op":     "SUM",            // SUM | MAX | MIN | AVG (optional → SUM)
          "strict": 0                 // tolerance, number >= 0 (optional → 0)
        }
      ],
      "connections": [
        { "fromId": "3f2a...", "toId": "9b1c..." }
      ],
      "exportedAt": "10/19/2026, 7:19:00 PM"   // blueprints only, ignored on load
    }

Unknown keys are ignored. Connections may reference ids that are not in
``nodes``; they are kept and read as OFF by the propagator.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Union

from signalgrid.core.Types import AggregateOp, CompareMode, NodeKind


KNOWN_NODE_TYPES: frozenset[str] = frozenset(k.value for k in NodeKind)
KNOWN_LOGIC: frozenset[str] = frozenset(m.value for m in CompareMode)
KNOWN_OPS: frozenset[str] = frozenset(o.value for o in AggregateOp)

NUMERIC_NODE_FIELDS = ("x", "y", "thresh", "strict")


# ── Validation helpers ────────────────────────────────────────────────────────

class SchemaError(ValueError):
    """Raised when a graph document fails structural validation."""


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise SchemaError(message)


def _require_keys(obj: Dict, keys: List[str], context: str) -> None:
    for key in keys:
        _require(key in obj, f"{context}: missing required field '{key}'")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_id(value: Any) -> bool:
    return isinstance(value, str) or (isinstance(value, int) and not isinstance(value, bool))


# ── Public validator ─────────────────────────────────────────────────────────

def validate(data: Dict[str, Any]) -> None:
    """
    Validate a parsed graph document.

    Raises:
        SchemaError: On any structural violation.
    """
    _require(isinstance(data, dict), "graph document must be a JSON object at the top level")
    _require_keys(data, ["nodes", "connections"], "graph root")

    _require(isinstance(data["nodes"],       list), "nodes must be a list")
    _require(isinstance(data["connections"], list), "connections must be a list")

    # ── Validate nodes ──────────────────────────────────────────────────────

    node_ids: set = set()

    for i, node in enumerate(data["nodes"]):
        ctx = f"nodes[{i}]"
        _require(isinstance(node, dict), f"{ctx}: each node must be a JSON object")
        _require_keys(node, ["id", "type"], ctx)
        _require(_is_id(node["id"]), f"{ctx}.id must be a string or an integer")
        _require(
            node["id"] not in node_ids,
            f"{ctx}: duplicate node id '{node['id']}'",
        )
        node_ids.add(node["id"])

        _require(
            node["type"] in KNOWN_NODE_TYPES,
            f"{ctx}: unknown node type {node['type']!r}",
        )

        for field in NUMERIC_NODE_FIELDS:
            if node.get(field) is not None:
                _require(_is_number(node[field]), f"{ctx}.{field} must be a number")

        if node.get("val") is not None:
            _require(_is_number(node["val"]), f"{ctx}.val must be a number or null")

        if node.get("strict") is not None:
            _require(node["strict"] >= 0, f"{ctx}.strict must not be negative")

        if node.get("logic") is not None:
            _require(node["logic"] in KNOWN_LOGIC, f"{ctx}: unknown logic {node['logic']!r}")
        if node.get("op") is not None:
            _require(node["op"] in KNOWN_OPS, f"{ctx}: unknown op {node['op']!r}")

    # ── Validate connections ────────────────────────────────────────────────

    for i, connection in enumerate(data["connections"]):
        ctx = f"connections[{i}]"
        _require(isinstance(connection, dict), f"{ctx}: each connection must be a JSON object")
        _require_keys(connection, ["fromId", "toId"], ctx)
        for field in ("fromId", "toId"):
            _require(_is_id(connection[field]), f"{ctx}.{field} must be a string or an integer")


def validate_text(text: Union[str, bytes]) -> Dict[str, Any]:
    """Parse JSON text and validate it. Malformed JSON is a SchemaError too."""
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise SchemaError(f"graph document is not valid JSON: {exc}") from exc
    validate(data)
    return data


def validate_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load and validate a graph document file.

    Returns:
        The parsed dict on success.

    Raises:
        FileNotFoundError: If the file does not exist.
        SchemaError: If the file is not JSON or the graph structure is invalid.
    """
    path = Path(path)
    return validate_text(path.read_bytes())


__all__ = [
    "KNOWN_LOGIC",
    "KNOWN_NODE_TYPES",
    "KNOWN_OPS",
    "SchemaError",
    "validate",
    "validate_file",
    "validate_text",
]
