"""
Graph ⇄ document codec.

``serialize`` and ``deserialize`` are the two halves used by every storage
channel: the local save slot (see store.py) and blueprint export/import
files. Exported blueprints additionally carry an ``exportedAt`` stamp which
is informational and never read back.
"""
from __future__ import annotations

import json
from datetime import datetime
from logging import getLogger
from pathlib import Path
from typing import Any, Dict, Optional, Union

from signalgrid.core.GraphPrimitives import Connection, Graph, SignalNode
from signalgrid.core.Types import AggregateOp, CompareMode, NodeKind, Signal

from .schema import SchemaError, validate, validate_file, validate_text

logger = getLogger(__name__)

EXPORT_TIMESTAMP_FORMAT = "%m/%d/%Y, %I:%M:%S %p"


# ── Node / connection shapes ─────────────────────────────────────────────────

def _encode_node(node: SignalNode) -> Dict[str, Any]:
    return {
        "id": node.id,
        "x": node.x,
        "y": node.y,
        "type": node.kind.value,
        "val": node.value,
        "thresh": node.threshold,
        "logic": node.compare_mode.value,
        "op": node.aggregate_op.value,
        "strict": node.tolerance,
    }


def _decode_signal(raw: Any) -> Signal:
    # OFF is only ever null; every number is a value
    if raw is None:
        return None
    return float(raw)


def _number(raw: Any, default: float = 0.0) -> float:
    return default if raw is None else raw


def _decode_node(raw: Dict[str, Any]) -> SignalNode:
    return SignalNode(
        id=raw["id"],
        kind=NodeKind(raw["type"]),
        x=_number(raw.get("x")),
        y=_number(raw.get("y")),
        value=_decode_signal(raw.get("val")),
        threshold=float(_number(raw.get("thresh"))),
        compare_mode=CompareMode(raw["logic"]) if raw.get("logic") else CompareMode.GT,
        tolerance=float(_number(raw.get("strict"))),
        aggregate_op=AggregateOp(raw["op"]) if raw.get("op") else AggregateOp.SUM,
    )


# ── Public API ────────────────────────────────────────────────────────────────

def serialize(graph: Graph) -> Dict[str, Any]:
    return {
        "nodes": [_encode_node(node) for node in graph.nodes.values()],
        "connections": [
            {"fromId": c.from_id, "toId": c.to_id} for c in graph.connections
        ],
    }


def deserialize(document: Dict[str, Any]) -> Graph:
    """
    Build a new Graph from a document.

    Raises:
        SchemaError: If the document is malformed. Nothing is built in that
            case, so callers can keep their current graph.
    """
    validate(document)
    return _build_graph(document)


def _build_graph(document: Dict[str, Any]) -> Graph:
    graph = Graph()
    for raw in document["nodes"]:
        graph.insert_node(_decode_node(raw))
    # Connections go in unchecked: a dangling endpoint is read as OFF.
    graph.connections = [
        Connection(raw["fromId"], raw["toId"]) for raw in document["connections"]
    ]
    return graph


def dumps(graph: Graph, indent: Optional[int] = None) -> str:
    return json.dumps(serialize(graph), indent=indent)


def loads(text: Union[str, bytes]) -> Graph:
    return _build_graph(validate_text(text))


# ── Blueprint files ───────────────────────────────────────────────────────────

def export_document(graph: Graph, now: Optional[datetime] = None) -> Dict[str, Any]:
    document = serialize(graph)
    document["exportedAt"] = (now or datetime.now()).strftime(EXPORT_TIMESTAMP_FORMAT)
    return document


def export_file(graph: Graph, path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(export_document(graph), indent=2), encoding="utf-8")
    logger.info("Blueprint written to %s (%d nodes)", path, len(graph))
    return path


def import_file(path: Union[str, Path]) -> Graph:
    """
    Read a blueprint file.

    Raises:
        FileNotFoundError: If the file does not exist.
        SchemaError: If the file is not a valid graph document.
    """
    return _build_graph(validate_file(path))


__all__ = [
    "SchemaError",
    "deserialize",
    "dumps",
    "export_document",
    "export_file",
    "import_file",
    "loads",
    "serialize",
]
