"""
Graph view serializer.

Turns the live Graph into the JSON-safe dicts the canvas front end draws:
node circles with their display text, connection lines with the signal they
carry, and the inspector payload (incoming signals plus the pass band of a
threshold gate). The persisted document shape lives in signalgrid.persistence;
this module is presentation only and is never read back.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from signalgrid.core.GraphPrimitives import Connection, Graph, SignalNode
from signalgrid.core.Propagator import passes_threshold
from signalgrid.core.Types import CompareMode, NodeKind, format_signal

# Number line shown by the inspector spectrum.
SPECTRUM_MIN = 0.0
SPECTRUM_MAX = 10.0

NODE_DESCRIPTIONS: Dict[NodeKind, str] = {
    NodeKind.INPUT: "Provides a fixed signal value.",
    NodeKind.THRESHOLD: "Compares input to threshold and outputs based on logic.",
    NodeKind.COMPETITIVE: "Combines multiple inputs using selected operation.",
    NodeKind.OUTPUT: "Displays the final signal.",
}


# ── Helpers ───────────────────────────────────────────────────────────────────

def _serialize_node(node: SignalNode) -> Dict[str, Any]:
    return {
        "id": node.id,
        "type": node.kind.value,
        "position": {"x": node.x, "y": node.y},
        "value": node.value,
        "active": node.is_on(),
        "display": format_signal(node.value),
        "thresh": node.threshold,
        "logic": node.compare_mode.value,
        "op": node.aggregate_op.value,
        "strict": node.tolerance,
    }


def _serialize_connection(graph: Graph, connection: Connection, index: int) -> Dict[str, Any]:
    source = graph.get_node(connection.from_id)
    target = graph.get_node(connection.to_id)
    signal = source.value if source else None
    return {
        "index": index,
        "fromId": connection.from_id,
        "toId": connection.to_id,
        "selfLoop": connection.from_id == connection.to_id,
        "dangling": source is None or target is None,
        "active": signal is not None,
        "tooltip": (
            f"Connection: {source.kind.value if source else '?'} -> "
            f"{target.kind.value if target else '?'}\nSignal: {format_signal(signal)}"
        ),
    }


def describe_node(node: SignalNode) -> str:
    """Hover text: kind, current value and what the kind does."""
    return f"{node.kind.value}: {format_signal(node.value)}\n{NODE_DESCRIPTIONS[node.kind]}"


def pass_band(node: SignalNode) -> Optional[Dict[str, Any]]:
    """
    The region of the 0–10 number line a threshold gate lets through, clipped
    to the line. None for every other kind.
    """
    if node.kind != NodeKind.THRESHOLD:
        return None

    tolerance = node.tolerance or 0.0
    band = {
        "start": max(SPECTRUM_MIN, node.threshold - tolerance),
        "end": min(SPECTRUM_MAX, node.threshold + tolerance),
    }

    if node.compare_mode == CompareMode.GT:
        passing = {"start": band["start"], "end": SPECTRUM_MAX}
        label = f"> {node.threshold - tolerance:.1f}"
    elif node.compare_mode == CompareMode.LT:
        passing = {"start": SPECTRUM_MIN, "end": band["end"]}
        label = f"< {node.threshold + tolerance:.1f}"
    else:
        # EQ: the tolerance band is the passing region
        passing = dict(band)
        label = f"= {node.threshold:.1f} ± {tolerance:.1f}"

    return {
        "threshold": node.threshold,
        "tolerance": tolerance,
        "toleranceBand": band,
        "passingSide": passing,
        "label": label,
    }


# ── Public API ─────────────────────────────────────────────────────────────────

def serialize_graph(graph: Graph) -> Dict[str, Any]:
    """Everything the canvas needs for one redraw."""
    return {
        "nodes": [_serialize_node(node) for node in graph.nodes.values()],
        "connections": [
            _serialize_connection(graph, c, i) for i, c in enumerate(graph.connections)
        ],
    }


def serialize_inspector(graph: Graph, node: SignalNode) -> Dict[str, Any]:
    """Inspector + spectrum payload for one node."""
    incoming: List[float] = graph.incoming_values(node.id)
    signals = [
        {
            "value": value,
            "display": format_signal(value),
            # Only the first signal counts for a threshold gate
            "read": node.kind != NodeKind.THRESHOLD or i == 0,
            "passes": passes_threshold(node, value) if node.kind == NodeKind.THRESHOLD else None,
        }
        for i, value in enumerate(incoming)
    ]
    return {
        "node": _serialize_node(node),
        "header": f"{node.kind.value} CONFIG",
        "description": describe_node(node),
        "incoming": signals,
        "passBand": pass_band(node),
        "output": format_signal(node.value),
    }


__all__ = [
    "NODE_DESCRIPTIONS",
    "describe_node",
    "pass_band",
    "serialize_graph",
    "serialize_inspector",
]
