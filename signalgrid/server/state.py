"""
GraphState — the one owner of the live signal graph behind the HTTP API.

Every edit goes through a GraphState method, and every method that changes
what the propagator would compute finishes with exactly one propagation
call. The state is created by main.py and handed to the app explicitly; there
is no module-level graph.
"""
from __future__ import annotations

from logging import getLogger
from typing import Any, Dict, Optional, Union

from signalgrid.core.GraphPrimitives import Graph, SignalNode, snap_to_grid
from signalgrid.core.Propagator import Propagator
from signalgrid.core.Types import NodeId, NodeKind, Signal
from signalgrid.persistence import (
    DEFAULT_SLOT,
    LocalStore,
    StorageError,
    deserialize,
    export_document,
    loads,
)
from signalgrid.server.trace.trace_emitter import TraceEmitter, global_tracer

logger = getLogger(__name__)

# Inspector form names → SignalNode attribute names. The wire names match
# the saved document keys.
FIELD_ALIASES: Dict[str, str] = {
    "value": "value",
    "val": "value",
    "thresh": "threshold",
    "logic": "compare_mode",
    "op": "aggregate_op",
    "strict": "tolerance",
}


class CellOccupiedError(ValueError):
    """Raised when a node is dropped on a grid cell that already holds one."""


def _wire_values(values: Dict[NodeId, Signal]) -> Dict[str, Signal]:
    return {str(k): v for k, v in values.items()}


class GraphState:
    """Holds the graph, the propagator wired to the tracer, and the save store."""

    def __init__(
        self,
        store: LocalStore,
        slot: str = DEFAULT_SLOT,
        tracer: Optional[TraceEmitter] = None,
    ) -> None:
        self.graph = Graph()
        self.store = store
        self.slot = slot
        self.tracer = tracer or global_tracer

    # ── Propagation ──────────────────────────────────────────────────────────

    def simulate(self, reason: str = "edit") -> Dict[NodeId, Signal]:
        self.tracer.fire({
            "type": "SIMULATE_START",
            "reason": reason,
            "nodeCount": len(self.graph),
        })

        propagator = Propagator(self.graph)
        propagator.on_sweep_done = lambda sweep, values: self.tracer.fire(
            {"type": "SWEEP_DONE", "sweep": sweep, "values": _wire_values(values)}
        )
        values = propagator.run()

        self.tracer.fire({"type": "SIMULATE_DONE", "values": _wire_values(values)})
        return values

    # ── Node helpers ─────────────────────────────────────────────────────────

    def drop_node(self, kind: Any, x: float, y: float) -> SignalNode:
        """Place a new node on the grid cell nearest (x, y)."""
        kind = NodeKind.parse(kind)
        cell_x, cell_y = snap_to_grid(x, y)
        occupant = self.graph.node_on_cell(cell_x, cell_y)
        if occupant is not None:
            raise CellOccupiedError(f"Grid cell ({cell_x}, {cell_y}) already holds node '{occupant.id}'")

        node_id = self.graph.add_node(kind, (cell_x, cell_y))
        self.simulate("add-node")
        return self.graph.nodes[node_id]

    def delete_node(self, node_id: NodeId) -> None:
        if not self.graph.remove_node(node_id):
            raise KeyError(f"Node with id '{node_id}' does not exist in the graph")
        self.simulate("delete-node")

    def update_node(self, node_id: NodeId, changes: Dict[str, Any]) -> SignalNode:
        """
        Apply inspector changes to a node, then propagate.

        Changes are validated against a copy first so that one bad field
        leaves the node untouched.
        """
        node = self.graph.require_node(node_id)

        scratch = Graph()
        scratch.insert_node(SignalNode(**vars(node)))
        for name, value in changes.items():
            field = FIELD_ALIASES.get(name, name)
            if field == "value" and not node.is_input():
                raise ValueError(f"Only INPUT nodes take a value; node '{node_id}' is {node.kind.value}")
            scratch.set_node_field(node_id, field, value)

        for field, value in vars(scratch.nodes[node_id]).items():
            setattr(node, field, value)

        self.simulate("update-node")
        return node

    # ── Connection helpers ───────────────────────────────────────────────────

    def connect(self, from_id: NodeId, to_id: NodeId) -> None:
        self.graph.add_connection(from_id, to_id)
        self.simulate("connect")

    def disconnect(self, from_id: NodeId, to_id: NodeId) -> int:
        removed = self.graph.remove_connections(
            lambda c: c.from_id == from_id and c.to_id == to_id
        )
        self.simulate("disconnect")
        return removed

    def disconnect_near(self, x: float, y: float) -> int:
        removed = self.graph.remove_connections(self.graph.connection_near(x, y))
        self.simulate("disconnect")
        return removed

    # ── Whole-graph helpers ──────────────────────────────────────────────────

    def reset_values(self) -> None:
        # Clears derived values only; the next edit recomputes them.
        self.graph.reset_values()

    def wipe(self) -> None:
        self.graph.clear()
        self._fire_replaced("wipe")

    def replace_graph(self, graph: Graph, source: str) -> None:
        self.graph.replace(graph)
        self._fire_replaced(source)
        self.simulate(source)

    def _fire_replaced(self, source: str) -> None:
        self.tracer.fire({
            "type": "GRAPH_REPLACED",
            "source": source,
            "nodeCount": len(self.graph),
            "connectionCount": len(self.graph.connections),
        })

    # ── Persistence helpers ──────────────────────────────────────────────────

    def save(self) -> None:
        try:
            self.store.save(self.graph, self.slot)
        except StorageError as exc:
            logger.error("Save failed: %s", exc)
            self.tracer.fire({"type": "STORAGE_ERROR", "error": str(exc)})
            raise

    def load(self) -> bool:
        """
        Replace the graph with the save slot. Returns False when nothing has
        been saved yet; the current graph is kept in that case.
        """
        try:
            graph = self.store.load(self.slot)
        except StorageError as exc:
            logger.error("Load failed: %s", exc)
            self.tracer.fire({"type": "STORAGE_ERROR", "error": str(exc)})
            raise
        if graph is None:
            return False
        self.replace_graph(graph, "load")
        return True

    def import_document(self, document: Any) -> None:
        # deserialize validates before anything is replaced
        self.replace_graph(deserialize(document), "import")

    def import_text(self, text: Union[str, bytes]) -> None:
        self.replace_graph(loads(text), "import")

    def export_document(self) -> Dict[str, Any]:
        return export_document(self.graph)
