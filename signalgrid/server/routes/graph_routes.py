"""
Graph REST routes: the operations a canvas front end may invoke.

All routes are mounted under /api by main.py. Every mutating route answers
with the fresh view payload so the client can redraw without a second call.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from signalgrid.core.Types import AggregateOp, CompareMode, NodeId, NodeKind
from signalgrid.persistence import SchemaError, StorageError
from signalgrid.server.serializers.graph_serializer import serialize_graph, serialize_inspector
from signalgrid.server.state import CellOccupiedError, GraphState

router = APIRouter()


def get_state(request: Request) -> GraphState:
    return request.app.state.graph_state


def _resolve_id(state: GraphState, raw: Union[str, int]) -> NodeId:
    """
    Path parameters always arrive as strings, but ids loaded from a
    document may be integers.
    """
    if raw in state.graph.nodes:
        return raw
    if isinstance(raw, str) and raw.lstrip("-").isdigit() and int(raw) in state.graph.nodes:
        return int(raw)
    raise HTTPException(status_code=404, detail=f"Node '{raw}' not found")


# ── GET /graph ────────────────────────────────────────────────────────────────

@router.get("/graph")
async def get_graph(state: GraphState = Depends(get_state)) -> Dict[str, Any]:
    return serialize_graph(state.graph)


# ── GET /node-types ───────────────────────────────────────────────────────────

@router.get("/node-types")
async def get_node_types() -> List[str]:
    return [kind.value for kind in NodeKind]


# ── POST /nodes ───────────────────────────────────────────────────────────────

class CreateNodeBody(BaseModel):
    type: NodeKind
    x: float
    y: float


@router.post("/nodes", status_code=201)
async def create_node(body: CreateNodeBody, state: GraphState = Depends(get_state)) -> Dict[str, Any]:
    try:
        node = state.drop_node(body.type, body.x, body.y)
    except CellOccupiedError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return {"id": node.id, "graph": serialize_graph(state.graph)}


# ── DELETE /nodes/:nodeId ─────────────────────────────────────────────────────

@router.delete("/nodes/{node_id}")
async def delete_node(node_id: str, state: GraphState = Depends(get_state)) -> Dict[str, Any]:
    state.delete_node(_resolve_id(state, node_id))
    return serialize_graph(state.graph)


# ── PATCH /nodes/:nodeId ──────────────────────────────────────────────────────

class UpdateNodeBody(BaseModel):
    """Inspector form. Only the fields present in the request are applied."""
    model_config = ConfigDict(extra="forbid")

    value: Optional[float] = Field(default=None, ge=0.0, le=10.0)
    thresh: Optional[float] = None
    logic: Optional[CompareMode] = None
    op: Optional[AggregateOp] = None
    strict: Optional[float] = Field(default=None, ge=0.0)


@router.patch("/nodes/{node_id}")
async def update_node(
    node_id: str, body: UpdateNodeBody, state: GraphState = Depends(get_state)
) -> Dict[str, Any]:
    resolved = _resolve_id(state, node_id)
    # exclude_unset keeps an explicit {"value": null} (switch an INPUT off)
    changes = body.model_dump(exclude_unset=True)
    try:
        state.update_node(resolved, changes)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return serialize_graph(state.graph)


# ── GET /nodes/:nodeId/inspect ────────────────────────────────────────────────

@router.get("/nodes/{node_id}/inspect")
async def inspect_node(node_id: str, state: GraphState = Depends(get_state)) -> Dict[str, Any]:
    node = state.graph.nodes[_resolve_id(state, node_id)]
    return serialize_inspector(state.graph, node)


# ── POST /connections ─────────────────────────────────────────────────────────

class ConnectionBody(BaseModel):
    fromId: Union[int, str]
    toId: Union[int, str]


@router.post("/connections", status_code=201)
async def add_connection(body: ConnectionBody, state: GraphState = Depends(get_state)) -> Dict[str, Any]:
    state.connect(_resolve_id(state, body.fromId), _resolve_id(state, body.toId))
    return serialize_graph(state.graph)


# ── DELETE /connections/near ──────────────────────────────────────────────────
# Registered before the generic DELETE /connections so the path is not shadowed.

@router.delete("/connections/near")
async def delete_connection_near(
    x: float = Query(..., description="Canvas x of the click"),
    y: float = Query(..., description="Canvas y of the click"),
    state: GraphState = Depends(get_state),
) -> Dict[str, Any]:
    removed = state.disconnect_near(x, y)
    return {"removed": removed, "graph": serialize_graph(state.graph)}


# ── DELETE /connections ───────────────────────────────────────────────────────

@router.delete("/connections")
async def delete_connection(
    fromId: str = Query(...),
    toId: str = Query(...),
    state: GraphState = Depends(get_state),
) -> Dict[str, Any]:
    removed = state.disconnect(_resolve_id(state, fromId), _resolve_id(state, toId))
    return {"removed": removed, "graph": serialize_graph(state.graph)}


# ── POST /simulate ────────────────────────────────────────────────────────────

@router.post("/simulate")
async def simulate(state: GraphState = Depends(get_state)) -> Dict[str, Any]:
    state.simulate("manual")
    return serialize_graph(state.graph)


# ── POST /reset ───────────────────────────────────────────────────────────────

@router.post("/reset")
async def reset_values(state: GraphState = Depends(get_state)) -> Dict[str, Any]:
    state.reset_values()
    return serialize_graph(state.graph)


# ── POST /wipe ────────────────────────────────────────────────────────────────

@router.post("/wipe")
async def wipe(state: GraphState = Depends(get_state)) -> Dict[str, Any]:
    state.wipe()
    return serialize_graph(state.graph)


# ── POST /save ────────────────────────────────────────────────────────────────

@router.post("/save")
async def save(state: GraphState = Depends(get_state)) -> Dict[str, Any]:
    try:
        state.save()
    except StorageError as exc:
        raise HTTPException(status_code=507, detail=f"Save failed: {exc}")
    return {"ok": True, "slot": state.slot}


# ── POST /load ────────────────────────────────────────────────────────────────

@router.post("/load")
async def load(state: GraphState = Depends(get_state)) -> Dict[str, Any]:
    try:
        loaded = state.load()
    except StorageError as exc:
        raise HTTPException(status_code=507, detail=f"Load failed: {exc}")
    except SchemaError as exc:
        raise HTTPException(status_code=400, detail=f"Saved graph is corrupt: {exc}")
    if not loaded:
        raise HTTPException(status_code=404, detail=f"Nothing saved in slot '{state.slot}'")
    return serialize_graph(state.graph)


# ── GET /export ───────────────────────────────────────────────────────────────

@router.get("/export")
async def export_blueprint(request: Request, state: GraphState = Depends(get_state)) -> Response:
    filename = request.app.state.settings.export_filename
    return JSONResponse(
        state.export_document(),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ── POST /import ──────────────────────────────────────────────────────────────

@router.post("/import")
async def import_blueprint(request: Request, state: GraphState = Depends(get_state)) -> Dict[str, Any]:
    # Read the raw body so malformed JSON also maps to 400
    text = await request.body()
    try:
        state.import_text(text)
    except SchemaError as exc:
        raise HTTPException(status_code=400, detail=f"Failed to parse logic file: {exc}")
    return serialize_graph(state.graph)
