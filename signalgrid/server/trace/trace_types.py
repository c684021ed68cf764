"""
TraceEvent type definitions for the Socket.IO ``trace`` channel.
All events are plain dicts so they can be emitted without Pydantic overhead.
"""
from typing import Dict, List, Literal, Optional, TypedDict, Union


class SimulateStartEvent(TypedDict):
    type: Literal["SIMULATE_START"]
    reason: str
    nodeCount: int
    ts: int


class SweepDoneEvent(TypedDict):
    type: Literal["SWEEP_DONE"]
    sweep: int
    values: Dict[str, Optional[float]]
    ts: int


class SimulateDoneEvent(TypedDict):
    type: Literal["SIMULATE_DONE"]
    values: Dict[str, Optional[float]]
    ts: int


class GraphReplacedEvent(TypedDict):
    type: Literal["GRAPH_REPLACED"]
    source: Literal["load", "import", "wipe"]
    nodeCount: int
    connectionCount: int
    ts: int


class StorageErrorEvent(TypedDict):
    type: Literal["STORAGE_ERROR"]
    error: str
    ts: int


TraceEvent = Union[
    SimulateStartEvent,
    SweepDoneEvent,
    SimulateDoneEvent,
    GraphReplacedEvent,
    StorageErrorEvent,
]

TRACE_EVENT_TYPES: List[str] = [
    "SIMULATE_START",
    "SWEEP_DONE",
    "SIMULATE_DONE",
    "GRAPH_REPLACED",
    "STORAGE_ERROR",
]
