from enum import Enum
from typing import Any, Optional, Union

# Node ids are opaque. Fresh ids are uuid hex strings; documents may also
# carry integer ids (millisecond timestamps), and both are kept as-is.
NodeId = Union[str, int]

# A node value is either a number or OFF (None). OFF never compares equal
# to any number, 0.0 included.
Signal = Optional[float]


class NodeKind(Enum):
    INPUT = "INPUT"
    THRESHOLD = "THRESHOLD"
    COMPETITIVE = "COMPETITIVE"
    OUTPUT = "OUTPUT"

    @staticmethod
    def parse(value: Any) -> 'NodeKind':
        return _parse_enum(NodeKind, value)


class CompareMode(Enum):
    GT = "GT"
    LT = "LT"
    EQ = "EQ"

    @staticmethod
    def parse(value: Any) -> 'CompareMode':
        return _parse_enum(CompareMode, value)


class AggregateOp(Enum):
    SUM = "SUM"
    MAX = "MAX"
    MIN = "MIN"
    AVG = "AVG"

    @staticmethod
    def parse(value: Any) -> 'AggregateOp':
        return _parse_enum(AggregateOp, value)


def _parse_enum(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.upper())
        except ValueError:
            pass
    names = ", ".join(m.value for m in enum_cls)
    raise ValueError(f"Invalid {enum_cls.__name__} {value!r}. Must be one of: {names}")


def is_off(value: Signal) -> bool:
    return value is None


def format_signal(value: Signal) -> str:
    """Display text used by the canvas and inspector: one decimal, or OFF."""
    if value is None:
        return "OFF"
    return f"{value:.1f}"
