"""
simulate_from_json.py — CLI for running a signal grid blueprint
================================================================
Loads an exported blueprint (or a save slot file), runs propagation and
prints the settled value of every node.

Usage
-----
    signalgrid-simulate <blueprint.json> [options]

Options
-------
    --calls N          Number of propagation calls (default: 1). Each call is
                       five sweeps; chains longer than five hops need more.
    --set ID=VALUE     Override an INPUT node before simulating. VALUE may be
                       a number or OFF. Repeatable.
    --out FILE         Write the settled blueprint to FILE instead of only
                       printing the table.

Examples
--------
    signalgrid-simulate ads_network.json
    signalgrid-simulate ads_network.json --set 1718000000000=7.5 --calls 2
    signalgrid-simulate ads_network.json --set in1=OFF --out settled.json
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from signalgrid.core.GraphPrimitives import Graph
from signalgrid.core.Propagator import Propagator
from signalgrid.core.Types import NodeId, Signal, format_signal
from signalgrid.persistence import SchemaError, export_file, import_file

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="signalgrid-simulate",
        description="Propagate a signal grid blueprint and print node values.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    p.add_argument(
        "blueprint",
        metavar="blueprint.json",
        help="Path to the blueprint JSON file.",
    )
    p.add_argument(
        "--calls",
        type=int,
        default=1,
        help="Number of propagation calls to run (default: 1).",
    )
    p.add_argument(
        "--set",
        dest="overrides",
        metavar="ID=VALUE",
        action="append",
        default=[],
        help="Set an INPUT node's value (number or OFF) before simulating.",
    )
    p.add_argument(
        "--out",
        metavar="FILE",
        help="Write the settled blueprint to FILE.",
    )
    p.add_argument(
        "--verbose",
        action="store_true",
        help="Log every sweep.",
    )
    return p


def _parse_override(text: str) -> Tuple[str, Signal]:
    if "=" not in text:
        raise ValueError(f"--set expects ID=VALUE, got {text!r}")
    node_id, raw = text.split("=", 1)
    if raw.strip().upper() == "OFF":
        return node_id.strip(), None
    return node_id.strip(), float(raw)


def _find_node_id(graph: Graph, raw: str) -> Optional[NodeId]:
    if raw in graph.nodes:
        return raw
    if raw.lstrip("-").isdigit() and int(raw) in graph.nodes:
        return int(raw)
    return None


def _format_table(graph: Graph) -> str:
    rows = [("ID", "TYPE", "VALUE")]
    for node in graph.nodes.values():
        rows.append((str(node.id), node.kind.value, format_signal(node.value)))
    widths = [max(len(r[i]) for r in rows) for i in range(3)]
    return "\n".join(
        "  ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)).rstrip()
        for row in rows
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        format="%(levelname)s %(name)s: %(message)s",
        level=logging.DEBUG if args.verbose else logging.WARNING,
    )

    if args.calls < 1:
        print("[error] --calls must be at least 1", file=sys.stderr)
        return 1

    path = Path(args.blueprint)
    if not path.exists():
        print(f"[error] File not found: {path}", file=sys.stderr)
        return 1

    # ── Load ─────────────────────────────────────────────────────────────────
    try:
        graph = import_file(path)
    except SchemaError as exc:
        print(f"[error] Invalid blueprint: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"[error] Could not read {path}: {exc}", file=sys.stderr)
        return 1

    # ── Overrides ────────────────────────────────────────────────────────────
    for text in args.overrides:
        try:
            raw_id, value = _parse_override(text)
        except ValueError as exc:
            print(f"[error] {exc}", file=sys.stderr)
            return 1
        node_id = _find_node_id(graph, raw_id)
        if node_id is None:
            print(f"[error] No node with id {raw_id!r}", file=sys.stderr)
            return 1
        if not graph.nodes[node_id].is_input():
            print(f"[error] Node {raw_id!r} is not an INPUT node", file=sys.stderr)
            return 1
        graph.set_node_field(node_id, "value", value)

    # ── Propagate ────────────────────────────────────────────────────────────
    propagator = Propagator(graph)
    if args.verbose:
        propagator.on_sweep_done = lambda sweep, values: logger.debug(
            "sweep %d: %s", sweep, {k: format_signal(v) for k, v in values.items()}
        )
    for _ in range(args.calls):
        propagator.run()

    # ── Output ───────────────────────────────────────────────────────────────
    print(_format_table(graph))

    if args.out:
        try:
            out_path = export_file(graph, args.out)
        except OSError as exc:
            print(f"[error] Could not write {args.out}: {exc}", file=sys.stderr)
            return 1
        print(f"[signalgrid-simulate] wrote : {out_path}")
    return 0


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
