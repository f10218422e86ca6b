#!/usr/bin/env python3
"""VoiceMap CLI - lay out, reconstruct, validate and summarize mind maps."""

import argparse
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from .analysis import summarize_map
from .config import LayoutConfig, server_address
from .layout import LayoutType, get_layouted_elements
from .models import MindMapData, PositionedGraph
from .reconstruct import reconstruct_tree
from .validation import validate_graph, validate_tree, validation_summary

logger = logging.getLogger(__name__)


def _json_out(data, code=0):
    print(json.dumps(data, indent=2))
    sys.exit(code)


def _load_json(path):
    try:
        with open(Path(path), "r") as f:
            return json.load(f)
    except FileNotFoundError:
        _json_out({"status": "error", "error": f"File not found: {path}"}, 1)
    except json.JSONDecodeError as e:
        _json_out({"status": "error", "error": f"Invalid JSON in {path}: {e}"}, 1)


def _load_tree(path) -> MindMapData:
    try:
        return MindMapData.from_json_dict(_load_json(path))
    except ValidationError as e:
        _json_out({"status": "error", "error": f"Not a mind map tree: {e}"}, 1)


def _load_graph(path) -> PositionedGraph:
    try:
        return PositionedGraph.model_validate(_load_json(path))
    except ValidationError as e:
        _json_out({"status": "error", "error": f"Not a positioned graph: {e}"}, 1)


# ── Commands ─────────────────────────────────────────────────────────────────

def cmd_layout(args):
    data = _load_tree(args.tree)
    graph = get_layouted_elements(data, args.layout, LayoutConfig.from_env())
    _json_out(graph.to_json_dict())


def cmd_reconstruct(args):
    graph = _load_graph(args.graph)
    result = reconstruct_tree(graph.nodes, graph.edges, args.root)
    if result.ok:
        _json_out(result.data.to_json_dict())
    _json_out(result.to_dict(), 1)


def cmd_validate(args):
    raw = _load_json(args.file)
    # Same detection as MindMapData.from_json_dict: wrapped or bare root
    if isinstance(raw, dict) and ("root" in raw or "label" in raw):
        issues = validate_tree(_load_tree(args.file))
    else:
        graph = _load_graph(args.file)
        issues = validate_graph(graph.nodes, graph.edges)
    summary = validation_summary(issues)
    _json_out({
        "issues": [i.to_dict() for i in issues],
        "summary": summary,
    }, 0 if summary["valid"] else 1)


def cmd_summarize(args):
    _json_out(summarize_map(_load_tree(args.tree)).to_dict())


def cmd_serve(args):
    import uvicorn

    host, port = server_address()
    uvicorn.run(
        "mindmap.server.app:app",
        host=args.host or host,
        port=args.port or port,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mindmap", description=__doc__)
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("layout", help="Tree JSON -> positioned graph JSON")
    p.add_argument("tree")
    p.add_argument("--layout", default=LayoutType.LR.value,
                   choices=[t.value for t in LayoutType])

    p = sub.add_parser("reconstruct", help="Positioned graph JSON -> tree JSON")
    p.add_argument("graph")
    p.add_argument("--root", default=None, help="Preferred root id")

    p = sub.add_parser("validate", help="Check a tree or graph JSON file")
    p.add_argument("file")

    p = sub.add_parser("summarize", help="Summarize a tree JSON file")
    p.add_argument("tree")

    p = sub.add_parser("serve", help="Run the HTTP service")
    p.add_argument("--host", default=None)
    p.add_argument("--port", type=int, default=None)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )

    cmd_map = {
        "layout": cmd_layout,
        "reconstruct": cmd_reconstruct,
        "validate": cmd_validate,
        "summarize": cmd_summarize,
        "serve": cmd_serve,
    }
    cmd_map[args.command](args)


if __name__ == "__main__":
    main()
