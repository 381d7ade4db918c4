import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from . import export_svg
from . import summary as summary_module
from .compilation import compile_file
from .dag import Dag, tag_key
from .parser import RecipeParseError
from .resolver import FileImportResolver


def _to_nodes_edges(dag: Dag) -> dict:
    """Convert a compiled Dag into plain nodes/edges JSON, children nested.

    Edges carry both endpoint ids and endpoint names; style tags are written
    in their joined "a.b" form.
    """
    nodes = [
        {
            "id": node.id,
            "name": node.name,
            "style_tags": [tag_key(tag) for tag in node.style_tags],
            "style": dict(node.style_properties),
        }
        for node in dag.get_node_list()
    ]
    edges = [
        {
            "id": edge.id,
            "name": edge.name,
            "from": edge.src_node_id,
            "to": edge.dest_node_id,
            "from_name": dag.endpoint_name(edge.src_node_id),
            "to_name": dag.endpoint_name(edge.dest_node_id),
            "style_tags": [tag_key(tag) for tag in edge.style_tags],
            "style": dict(edge.style_properties),
        }
        for edge in dag.get_edge_list()
    ]
    graph = {
        "id": dag.id,
        "name": dag.name,
        "style_tags": [tag_key(tag) for tag in dag.style_tags],
        "style": dict(dag.style_properties),
        "nodes": nodes,
        "edges": edges,
        "styles": {name: dict(props) for name, props in dag.get_flattened_styles().items()},
        "style_bindings": {
            keyword: [tag_key(tag) for tag in tags]
            for keyword, tags in dag.get_style_bindings().items()
        },
        "variables": dag.get_var_name_to_node_id_map(),
        "imports": sorted(dag.get_used_imports()),
        "children": [_to_nodes_edges(child) for child in dag.get_child_dags()],
    }
    return graph


def main() -> None:
    ap = argparse.ArgumentParser(description="Compile a recipe into a styled DAG")
    ap.add_argument("file", help="Recipe file to compile")
    ap.add_argument("--import-root", default=None, help="Directory imports resolve against (default: the recipe's directory)")
    ap.add_argument("--out-dir", default=".", help="Directory for recipe.json / recipe.summary / recipe.svg")
    ap.add_argument("--svg", action="store_true", help="Also export recipe.svg via Graphviz (requires dot)")
    ap.add_argument("-v", "--verbose", action="count", default=0, help="Log compilation warnings (-vv for debug)")
    args = ap.parse_args()

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="[recipe2dag] %(levelname)s %(name)s: %(message)s", stream=sys.stderr)

    import_root = args.import_root or str(Path(args.file).resolve().parent)
    try:
        compilation = asyncio.run(compile_file(args.file, FileImportResolver(import_root)))
    except RecipeParseError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)

    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    graph = _to_nodes_edges(compilation.dag)
    with open(out_dir / "recipe.json", "w", encoding="utf-8") as f:
        json.dump(graph, f, indent=2)
    with open(out_dir / "recipe.summary", "w", encoding="utf-8") as f:
        f.write(summary_module.generate(compilation.dag))
    if args.svg:
        try:
            export_svg.export(compilation.dag, filename=str(out_dir / "recipe.svg"))
        except RuntimeError as e:
            print(f"Warning: SVG export skipped: {e}")


if __name__ == "__main__":  # pragma: no cover
    main()
