from typing import Any, Dict

from .dag import Dag, DagElement
from .styles import resolve_element_properties

try:
    from graphviz import Digraph
except Exception:  # pragma: no cover
    Digraph = None  # type: ignore

try:  # optional: only available when graphviz is installed
    from graphviz.backend.execute import ExecutableNotFound  # type: ignore
except Exception:  # pragma: no cover
    ExecutableNotFound = None  # type: ignore

# Recipe style properties that have a direct Graphviz counterpart.
# Anything else stays in the Dag for richer renderers.
NODE_ATTRS = {
    "background-color": "fillcolor",
    "shape": "shape",
    "color": "fontcolor",
    "border-color": "color",
    "label": "label",
    "description": "tooltip",
}
EDGE_ATTRS = {
    "line-color": "color",
    "width": "penwidth",
    "line-style": "style",
    "label": "label",
    "description": "tooltip",
}


def _attrs(dag: Dag, element: DagElement, mapping: Dict[str, str]) -> Dict[str, str]:
    resolved = resolve_element_properties(dag, element)
    attrs = {mapping[key]: value for key, value in resolved.items() if key in mapping}
    if "fillcolor" in attrs:
        attrs["style"] = "filled"
    return attrs


def _add_level(graph: Any, dag: Dag) -> None:
    for node in dag.get_node_list():
        attrs = {"label": node.name}
        attrs.update(_attrs(dag, node, NODE_ATTRS))
        graph.node(node.id, **attrs)

    for child in dag.get_child_dags():
        with graph.subgraph(name=f"cluster_{child.id}") as cluster:
            cluster.attr(label=child.name, style="rounded", color="#bbb")
            # Placeholder node standing in for the whole child as an edge endpoint
            cluster.node(child.id, label=child.name or "[ ]", shape="box3d")
            _add_level(cluster, child)

    for edge in dag.get_edge_list():
        attrs = {"label": edge.name} if edge.name else {}
        attrs.update(_attrs(dag, edge, EDGE_ATTRS))
        graph.edge(edge.src_node_id, edge.dest_node_id, **attrs)


def to_digraph(dag: Dag) -> Any:
    """Build a graphviz Digraph for the Dag, child Dags drawn as clusters."""
    if Digraph is None:
        raise RuntimeError("Python package 'graphviz' is required for SVG export")
    graph = Digraph(format="svg")
    # Top-down layout with a bounding box around the graph
    graph.attr(rankdir="TB")
    graph.attr("graph", margin="0.2", pad="0.3", color="#bbb")
    _add_level(graph, dag)
    return graph


def export(dag: Dag, filename: str = "recipe.svg") -> str:
    """Render the Dag tree to `filename` as SVG.

    Raises RuntimeError when the graphviz package or the `dot` binary is
    missing; nothing is written in that case.
    """
    graph = to_digraph(dag)
    try:
        svg_bytes = graph.pipe(format="svg")
    except Exception as e:  # pragma: no cover - depends on local system
        if ExecutableNotFound is not None and isinstance(e, ExecutableNotFound):
            raise RuntimeError(
                "Graphviz 'dot' executable not found. Install Graphviz (e.g., 'brew install graphviz' on macOS) "
                "or run without --svg."
            ) from e
        raise

    with open(filename, "wb") as f:
        f.write(svg_bytes)
    return filename
