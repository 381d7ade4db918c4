import json
from typing import Dict, List

from .dag import Dag, tag_key


def _style_tag_dump(style_tags: List[List[str]]) -> str:
    if not style_tags:
        return ""
    return "\n\tStyleTags: [" + ",".join(tag_key(tag) for tag in style_tags) + "]"


def _style_map_dump(style_map: Dict[str, str]) -> str:
    if not style_map:
        return ""
    return "\n\tStyleMap: " + json.dumps(style_map)


def _generate_level(dag: Dag, depth: int) -> List[str]:
    lines = []
    for node in dag.get_node_list():
        lines.append(
            "Node: " + node.name + _style_tag_dump(node.style_tags) + _style_map_dump(node.style_properties)
        )
    for edge in dag.get_edge_list():
        lines.append(
            f"Edge: {dag.endpoint_name(edge.src_node_id)} -({edge.name})-> {dag.endpoint_name(edge.dest_node_id)}"
            + _style_tag_dump(edge.style_tags)
            + _style_map_dump(edge.style_properties)
        )
    for style_name, style in dag.get_flattened_styles().items():
        lines.append("Style: " + style_name + _style_map_dump(style))
    for keyword, tags in dag.get_style_bindings().items():
        lines.append(f"Binding: {keyword} -> [" + ",".join(tag_key(tag) for tag in tags) + "]")
    indent = "  " * depth
    out = [indent + line.replace("\n", "\n" + indent) for line in lines]
    if depth:
        out.insert(0, "  " * (depth - 1) + "Dag: " + (dag.name or "<anonymous>"))
    for child in dag.get_child_dags():
        out.extend(_generate_level(child, depth + 1))
    return out


def generate(dag: Dag) -> str:
    """Generate a human readable dump of a compiled Dag and its children."""
    return "\n".join(_generate_level(dag, 0)).rstrip() + "\n"
