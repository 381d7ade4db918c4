"""Read-only helpers for judging a compiled recipe's shape."""

from __future__ import annotations

from typing import Dict, List, Sequence, TypeVar

from .dag import DagEdge, DagElement, StyleProperties, tag_key

E = TypeVar("E", bound=DagElement)


def get_in_degree(node_id: str, edges: Sequence[DagEdge]) -> int:
    return sum(1 for edge in edges if edge.dest_node_id == node_id)


def get_out_degree(node_id: str, edges: Sequence[DagEdge]) -> int:
    return sum(1 for edge in edges if edge.src_node_id == node_id)


def node_id_to_var_name_count(var_name_to_node_id: Dict[str, str]) -> Dict[str, int]:
    """How many variable names are bound to each node id (aliases included)."""
    counts: Dict[str, int] = {}
    for node_id in var_name_to_node_id.values():
        counts[node_id] = counts.get(node_id, 0) + 1
    return counts


def get_style_tagged_elements(
    flattened_styles: Dict[str, StyleProperties],
    elements: Sequence[E],
) -> List[E]:
    """Elements carrying at least one tag that flattens to a non-empty style."""
    return [
        element
        for element in elements
        if any(flattened_styles.get(tag_key(tag)) for tag in element.style_tags)
    ]
