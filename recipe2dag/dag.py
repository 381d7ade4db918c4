"""Graph model: one Dag per lexical level of a recipe.

A Dag holds the call nodes and argument edges of its level, the child Dags
nested under it (namespaces and aliased imports), and the level's symbol
tables: variables, named styles and style bindings. Tables are never
inherited from the parent; lookups only walk downward through named
children.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from .constants import TAG_PATH_SEPARATOR

logger = logging.getLogger(__name__)

NodeId = str
DagId = str
StyleProperties = Dict[str, str]
TagPath = List[str]
NodeNamePair = Tuple[str, str]


def new_id() -> str:
    return str(uuid.uuid4())


def tag_key(path: TagPath) -> str:
    """Registry key for a qualified tag path: ``["a", "b"] -> "a.b"``."""
    return TAG_PATH_SEPARATOR.join(path)


@dataclass
class DagStyle:
    style_tags: List[TagPath] = field(default_factory=list)
    style_properties: StyleProperties = field(default_factory=dict)


@dataclass
class DagElement:
    id: str
    name: str
    style_tags: List[TagPath] = field(default_factory=list)
    style_properties: StyleProperties = field(default_factory=dict)


@dataclass
class DagNode(DagElement):
    pass


@dataclass
class DagEdge(DagElement):
    src_node_id: NodeId = ""
    dest_node_id: NodeId = ""


class Dag:
    """Container for one level's graph elements and symbol tables.

    Child Dags double as node placeholders: an edge may point at a child's
    id, and the renderer expands the child in place.
    """

    def __init__(
        self,
        dag_id: Optional[DagId] = None,
        parent: Optional["Dag"] = None,
        name: str = "",
        style_tags: Optional[List[TagPath]] = None,
        style_properties: Optional[StyleProperties] = None,
    ) -> None:
        self.id: DagId = dag_id or new_id()
        self.parent = parent
        self.name = name
        self.style_tags: List[TagPath] = [list(tag) for tag in style_tags or []]
        self.style_properties: StyleProperties = dict(style_properties or {})

        self._node_map: Dict[NodeId, DagNode] = {}
        self._edge_map: Dict[str, DagEdge] = {}
        self._child_dag_map: Dict[DagId, Dag] = {}
        self._style_registry: Dict[str, StyleProperties] = {}
        self._style_binding_registry: Dict[str, List[TagPath]] = {}
        self._var_table: Dict[str, NodeId] = {}
        self._var_style_table: Dict[str, Optional[DagStyle]] = {}
        self._used_imports: Set[str] = set()

    def __repr__(self) -> str:
        return (
            f"Dag(name={self.name!r}, nodes={len(self._node_map)}, "
            f"edges={len(self._edge_map)}, children={len(self._child_dag_map)})"
        )

    # Elements

    def add_node(self, node: DagNode) -> None:
        self._node_map[node.id] = node

    def has_endpoint(self, node_id: NodeId) -> bool:
        return node_id in self._node_map or node_id in self._child_dag_map

    def add_edge(self, edge: DagEdge) -> bool:
        """Add ``edge`` if both endpoints live in this Dag; drop it otherwise."""
        if not self.has_endpoint(edge.src_node_id):
            logger.warning("Source node id not found: %s", edge.src_node_id)
            return False
        if not self.has_endpoint(edge.dest_node_id):
            logger.warning("Destination node id not found: %s", edge.dest_node_id)
            return False
        self._edge_map[edge.id] = edge
        return True

    def add_child_dag(self, child: "Dag") -> None:
        child.parent = self
        self._child_dag_map[child.id] = child

    def get_node(self, node_id: NodeId) -> Optional[DagNode]:
        return self._node_map.get(node_id)

    def get_node_list(self) -> List[DagNode]:
        return list(self._node_map.values())

    def get_edge_list(self) -> List[DagEdge]:
        return list(self._edge_map.values())

    def get_child_dags(self) -> List["Dag"]:
        return list(self._child_dag_map.values())

    def get_child_dag_by_name(self, name: str) -> Optional["Dag"]:
        # Latest attached child wins when names repeat
        for child in reversed(list(self._child_dag_map.values())):
            if child.name == name:
                return child
        return None

    def endpoint_name(self, node_id: NodeId) -> Optional[str]:
        node = self._node_map.get(node_id)
        if node is not None:
            return node.name
        child = self._child_dag_map.get(node_id)
        if child is not None:
            return child.name
        return None

    def get_node_name_list(self) -> List[str]:
        return sorted(node.name for node in self._node_map.values())

    def get_edge_names_list(self) -> List[NodeNamePair]:
        """Edges as sorted ``(source name, destination name)`` pairs."""
        pairs = [
            (self.endpoint_name(edge.src_node_id) or "", self.endpoint_name(edge.dest_node_id) or "")
            for edge in self._edge_map.values()
        ]
        return sorted(pairs)

    # Variables

    def set_var_node(self, var_name: str, node_id: NodeId) -> None:
        self._var_table[var_name] = node_id

    def set_var_style(self, var_name: str, style: Optional[DagStyle]) -> None:
        self._var_style_table[var_name] = style

    def _walk_to_owner(self, path: TagPath) -> Optional[Tuple["Dag", str]]:
        """Follow all but the last segment of ``path`` down through named children."""
        if not path:
            return None
        owner: Dag = self
        for segment in path[:-1]:
            child = owner.get_child_dag_by_name(segment)
            if child is None:
                logger.warning(
                    "Namespace %r not found while resolving %s", segment, tag_key(path)
                )
                return None
            owner = child
        return owner, path[-1]

    def get_var_node(self, path: TagPath) -> Optional[NodeId]:
        """Node id bound to ``path``, looked up in the Dag that declares it."""
        found = self._walk_to_owner(path)
        if found is None:
            return None
        owner, var_name = found
        return owner._var_table.get(var_name)

    def get_var_source(self, path: TagPath) -> Optional[NodeId]:
        """Id usable as an edge endpoint in this Dag for the variable ``path``.

        A local variable maps to its own node. A qualified variable must
        resolve inside the child, but from here it is represented by the
        first-level child placeholder, since edges never cross Dags.
        """
        if self.get_var_node(path) is None:
            return None
        if len(path) == 1:
            return self._var_table[path[0]]
        child = self.get_child_dag_by_name(path[0])
        return child.id if child is not None else None

    def get_var_style(self, path: TagPath) -> Optional[DagStyle]:
        found = self._walk_to_owner(path)
        if found is None:
            return None
        owner, var_name = found
        return owner._var_style_table.get(var_name)

    def get_var_name_to_node_id_map(self) -> Dict[str, NodeId]:
        return dict(self._var_table)

    # Styles

    def set_style(self, style_name: str, properties: StyleProperties) -> None:
        self._style_registry[style_name] = properties

    def get_style(self, path: TagPath) -> Optional[StyleProperties]:
        """Flattened properties for a tag path, looked up downward only."""
        if not path:
            return None
        if len(path) > 1:
            # A joined key may have arrived through an unaliased merge
            joined = self._style_registry.get(tag_key(path))
            if joined is not None:
                return joined
        found = self._walk_to_owner(path)
        if found is None:
            return None
        owner, style_name = found
        return owner._style_registry.get(style_name)

    def get_flattened_styles(self) -> Dict[str, StyleProperties]:
        return {name: dict(props) for name, props in self._style_registry.items()}

    def add_style_binding(self, keyword: str, style_tags: List[TagPath]) -> None:
        self._style_binding_registry[keyword] = [list(tag) for tag in style_tags]

    def get_style_bindings(self) -> Dict[str, List[TagPath]]:
        return {
            keyword: [list(tag) for tag in tags]
            for keyword, tags in self._style_binding_registry.items()
        }

    # Imports

    def add_used_import(self, location: str) -> None:
        self._used_imports.add(location)

    def get_used_imports(self) -> Set[str]:
        return set(self._used_imports)

    def merge_dag(self, other: "Dag") -> None:
        """Move ``other``'s elements into this Dag, later keys overwriting earlier.

        Variables stay behind: an imported recipe's bindings are private to it.
        """
        self._node_map.update(other._node_map)
        self._edge_map.update(other._edge_map)
        for child in other._child_dag_map.values():
            self.add_child_dag(child)
        self._style_registry.update(other._style_registry)
        self._style_binding_registry.update(other._style_binding_registry)
        self._used_imports.update(other._used_imports)
