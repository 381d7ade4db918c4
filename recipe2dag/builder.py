"""Syntax tree -> Dag compilation.

Statements are processed strictly in source order. Every failure is local
to its statement: unresolved references and failed imports are logged and
the statement (or argument) is dropped, so one bad line never aborts the
whole recipe.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import FrozenSet, List, Optional

from .dag import Dag, DagEdge, DagNode, DagStyle, NodeId, new_id, tag_key
from .imports import ImportFailure, ImportResolver, import_as_child, import_merged
from .styles import make_dag_style, register_named_style
from .syntax import (
    AliasNode,
    AssignmentNode,
    CallNode,
    ImportNode,
    NamedStyleNode,
    NamespaceNode,
    QualifiedVarNode,
    RecipeNode,
    StyleBindingNode,
    ValueNode,
)

logger = logging.getLogger(__name__)


@dataclass
class IncomingEdgeInfo:
    node_id: NodeId
    var_name: str
    var_style: Optional[DagStyle]


def _arg_list_to_edge_info(arg_list: List[ValueNode], working_dag: Dag) -> List[IncomingEdgeInfo]:
    infos: List[IncomingEdgeInfo] = []
    for arg in arg_list:
        if isinstance(arg, CallNode):
            arg_node_id = process_call(arg, working_dag)
            infos.append(IncomingEdgeInfo(node_id=arg_node_id, var_name="", var_style=None))
        elif isinstance(arg, QualifiedVarNode):
            src_node_id = working_dag.get_var_source(arg.path)
            if src_node_id is None:
                logger.warning("Unable to find variable with name %s", tag_key(arg.path))
                continue
            infos.append(
                IncomingEdgeInfo(
                    node_id=src_node_id,
                    var_name=arg.path[-1],
                    var_style=working_dag.get_var_style(arg.path),
                )
            )
        else:
            logger.error("Unknown argument type %s", type(arg).__name__)
    return infos


def _add_incoming_edges(infos: List[IncomingEdgeInfo], dest_node_id: NodeId, working_dag: Dag) -> None:
    for info in infos:
        style = info.var_style
        working_dag.add_edge(
            DagEdge(
                id=new_id(),
                name=info.var_name,
                src_node_id=info.node_id,
                dest_node_id=dest_node_id,
                style_tags=[list(tag) for tag in style.style_tags] if style else [],
                style_properties=dict(style.style_properties) if style else {},
            )
        )


def process_call(call: CallNode, working_dag: Dag) -> NodeId:
    node_id = new_id()
    styling = call.styling
    working_dag.add_node(
        DagNode(
            id=node_id,
            name=call.name,
            style_tags=[list(tag) for tag in styling.style_tags] if styling else [],
            style_properties=dict(styling.properties) if styling else {},
        )
    )
    incoming = _arg_list_to_edge_info(call.args, working_dag)
    _add_incoming_edges(incoming, node_id, working_dag)
    return node_id


async def process_namespace(
    namespace: NamespaceNode,
    working_dag: Dag,
    resolver: Optional[ImportResolver],
    in_flight: FrozenSet[str],
) -> NodeId:
    child = await make_sub_dag(namespace, resolver, in_flight, parent=working_dag)
    working_dag.add_child_dag(child)

    incoming = _arg_list_to_edge_info(namespace.args, working_dag)
    _add_incoming_edges(incoming, child.id, working_dag)
    return child.id


async def _process_assignment_rhs(
    rhs: object,
    working_dag: Dag,
    resolver: Optional[ImportResolver],
    in_flight: FrozenSet[str],
) -> NodeId:
    if isinstance(rhs, CallNode):
        return process_call(rhs, working_dag)
    if isinstance(rhs, NamespaceNode):
        return await process_namespace(rhs, working_dag, resolver, in_flight)
    if isinstance(rhs, ImportNode):
        # Imports are awaited one at a time so later statements observe
        # earlier imports in source order.
        return await import_as_child(
            rhs.location, rhs.import_name or "", working_dag, resolver, in_flight
        )
    raise ValueError(f"Unknown assignment value type {type(rhs).__name__}")


async def _process_assignment(
    stmt: AssignmentNode,
    working_dag: Dag,
    resolver: Optional[ImportResolver],
    in_flight: FrozenSet[str],
) -> None:
    if not stmt.lhs or stmt.rhs is None:
        logger.warning("Incomplete assignment skipped")
        return
    try:
        node_id = await _process_assignment_rhs(stmt.rhs, working_dag, resolver, in_flight)
    except (ImportFailure, ValueError) as e:
        logger.warning("Assignment failed: %s", e)
        return
    for lhs_var in stmt.lhs:
        working_dag.set_var_node(lhs_var.var_name, node_id)
        working_dag.set_var_style(lhs_var.var_name, make_dag_style(lhs_var.styling))


def _process_alias(stmt: AliasNode, working_dag: Dag) -> None:
    rhs_path = stmt.rhs.path
    referent = working_dag.get_var_source(rhs_path)
    if referent is None:
        logger.warning("var %s not found", tag_key(rhs_path))
        return
    working_dag.set_var_node(stmt.lhs.var_name, referent)
    working_dag.set_var_style(stmt.lhs.var_name, make_dag_style(stmt.lhs.styling))


async def _process_standalone_import(
    stmt: ImportNode,
    working_dag: Dag,
    resolver: Optional[ImportResolver],
    in_flight: FrozenSet[str],
) -> None:
    try:
        if stmt.import_name:
            await import_as_child(stmt.location, stmt.import_name, working_dag, resolver, in_flight)
        else:
            await import_merged(stmt.location, working_dag, resolver, in_flight)
    except ImportFailure as e:
        logger.warning("Import failed: %s", e)


async def make_sub_dag(
    namespace: NamespaceNode,
    resolver: Optional[ImportResolver] = None,
    in_flight: FrozenSet[str] = frozenset(),
    dag_id: Optional[str] = None,
    parent: Optional[Dag] = None,
) -> Dag:
    """Compile one namespace's statements into a new Dag.

    The Dag starts with empty tables: nothing declared by ``parent`` is
    visible inside. ``parent`` is only recorded for attachment.
    """
    styling = namespace.styling
    cur_level_dag = Dag(
        dag_id=dag_id,
        parent=parent,
        name=namespace.name,
        style_tags=styling.style_tags if styling else None,
        style_properties=styling.properties if styling else None,
    )

    for stmt in namespace.statements:
        if isinstance(stmt, CallNode):
            process_call(stmt, cur_level_dag)
        elif isinstance(stmt, AssignmentNode):
            await _process_assignment(stmt, cur_level_dag, resolver, in_flight)
        elif isinstance(stmt, AliasNode):
            _process_alias(stmt, cur_level_dag)
        elif isinstance(stmt, NamedStyleNode):
            # Styles must be declared before usage; see flatten_style
            register_named_style(stmt.style_name, stmt.style, cur_level_dag)
        elif isinstance(stmt, StyleBindingNode):
            cur_level_dag.add_style_binding(stmt.keyword, stmt.style_tags)
        elif isinstance(stmt, QualifiedVarNode):
            continue
        elif isinstance(stmt, NamespaceNode):
            await process_namespace(stmt, cur_level_dag, resolver, in_flight)
        elif isinstance(stmt, ImportNode):
            await _process_standalone_import(stmt, cur_level_dag, resolver, in_flight)
        else:
            logger.error("Unknown statement type %s", type(stmt).__name__)
    return cur_level_dag


async def make_dag(
    recipe: RecipeNode,
    resolver: Optional[ImportResolver] = None,
    in_flight: FrozenSet[str] = frozenset(),
) -> Dag:
    """Compile a whole recipe, treated as an unnamed and unstyled namespace."""
    return await make_sub_dag(NamespaceNode("", recipe.statements), resolver, in_flight)
