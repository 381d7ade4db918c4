"""Syntax tree produced by the recipe parser.

Each statement or argument kind is its own dataclass. The builder treats
this set as closed: anything else found in ``statements`` is reported and
skipped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

QualifiedName = List[str]


@dataclass
class StyleNode:
    properties: Dict[str, str] = field(default_factory=dict)
    style_tags: List[QualifiedName] = field(default_factory=list)


@dataclass
class QualifiedVarNode:
    """Reference to a variable, possibly inside a child namespace (``n.x``)."""

    path: QualifiedName = field(default_factory=list)


@dataclass
class LocalVarNode:
    """Left-hand side variable of an assignment or alias."""

    var_name: str
    styling: Optional[StyleNode] = None


@dataclass
class CallNode:
    name: str
    args: List["ValueNode"] = field(default_factory=list)
    styling: Optional[StyleNode] = None


@dataclass
class NamespaceNode:
    name: str = ""
    statements: List["StatementNode"] = field(default_factory=list)
    args: List["ValueNode"] = field(default_factory=list)
    styling: Optional[StyleNode] = None


@dataclass
class ImportNode:
    location: str = ""
    import_name: Optional[str] = None


@dataclass
class AssignmentNode:
    lhs: List[LocalVarNode] = field(default_factory=list)
    rhs: Optional[Union[CallNode, NamespaceNode, ImportNode]] = None


@dataclass
class AliasNode:
    lhs: LocalVarNode
    rhs: QualifiedVarNode


@dataclass
class NamedStyleNode:
    style_name: str
    style: StyleNode = field(default_factory=StyleNode)


@dataclass
class StyleBindingNode:
    keyword: str
    style_tags: List[QualifiedName] = field(default_factory=list)


@dataclass
class RecipeNode:
    statements: List["StatementNode"] = field(default_factory=list)


ValueNode = Union[CallNode, QualifiedVarNode]

StatementNode = Union[
    CallNode,
    AssignmentNode,
    AliasNode,
    QualifiedVarNode,
    NamedStyleNode,
    StyleBindingNode,
    NamespaceNode,
    ImportNode,
]
