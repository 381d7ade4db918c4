from __future__ import annotations

import logging
from typing import Dict, Optional

from .constants import DESCRIPTION_PROPERTY
from .dag import Dag, DagElement, DagStyle, StyleProperties, tag_key
from .syntax import StyleNode

logger = logging.getLogger(__name__)


def add_style_property(properties: Dict[str, str], key: str, value: str) -> None:
    """Set ``key`` in a style body being built.

    Free-text description lines accumulate, one per line; every other
    property is overwritten by its latest value.
    """
    if key == DESCRIPTION_PROPERTY and key in properties:
        properties[key] = properties[key] + "\n" + value
    else:
        properties[key] = value


def flatten_style(style: StyleNode, dag: Dag) -> StyleProperties:
    """Resolve ``style``'s tag references and local properties into one map.

    Referenced tags merge in written order with later tags winning; local
    properties are applied last. A tag must already be registered in
    ``dag``: unknown tags are reported and skipped.
    """
    flattened: StyleProperties = {}
    for tag in style.style_tags:
        referent = dag.get_style(tag)
        if referent is None:
            logger.warning("styleTag %s not found", tag_key(tag))
            continue
        flattened.update(referent)
    flattened.update(style.properties)
    return flattened


def register_named_style(style_name: str, style: StyleNode, dag: Dag) -> StyleProperties:
    flattened = flatten_style(style, dag)
    dag.set_style(style_name, flattened)
    return flattened


def make_dag_style(styling: Optional[StyleNode]) -> Optional[DagStyle]:
    if styling is None:
        return None
    return DagStyle(
        style_tags=[list(tag) for tag in styling.style_tags],
        style_properties=dict(styling.properties),
    )


def resolve_element_properties(dag: Dag, element: DagElement) -> StyleProperties:
    """Properties that apply to ``element``: its tags in order, then its own."""
    resolved: StyleProperties = {}
    for tag in element.style_tags:
        referent = dag.get_style(tag)
        if referent is not None:
            resolved.update(referent)
    resolved.update(element.style_properties)
    return resolved
