from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Optional

from .builder import make_dag
from .dag import Dag
from .imports import ImportResolver
from .parser import parse
from .resolver import FileImportResolver
from .syntax import RecipeNode


@dataclass
class Compilation:
    """Source text together with its syntax tree and compiled Dag."""

    source: str
    ast: RecipeNode
    dag: Dag


async def compile_source(
    source: str,
    resolver: Optional[ImportResolver] = None,
    in_flight: FrozenSet[str] = frozenset(),
) -> Compilation:
    tree = parse(source)
    dag = await make_dag(tree, resolver, in_flight)
    return Compilation(source=source, ast=tree, dag=dag)


async def compile_file(
    filename: str,
    resolver: Optional[ImportResolver] = None,
) -> Compilation:
    """Compile a recipe file; imports resolve next to it unless a resolver is given."""
    path = Path(filename)
    if resolver is None:
        resolver = FileImportResolver(path.parent)
    source = path.read_text(encoding="utf-8")
    # The file itself is in flight so it cannot import itself back
    return await compile_source(source, resolver, frozenset({path.name, path.stem}))
