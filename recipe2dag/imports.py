"""Import coordination for the graph builder.

Fetching, parsing and caching belong to the injected resolver. This module
only owns the cycle check and the two ways an imported Dag is attached.
"""

from __future__ import annotations

import logging
from typing import FrozenSet, Optional, Protocol

from .dag import Dag, NodeId, new_id

logger = logging.getLogger(__name__)


class ImportFailure(Exception):
    """Raised when an import location cannot be fetched, parsed or compiled."""


class ImportCycleError(ImportFailure):
    """Raised when a location is imported again within its own import chain."""


class ImportResolver(Protocol):
    async def resolve(self, location: str, in_flight: FrozenSet[str]) -> Dag:
        """Return a freshly compiled Dag for ``location``.

        ``in_flight`` holds the locations being resolved along the current
        chain; the returned Dag must not be shared with any other caller.
        """
        ...


async def resolve_import(
    location: str,
    resolver: Optional[ImportResolver],
    in_flight: FrozenSet[str],
) -> Dag:
    if location in in_flight:
        raise ImportCycleError(f"Import cycle detected for {location!r}")
    if resolver is None:
        raise ImportFailure(f"No import resolver configured for {location!r}")
    try:
        return await resolver.resolve(location, in_flight)
    except ImportFailure:
        raise
    except Exception as e:
        raise ImportFailure(f"Import of {location!r} failed: {e}") from e


async def import_as_child(
    location: str,
    import_name: str,
    working_dag: Dag,
    resolver: Optional[ImportResolver],
    in_flight: FrozenSet[str],
) -> NodeId:
    """Attach the imported Dag under a fresh id and return that id."""
    working_dag.add_used_import(location)
    imported = await resolve_import(location, resolver, in_flight)
    imported.id = new_id()
    imported.name = import_name
    working_dag.add_child_dag(imported)
    return imported.id


async def import_merged(
    location: str,
    working_dag: Dag,
    resolver: Optional[ImportResolver],
    in_flight: FrozenSet[str],
) -> None:
    working_dag.add_used_import(location)
    imported = await resolve_import(location, resolver, in_flight)
    logger.debug("Merging %s into %r", location, working_dag)
    working_dag.merge_dag(imported)
