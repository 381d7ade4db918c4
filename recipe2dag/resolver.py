"""Import resolvers that read recipes and compile them into fresh Dags."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Dict, FrozenSet, Optional, Union

from .builder import make_dag
from .constants import RECIPE_SUFFIX
from .dag import Dag
from .imports import ImportCycleError, ImportFailure
from .parser import RecipeParseError, parse
from .syntax import RecipeNode

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Awaitable[str]]


class RecipeImportResolver:
    """Resolve import locations through an async ``fetch(location) -> source``.

    Parsed trees are cached per location and shared between compilations;
    each resolve builds a new Dag from the cached tree, so callers never
    share graph state.
    """

    def __init__(self, fetch: Fetcher):
        self._fetch = fetch
        self._trees: Dict[str, RecipeNode] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    async def _get_tree(self, location: str) -> RecipeNode:
        if location not in self._locks:
            self._locks[location] = asyncio.Lock()
        lock = self._locks[location]
        async with lock:
            tree = self._trees.get(location)
            if tree is None:
                logger.info("Fetching recipe %s", location)
                try:
                    source = await self._fetch(location)
                    tree = parse(source)
                except (OSError, RecipeParseError) as e:
                    raise ImportFailure(f"Unable to load {location!r}: {e}") from e
                self._trees[location] = tree
            return tree

    async def resolve(self, location: str, in_flight: FrozenSet[str]) -> Dag:
        if location in in_flight:
            raise ImportCycleError(f"Import cycle detected for {location!r}")
        tree = await self._get_tree(location)
        return await make_dag(tree, self, in_flight | {location})

    def clear_cache(self) -> None:
        self._trees.clear()


class FileImportResolver(RecipeImportResolver):
    """Resolve imports against recipe files under ``root``.

    ``lib`` resolves to ``root/lib`` or, failing that, ``root/lib.fiz``.
    Remote locations are rejected; fetching over the network is left to
    other resolvers.
    """

    def __init__(self, root: Optional[Union[str, Path]] = None):
        self.root = Path(root) if root is not None else Path.cwd()
        super().__init__(self._read)

    def locate(self, location: str) -> Path:
        if "://" in location:
            raise ImportFailure(f"Remote import {location!r} is not supported")
        if not location:
            raise ImportFailure("Import location is empty")
        path = self.root / location
        if not path.exists() and not path.suffix:
            path = path.with_suffix(RECIPE_SUFFIX)
        return path

    async def _read(self, location: str) -> str:
        path = self.locate(location)
        return await asyncio.to_thread(path.read_text, encoding="utf-8")
