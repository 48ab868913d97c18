from __future__ import annotations

from collections import deque
from concurrent.futures import ThreadPoolExecutor
from types import MappingProxyType
from typing import Deque, FrozenSet, Iterable, List, Mapping, Optional, Set, Tuple

import networkx as nx

from solbuild.core import get_logger

from .exceptions import CycleReportedError
from .source_resolver import ImportSpecifier, ResolvedSourceUnit, SourceResolver

logger = get_logger(__name__)


class DependencyGraph:
    """
    Transitive import closure over a set of seed source units. Nodes are source unit names,
    an edge `a -> b` means that `a` imports `b`. Every edge target is a node of the graph.
    """

    __graph: nx.DiGraph

    def __init__(self, graph: nx.DiGraph):
        self.__graph = graph

    @classmethod
    def build_from_seeds(
        cls,
        seed_units: Iterable[ResolvedSourceUnit],
        resolver: SourceResolver,
        *,
        max_workers: Optional[int] = None,
    ) -> DependencyGraph:
        """
        Compute the transitive closure of imports of `seed_units`. Imports of one breadth-first layer are
        resolved concurrently, the graph itself is only modified from the calling thread.

        Raises:
            UnresolvedImportError: Some import cannot be mapped to an existing file.
        """
        graph = nx.DiGraph()
        queue: Deque[ResolvedSourceUnit] = deque()

        for unit in seed_units:
            if unit.global_name not in graph:
                graph.add_node(unit.global_name, unit=unit)
                queue.append(unit)

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            while len(queue) > 0:
                layer = list(queue)
                queue.clear()

                pending: List[Tuple[ResolvedSourceUnit, ImportSpecifier]] = [
                    (unit, specifier) for unit in layer for specifier in unit.imports
                ]
                resolved = executor.map(
                    lambda p: resolver.resolve_import(*p), pending
                )

                for (unit, _), imported in zip(pending, resolved):
                    if imported.global_name not in graph:
                        graph.add_node(imported.global_name, unit=imported)
                        queue.append(imported)
                    graph.add_edge(unit.global_name, imported.global_name)

        logger.debug(
            f"Built dependency graph with {graph.number_of_nodes()} source units and {graph.number_of_edges()} imports"
        )
        return cls(graph)

    def __len__(self) -> int:
        return self.__graph.number_of_nodes()

    def __contains__(self, global_name: object) -> bool:
        return global_name in self.__graph

    def __getitem__(self, global_name: str) -> ResolvedSourceUnit:
        return self.__graph.nodes[global_name]["unit"]

    @property
    def graph(self) -> nx.DiGraph:
        return self.__graph

    @property
    def nodes(self) -> Mapping[str, ResolvedSourceUnit]:
        return MappingProxyType(
            {name: data["unit"] for name, data in self.__graph.nodes(data=True)}
        )

    @property
    def edges(self) -> Mapping[str, FrozenSet[str]]:
        """
        Returns:
            Mapping of source unit names to names of the units they import.
        """
        return MappingProxyType(
            {name: frozenset(self.__graph.successors(name)) for name in self.__graph}
        )

    def flatten(self) -> List[ResolvedSourceUnit]:
        """
        Returns:
            All source units of the graph ordered by source unit name.
        """
        return [self[name] for name in sorted(self.__graph.nodes)]

    def is_acyclic(self) -> bool:
        return nx.is_directed_acyclic_graph(self.__graph)

    def detect_cycles(self) -> List[List[str]]:
        """
        Returns:
            All elementary import cycles. Each cycle starts with its lexicographically smallest source unit name,
            cycles are sorted.
        """
        cycles = []
        for cycle in nx.simple_cycles(self.__graph):
            start = cycle.index(min(cycle))
            cycles.append(cycle[start:] + cycle[:start])
        return sorted(cycles)

    def check_acyclic(self) -> None:
        """
        Raises:
            CycleReportedError: The graph contains at least one import cycle.
        """
        if not self.is_acyclic():
            raise CycleReportedError(self.detect_cycles())

    def transitive_imports(self, global_name: str) -> Set[str]:
        """
        Returns:
            Names of all source units imported (even indirectly) by the given unit.
        """
        return set(nx.descendants(self.__graph, global_name))
