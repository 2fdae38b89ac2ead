"""
Dependency resolution for services: resolved order and colocation sets.
"""
from typing import Dict, Iterable, List, Set, Tuple

from ..MODELS.dependency_node import DependencyNode
from ..errors import CyclicDependencyError
from ..UTILS.logging import get_logger

_log = get_logger("resolvers.dependency")


class DependencyResolver:
    """
    Orders services so that every service comes after the services it depends on,
    and groups services that reference each other into colocation sets.
    """

    @staticmethod
    def build_nodes(dependencies: Dict[str, Iterable[str]]) -> List[DependencyNode]:
        """
        Builds graph nodes from a mapping of service name to dependency names.
        Dependencies on names that are not keys of the mapping are dropped.

        :param dependencies: e.g. {'web': ['db'], 'db': []}
        :return: One node per service, ordered by name.
        """
        return [
            DependencyNode.of(name, (d for d in deps if d in dependencies))
            for name, deps in sorted(dependencies.items())
        ]

    def resolve(self, nodes: Iterable[DependencyNode]) -> Tuple[List[DependencyNode], List[Set[str]]]:
        """
        Resolves the graph and derives the colocation sets.

        :param nodes: The unresolved graph.
        :return: Nodes in resolved order and the sets of services to colocate.
        :raises CyclicDependencyError: If no topological order exists.
        """
        resolved = self.resolve_order(nodes)
        return resolved, self.colocation_sets(resolved)

    def resolve_order(self, nodes: Iterable[DependencyNode]) -> List[DependencyNode]:
        """
        Layered topological sort. Each layer holds the nodes whose dependencies
        are all resolved, appended in name order.

        :raises CyclicDependencyError: With the nodes that lie on a cycle.
        """
        by_name = {node.name: node for node in nodes}
        remaining: Dict[str, Set[str]] = {
            name: {d for d in node.deps if d in by_name} for name, node in by_name.items()
        }

        resolved: List[DependencyNode] = []
        while remaining:
            ready = sorted(name for name, deps in remaining.items() if not deps)
            if not ready:
                cyclic = self._cycle_members(remaining)
                raise CyclicDependencyError([by_name[name] for name in cyclic])

            for name in ready:
                del remaining[name]
                resolved.append(by_name[name])
            for deps in remaining.values():
                deps.difference_update(ready)

        _log.debug("resolved dependency order", order=[node.name for node in resolved])
        return resolved

    def colocation_sets(self, resolved: Iterable[DependencyNode]) -> List[Set[str]]:
        """
        Groups each node with its direct dependencies. Sets that come to share
        a service are merged, so the result partitions the node names.

        :param resolved: Nodes in resolved order.
        :return: Disjoint sets, in order of first appearance.
        """
        colocation: List[Set[str]] = []
        for node in resolved:
            closure = set(node.deps) | {node.name}
            hits = [i for i, group in enumerate(colocation) if group & closure]
            if not hits:
                colocation.append(closure)
                continue

            first = hits[0]
            for i in hits[1:]:
                colocation[first] |= colocation[i]
            colocation[first] |= closure
            for i in reversed(hits[1:]):
                del colocation[i]
        return colocation

    def _cycle_members(self, remaining: Dict[str, Set[str]]) -> List[str]:
        """
        Picks the nodes of an unresolvable remainder that can reach themselves.
        Nodes that only depend on a cycle, or sit between cycles, are left out.
        """
        def reaches(start: str) -> bool:
            stack = list(remaining[start])
            seen: Set[str] = set()
            while stack:
                current = stack.pop()
                if current == start:
                    return True
                if current in seen:
                    continue
                seen.add(current)
                stack.extend(remaining.get(current, ()))
            return False

        return sorted(name for name in remaining if reaches(name))
