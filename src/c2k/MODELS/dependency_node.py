"""
Nodes of the service reference graph.
"""
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable


@dataclass(frozen=True)
class DependencyNode:
    """
    A service and the names of the services it directly depends on.
    """

    name: str
    deps: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def of(cls, name: str, deps: Iterable[str] = ()) -> "DependencyNode":
        return cls(name=name, deps=frozenset(deps))
