"""
Plans for a single workload: which services it runs and as what kind.
"""
from dataclasses import dataclass, field
from typing import Dict, List

from .convert_options import ControllerKind, ConvertOptions
from .mount_descriptor import MountDescriptor
from .orchestration_config import NormalizedModel
from .service_definition import ServiceDescriptor


@dataclass
class WorkloadPlan:
    """
    Everything the workload builder needs to emit the objects of one colocation set.

    :param name: Name of the workload and of its pod template label.
    :param services: Members of the set, ordered by name.
    :param controller: Selected workload kind.
    :param mounts: Resolved mounts per member service name.
    """

    name: str
    services: List[ServiceDescriptor]
    controller: ControllerKind
    options: ConvertOptions
    model: NormalizedModel
    mounts: Dict[str, List[MountDescriptor]] = field(default_factory=dict)

    @property
    def member_names(self) -> List[str]:
        return [svc.name for svc in self.services]

    @property
    def has_mounts(self) -> bool:
        return any(self.mounts.get(name) for name in self.member_names)

    @property
    def labels(self) -> Dict[str, str]:
        """Selector labels merged with the members' own labels."""
        merged: Dict[str, str] = {}
        for svc in self.services:
            merged.update(svc.object_labels)
        merged["c2k.service"] = self.name
        return merged

    @property
    def selector(self) -> Dict[str, str]:
        return {"c2k.service": self.name}

    @property
    def annotations(self) -> Dict[str, str]:
        merged: Dict[str, str] = {}
        for svc in self.services:
            merged.update(svc.annotations)
        return dict(sorted(merged.items()))

    @property
    def replicas(self) -> int:
        declared = [svc.replicas for svc in self.services if svc.replicas is not None]
        return max(declared) if declared else self.options.replicas
