# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Converter from a normalized compose model to Kubernetes or OpenShift objects.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from ..BUILDERS.workload_builder import builder_for
from ..MODELS.convert_options import ColocationMode, ConvertOptions
from ..MODELS.dependency_node import DependencyNode
from ..MODELS.emitted_object import EmittedObject
from ..MODELS.orchestration_config import NormalizedModel
from ..MODELS.workload_plan import WorkloadPlan
from ..POLICIES.controller_policy import ControllerPolicy
from ..RESOLVERS.dependency_resolver import DependencyResolver
from ..RESOLVERS.volume_resolver import VolumeResolver, split_reference, volumes_from_graph
from ..errors import DuplicateServiceNameError, DuplicateWorkloadNameError
from ..UTILS.diagnostics import WarningLog
from ..UTILS.logging import get_logger
from ..UTILS.naming import normalize_name
from .post_processor import finalize

_log = get_logger("converters.kubernetes")


@dataclass
class ConversionResult:
    """
    Objects of a successful pass, with the warnings raised along the way.
    """
    objects: List[EmittedObject]
    warnings: List[str] = field(default_factory=list)

    def to_dicts(self) -> List[Dict]:
        return [obj.to_dict() for obj in self.objects]


class KubernetesConverter:
    """
    Converts a normalized compose model into cluster objects.

    A converter holds no state between passes other than the warning
    accumulator it was given; calling ``convert`` twice gives the same objects.
    """

    def __init__(self, model: NormalizedModel, options: Optional[ConvertOptions] = None,
                 warnings: Optional[WarningLog] = None):
        """
        Initializes the converter.

        :param model: Services keyed by name, with top-level configs and secrets.
        :param options: Conversion options; defaults are used when omitted.
        :param warnings: Accumulator shared with the caller, if any.
        """
        self.model = model
        self.options = options or ConvertOptions()
        self.warnings = warnings if warnings is not None else WarningLog()
        self.resolver = DependencyResolver()

    def convert(self) -> ConversionResult:
        """
        Runs the pass: names, reference order, mounts, colocation, controller
        selection and building, then the final ordering.

        :return: The objects and warnings.
        :raises ConversionError: On the first structural error; no partial output.
        """
        model = self.normalize(self.model)

        order = [node.name for node in self.resolver.resolve_order(self.reference_graph(model))]
        mounts = VolumeResolver(model, self.warnings).resolve_all(order)

        policy = ControllerPolicy(self.options, self.warnings)
        builder = builder_for(self.options.platform, self.warnings)

        objects: List[EmittedObject] = []
        for name, members in self.workload_groups(model):
            services = [model.services[m] for m in members]
            plan = WorkloadPlan(
                name=name,
                services=services,
                controller=policy.select(services),
                options=self.options,
                model=model,
                mounts={m: mounts[m] for m in members},
            )
            objects.extend(builder.build(plan))

        final = finalize(objects)
        _log.debug("conversion finished", objects=len(final), warnings=len(self.warnings))
        return ConversionResult(objects=final, warnings=self.warnings.messages)

    def normalize(self, model: NormalizedModel) -> NormalizedModel:
        """
        Returns a copy of the model with service names, and references to
        them, made acceptable as object names.

        :raises DuplicateServiceNameError: If two names normalize alike.
        """
        renamed: Dict[str, str] = {}
        owners: Dict[str, List[str]] = {}
        for name in sorted(model.services):
            new = normalize_name(name)
            renamed[name] = new
            owners.setdefault(new, []).append(name)
            if new != name:
                self.warnings.warn(
                    f"rename:{name}",
                    f"Service name \"{name}\" normalized to \"{new}\"",
                )
        for new, originals in owners.items():
            if len(originals) > 1:
                raise DuplicateServiceNameError(new, originals)

        def rename(reference: str) -> str:
            ref, sep, mode = reference.partition(":")
            return renamed.get(ref, normalize_name(ref)) + sep + mode

        services = {}
        for name, svc in model.services.items():
            services[renamed[name]] = svc.model_copy(update={
                "name": renamed[name],
                "volumes_from": [rename(r) for r in svc.volumes_from],
                "depends_on": [renamed.get(d, normalize_name(d)) for d in svc.depends_on],
            })
        return model.model_copy(update={"services": services})

    def reference_graph(self, model: NormalizedModel) -> List[DependencyNode]:
        """
        Graph of volumes_from and depends_on references, used for the order
        in which mounts are resolved and to reject cycles.
        """
        return self.resolver.build_nodes({
            name: [split_reference(r)[0] for r in svc.volumes_from] + list(svc.depends_on)
            for name, svc in model.services.items()
        })

    def colocation_graph(self, model: NormalizedModel) -> List[DependencyNode]:
        """
        Graph whose colocation sets become workloads, for the configured mode.
        """
        mode = self.options.colocation
        if mode == ColocationMode.BY_SHARED_VOLUME:
            return volumes_from_graph(model)
        if mode == ColocationMode.BY_LABEL:
            groups: Dict[str, List[str]] = {}
            for name in sorted(model.services):
                group = model.services[name].labels.get(self.options.group_label)
                if group:
                    groups.setdefault(group, []).append(name)
            anchors = {name: members[0] for members in groups.values() for name in members}
            return [
                DependencyNode.of(name, [anchors[name]] if anchors.get(name, name) != name else [])
                for name in sorted(model.services)
            ]
        return [DependencyNode.of(name) for name in sorted(model.services)]

    def workload_groups(self, model: NormalizedModel) -> List[tuple]:
        """
        Colocation sets of the model with the workload name for each.

        :return: (workload name, member names sorted) pairs, ordered by workload name.
        :raises DuplicateWorkloadNameError: If two sets get the same workload name,
            e.g. a group label value that is also the name of another service.
        """
        _, sets = self.resolver.resolve(self.colocation_graph(model))
        _log.debug("colocation sets", sets=[sorted(s) for s in sets])

        by_name: Dict[str, List[List[str]]] = {}
        for members in sets:
            by_name.setdefault(self._workload_name(model, members), []).append(sorted(members))
        for name, claimants in by_name.items():
            if len(claimants) > 1:
                raise DuplicateWorkloadNameError(name, claimants)
        return sorted((name, claimants[0]) for name, claimants in by_name.items())

    def _workload_name(self, model: NormalizedModel, members: Set[str]) -> str:
        if self.options.colocation == ColocationMode.BY_LABEL and len(members) > 1:
            labels = {model.services[m].labels.get(self.options.group_label) for m in members}
            labels.discard(None)
            if len(labels) == 1:
                return normalize_name(labels.pop())
        return min(members)


def convert(model: NormalizedModel, options: Optional[ConvertOptions] = None,
            warnings: Optional[WarningLog] = None) -> ConversionResult:
    """
    Converts a model in one call. See ``KubernetesConverter.convert``.
    """
    return KubernetesConverter(model, options, warnings).convert()
