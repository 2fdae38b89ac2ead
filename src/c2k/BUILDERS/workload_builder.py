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
Builders turning a workload plan into cluster objects.

Each target platform has its own WorkloadBuilder. They share the module-level
helpers below for pod templates, volumes, Services and ConfigMaps.
"""
import posixpath
from typing import Any, Dict, List, Optional, Protocol, Set, Tuple

from ..MODELS.convert_options import ControllerKind, Platform, VolumeMode
from ..MODELS.emitted_object import EmittedObject
from ..MODELS.mount_descriptor import MountDescriptor
from ..MODELS.service_definition import (
    SERVICE_TYPE_LABEL,
    VOLUME_SIZE_LABEL,
    RestartPolicyCondition,
    ServiceDescriptor,
)
from ..MODELS.workload_plan import WorkloadPlan
from ..errors import DuplicateContainerNameError, UnresolvedConfigReferenceError
from ..UTILS.diagnostics import WarningLog
from ..UTILS.naming import format_file_name, image_tag
from . import objects
from . import pod_spec as steps

SERVICE_TYPES = {
    "clusterip": "ClusterIP",
    "nodeport": "NodePort",
    "loadbalancer": "LoadBalancer",
    "headless": "Headless",
}

Volumes = Dict[str, Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]]


class WorkloadBuilder(Protocol):
    """
    Builds the objects for one workload plan.
    """

    def build(self, plan: WorkloadPlan) -> List[EmittedObject]:
        ...


def mount_volumes(plan: WorkloadPlan, warnings: WarningLog) -> Tuple[Volumes, List[EmittedObject]]:
    """
    Turns the resolved mounts of every member into pod volumes and mounts.

    Under the claim volume mode one PersistentVolumeClaim is created per claim
    identity by the service that declared it, so its access mode follows the
    declaring mount. Services inheriting the mount only reference the claim.

    :return: (volumes and mounts per member name, claims to emit)
    """
    mode = plan.options.volume_mode
    per_service: Volumes = {}
    claims: List[EmittedObject] = []
    seen_claims: Set[str] = set()

    for svc in plan.services:
        volumes: List[Dict[str, Any]] = []
        mounts: List[Dict[str, Any]] = []
        for mount in plan.mounts.get(svc.name, []):
            volumes.append(_mount_volume(plan, mount, warnings))
            entry: Dict[str, Any] = {"name": mount.volume_id, "mountPath": mount.container_path}
            if mount.read_only:
                entry["readOnly"] = True
            mounts.append(entry)

            if mode != VolumeMode.PERSISTENT_VOLUME_CLAIM or mount.inherited:
                continue
            if mount.claim_name not in seen_claims:
                seen_claims.add(mount.claim_name)
                claims.append(objects.init_pvc(
                    mount.claim_name,
                    plan.options.namespace,
                    _claim_size(plan, mount),
                    read_only=mount.read_only,
                    labels={"c2k.service": mount.origin},
                ))

        for index, path in enumerate(svc.tmpfs):
            name = f"{svc.name}-tmpfs{index}"
            volumes.append({"name": name, "emptyDir": {"medium": "Memory"}})
            mounts.append({"name": name, "mountPath": path.split(":", 1)[0]})

        per_service[svc.name] = (volumes, mounts)
    return per_service, claims


def _mount_volume(plan: WorkloadPlan, mount: MountDescriptor, warnings: WarningLog) -> Dict[str, Any]:
    mode = plan.options.volume_mode
    if mount.host_path and mode != VolumeMode.HOST_PATH:
        warnings.warn(
            f"host:{mount.service}:{mount.host_path}",
            f"[{mount.service}] Volume mount on the host \"{mount.host_path}\" isn't "
            f"supported - ignoring path on the host",
        )

    if mode == VolumeMode.PERSISTENT_VOLUME_CLAIM:
        # read-only lives on each container mount, not on the shared volume
        return {"name": mount.volume_id, "persistentVolumeClaim": {"claimName": mount.claim_name}}
    if mode == VolumeMode.HOST_PATH and mount.host_path:
        return {"name": mount.volume_id, "hostPath": {"path": mount.host_path}}
    return {"name": mount.volume_id, "emptyDir": {}}


def _claim_size(plan: WorkloadPlan, mount: MountDescriptor) -> str:
    origin = plan.model.services.get(mount.origin)
    if origin is not None and VOLUME_SIZE_LABEL in origin.labels:
        return origin.labels[VOLUME_SIZE_LABEL]
    return plan.options.pvc_request_size


def config_volumes(plan: WorkloadPlan) -> Tuple[Volumes, List[EmittedObject]]:
    """
    Mounts the configs and secrets each member references.

    :return: (volumes and mounts per member name, ConfigMaps to emit)
    :raises UnresolvedConfigReferenceError: If a reference has no top-level entry.
    """
    namespace = plan.options.namespace
    per_service: Volumes = {}
    config_maps: List[EmittedObject] = []

    for svc in plan.services:
        volumes: List[Dict[str, Any]] = []
        mounts: List[Dict[str, Any]] = []

        for ref in svc.configs:
            meta = plan.model.configs.get(ref.source)
            if meta is None:
                raise UnresolvedConfigReferenceError(svc.name, ref.source, "config")
            name = format_file_name(ref.source)
            path = ref.target or f"/{ref.source}"
            key = posixpath.basename(path.rstrip("/")) or ref.source

            if meta.external:
                volumes.append({"name": name, "configMap": {"name": name}})
                mounts.append({"name": name, "mountPath": path})
                continue

            config_maps.append(objects.init_config_map(name, namespace, {key: meta.content or ""}))
            volumes.append({
                "name": name,
                "configMap": {"name": name, "items": [{"key": key, "path": key}]},
            })
            mounts.append({"name": name, "mountPath": path, "subPath": key})

        for ref in svc.secrets:
            if ref.source not in plan.model.secrets:
                raise UnresolvedConfigReferenceError(svc.name, ref.source, "secret")
            name = format_file_name(ref.source)
            target = ref.target or ref.source
            path = target if target.startswith("/") else f"/run/secrets/{target}"
            key = posixpath.basename(path)
            volumes.append({
                "name": name,
                "secret": {"secretName": name, "items": [{"key": ref.source, "path": key}]},
            })
            mounts.append({"name": name, "mountPath": path, "subPath": key, "readOnly": True})

        per_service[svc.name] = (volumes, mounts)
    return per_service, config_maps


def env_config_maps(plan: WorkloadPlan) -> List[EmittedObject]:
    """
    One ConfigMap per env file of the members. Two services sharing an env file
    produce the same object, which the post-processor keeps once.
    """
    return [
        objects.init_config_map(steps.env_config_map_name(env_file.path),
                                plan.options.namespace, env_file.data)
        for svc in plan.services
        for env_file in svc.env_files
    ]


def pod_restart_policy(plan: WorkloadPlan) -> str:
    if plan.controller != ControllerKind.POD:
        return "Always"
    if all(svc.restart == RestartPolicyCondition.NO for svc in plan.services):
        return "Never"
    return "OnFailure"


def check_container_names(plan: WorkloadPlan) -> None:
    """
    Ensures every member of the plan gets its own container in the pod.

    :raises DuplicateContainerNameError: If two members resolve to the same name.
    """
    owners: Dict[str, List[str]] = {}
    for svc in plan.services:
        owners.setdefault(steps.container_name(svc), []).append(svc.name)
    for name, services in owners.items():
        if len(services) > 1:
            raise DuplicateContainerNameError(name, services)


def _first(values) -> Optional[Any]:
    return next((v for v in values if v), None)


def build_pod_template(plan: WorkloadPlan, warnings: WarningLog) -> Tuple[Dict[str, Any], List[EmittedObject]]:
    """
    Builds the pod template shared by every member of the plan.

    :return: (pod template, claims and ConfigMaps the template depends on)
    :raises DuplicateContainerNameError: If two members share a container name.
    """
    check_container_names(plan)
    mounted, claims = mount_volumes(plan, warnings)
    configured, config_maps = config_volumes(plan)

    builder = steps.PodSpecBuilder()
    for svc in plan.services:
        name = steps.container_name(svc)
        volumes, mounts = mounted[svc.name]
        config_vols, config_mounts = configured[svc.name]
        builder.apply(
            steps.add_container(svc),
            steps.set_environment(svc),
            steps.set_ports(svc),
            steps.set_probes(svc),
            steps.resources_limits(svc),
            steps.resources_requests(svc),
            steps.set_capabilities(svc),
            steps.security_context(svc, warnings),
            steps.image_pull_policy(svc, warnings),
            steps.set_volumes(volumes + config_vols),
            steps.set_volume_mounts(name, mounts + config_mounts),
        )

    grace = [svc.stop_grace_period for svc in plan.services if svc.stop_grace_period is not None]
    builder.apply(
        steps.restart_policy(pod_restart_policy(plan)),
        steps.host_name(_first(svc.hostname for svc in plan.services)),
        steps.domain_name(_first(svc.domain_name for svc in plan.services)),
        steps.termination_grace_period(max(grace) if grace else None),
    )

    template = {"metadata": {"labels": plan.labels}, "spec": builder.build()}
    if plan.annotations:
        template["metadata"]["annotations"] = plan.annotations
    return template, claims + config_maps + env_config_maps(plan)


def service_ports(svc: ServiceDescriptor) -> List[Dict[str, Any]]:
    """
    Service ports of a member: published port in front of the container port.
    """
    ports = []
    seen = set()
    for port in svc.ports:
        published = port.host_port or port.container_port
        protocol = port.protocol.upper()
        if (published, protocol) in seen:
            continue
        seen.add((published, protocol))
        ports.append({
            "name": str(published) if protocol == "TCP" else f"{published}-{protocol.lower()}",
            "port": published,
            "targetPort": port.container_port,
            "protocol": protocol,
        })
    return ports


def build_services(plan: WorkloadPlan, warnings: WarningLog) -> List[EmittedObject]:
    """
    One Service per member that declares ports or is tagged headless.
    """
    services = []
    for svc in plan.services:
        label = svc.labels.get(SERVICE_TYPE_LABEL, "clusterip")
        service_type = SERVICE_TYPES.get(label.lower())
        if service_type is None:
            warnings.warn(
                f"service-type:{svc.name}",
                f"[{svc.name}] Unsupported service type \"{label}\" - using ClusterIP",
            )
            service_type = "ClusterIP"
        headless = service_type == "Headless"

        ports = service_ports(svc)
        if not ports and not headless:
            warnings.warn(
                f"no-ports:{svc.name}",
                f"[{svc.name}] Service cannot be created because of missing port.",
            )
            continue

        labels = dict(svc.object_labels)
        labels["c2k.service"] = svc.name
        services.append(objects.init_service(
            svc.name,
            plan.options.namespace,
            plan.selector,
            ports,
            service_type="ClusterIP" if headless else service_type,
            headless=headless,
            labels=labels,
            annotations=svc.annotations,
        ))
    return services


class KubernetesBuilder:
    """
    Builds Deployments, DaemonSets, ReplicationControllers and bare Pods.
    """

    INITIALISERS = {
        ControllerKind.DEPLOYMENT: objects.init_deployment,
        ControllerKind.DAEMON_SET: objects.init_daemon_set,
        ControllerKind.REPLICATION_CONTROLLER: objects.init_replication_controller,
        ControllerKind.POD: objects.init_pod,
    }

    def __init__(self, warnings: WarningLog):
        self.warnings = warnings

    def build(self, plan: WorkloadPlan) -> List[EmittedObject]:
        """
        :return: Services, the workload, then its claims and ConfigMaps.
        :raises ValueError: If the plan asks for a kind this platform lacks.
        """
        init = self.INITIALISERS.get(plan.controller)
        if init is None:
            raise ValueError(f"{plan.controller.value} is not a Kubernetes workload kind")

        template, ancillary = build_pod_template(plan, self.warnings)
        return build_services(plan, self.warnings) + [init(plan, template)] + ancillary


class OpenShiftBuilder:
    """
    Builds DeploymentConfigs with their ImageStreams, and the Kubernetes kinds
    OpenShift also runs.
    """

    INITIALISERS = {
        ControllerKind.DEPLOYMENT: objects.init_deployment,
        ControllerKind.DAEMON_SET: objects.init_daemon_set,
        ControllerKind.REPLICATION_CONTROLLER: objects.init_replication_controller,
        ControllerKind.POD: objects.init_pod,
    }

    def __init__(self, warnings: WarningLog):
        self.warnings = warnings

    def build(self, plan: WorkloadPlan) -> List[EmittedObject]:
        template, ancillary = build_pod_template(plan, self.warnings)
        services = build_services(plan, self.warnings)

        if plan.controller != ControllerKind.DEPLOYMENT_CONFIG:
            return services + [self.INITIALISERS[plan.controller](plan, template)] + ancillary

        triggers = []
        streams = []
        for svc in plan.services:
            if not svc.image:
                continue
            name = steps.container_name(svc)
            tag = image_tag(svc.image)
            triggers.append({"container": name, "stream": name, "tag": tag})
            streams.append(objects.init_image_stream(
                name, plan.options.namespace, svc.image, tag, labels={"c2k.service": plan.name},
            ))

        workload = objects.init_deployment_config(plan, template, triggers)
        # Streams follow the DeploymentConfig: creating them triggers the first rollout
        return services + [workload] + streams + ancillary


def builder_for(platform: Platform, warnings: WarningLog) -> WorkloadBuilder:
    """
    Returns the builder for a target platform.
    """
    if platform == Platform.OPENSHIFT:
        return OpenShiftBuilder(warnings)
    return KubernetesBuilder(warnings)
