"""
Initialisers for the cluster objects a conversion can emit.

Each function returns an EmittedObject whose manifest is in the cluster's
JSON shape, with apiVersion, kind and metadata filled in.
"""
from typing import Any, Dict, List, Optional

from ..MODELS.emitted_object import API_VERSIONS, EmittedObject
from ..MODELS.workload_plan import WorkloadPlan

HEADLESS_PORT = 55555


def object_meta(name: str, namespace: str, labels: Optional[Dict[str, str]] = None,
                annotations: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    meta: Dict[str, Any] = {"name": name, "namespace": namespace}
    if labels:
        meta["labels"] = dict(labels)
    if annotations:
        meta["annotations"] = dict(annotations)
    return meta


def new_object(kind: str, name: str, namespace: str, body: Dict[str, Any],
               labels: Optional[Dict[str, str]] = None,
               annotations: Optional[Dict[str, str]] = None) -> EmittedObject:
    """
    Wraps an object body (spec, data, ...) with its type and object metadata.
    """
    manifest: Dict[str, Any] = {
        "apiVersion": API_VERSIONS[kind],
        "kind": kind,
        "metadata": object_meta(name, namespace, labels, annotations),
    }
    manifest.update(body)
    return EmittedObject(kind=kind, name=name, namespace=namespace, manifest=manifest)


def _workload(kind: str, plan: WorkloadPlan, spec: Dict[str, Any]) -> EmittedObject:
    return new_object(kind, plan.name, plan.options.namespace, {"spec": spec},
                      labels=plan.labels, annotations=plan.annotations)


def init_deployment(plan: WorkloadPlan, template: Dict[str, Any]) -> EmittedObject:
    spec: Dict[str, Any] = {
        "replicas": plan.replicas,
        "selector": {"matchLabels": plan.selector},
        "template": template,
    }
    if plan.has_mounts:
        spec["strategy"] = {"type": "Recreate"}
    return _workload("Deployment", plan, spec)


def init_daemon_set(plan: WorkloadPlan, template: Dict[str, Any]) -> EmittedObject:
    spec = {
        "selector": {"matchLabels": plan.selector},
        "template": template,
    }
    return _workload("DaemonSet", plan, spec)


def init_replication_controller(plan: WorkloadPlan, template: Dict[str, Any]) -> EmittedObject:
    spec = {
        "replicas": plan.replicas,
        "selector": plan.selector,
        "template": template,
    }
    return _workload("ReplicationController", plan, spec)


def init_pod(plan: WorkloadPlan, template: Dict[str, Any]) -> EmittedObject:
    # A bare pod carries the template's labels so Services still select it
    return _workload("Pod", plan, template["spec"])


def init_deployment_config(plan: WorkloadPlan, template: Dict[str, Any],
                           image_triggers: List[Dict[str, str]]) -> EmittedObject:
    """
    OpenShift DeploymentConfig, redeployed on config change and on new images.

    :param image_triggers: One entry per container with 'container', 'stream' and 'tag'.
    """
    triggers: List[Dict[str, Any]] = [{"type": "ConfigChange"}]
    for trigger in image_triggers:
        triggers.append({
            "type": "ImageChange",
            "imageChangeParams": {
                "automatic": True,
                "containerNames": [trigger["container"]],
                "from": {"kind": "ImageStreamTag", "name": f"{trigger['stream']}:{trigger['tag']}"},
            },
        })

    spec: Dict[str, Any] = {
        "replicas": plan.replicas,
        "selector": plan.selector,
        "template": template,
        "triggers": triggers,
    }
    if plan.has_mounts:
        spec["strategy"] = {"type": "Recreate"}
    return _workload("DeploymentConfig", plan, spec)


def init_image_stream(name: str, namespace: str, image: str, tag: str,
                      labels: Optional[Dict[str, str]] = None) -> EmittedObject:
    spec = {"tags": [{"name": tag, "from": {"kind": "DockerImage", "name": image}}]}
    return new_object("ImageStream", name, namespace, {"spec": spec}, labels=labels)


def init_service(name: str, namespace: str, selector: Dict[str, str],
                 ports: List[Dict[str, Any]], service_type: str = "ClusterIP",
                 headless: bool = False, labels: Optional[Dict[str, str]] = None,
                 annotations: Optional[Dict[str, str]] = None) -> EmittedObject:
    """
    A Service in front of a workload. Headless Services get ``clusterIP: None``
    and, when the service declares no ports, a single placeholder port.
    """
    spec: Dict[str, Any] = {"selector": dict(selector)}
    if headless:
        spec["clusterIP"] = "None"
        if not ports:
            ports = [{"name": "headless", "port": HEADLESS_PORT}]
    elif service_type != "ClusterIP":
        spec["type"] = service_type
    spec["ports"] = ports
    return new_object("Service", name, namespace, {"spec": spec},
                      labels=labels, annotations=annotations)


def init_pvc(claim_name: str, namespace: str, size: str, read_only: bool = False,
             labels: Optional[Dict[str, str]] = None) -> EmittedObject:
    spec = {
        "accessModes": ["ReadOnlyMany" if read_only else "ReadWriteOnce"],
        "resources": {"requests": {"storage": size}},
    }
    return new_object("PersistentVolumeClaim", claim_name, namespace, {"spec": spec}, labels=labels)


def init_config_map(name: str, namespace: str, data: Dict[str, str],
                    labels: Optional[Dict[str, str]] = None) -> EmittedObject:
    return new_object("ConfigMap", name, namespace, {"data": dict(sorted(data.items()))}, labels=labels)
