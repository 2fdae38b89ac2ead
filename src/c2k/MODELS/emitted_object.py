"""
Objects produced by a conversion, ready for a serializer or an API client.
"""
from typing import Any, Dict, Tuple
from pydantic import BaseModel

API_VERSIONS: Dict[str, str] = {
    "Service": "v1",
    "Pod": "v1",
    "ReplicationController": "v1",
    "PersistentVolumeClaim": "v1",
    "ConfigMap": "v1",
    "Deployment": "apps/v1",
    "DaemonSet": "apps/v1",
    "DeploymentConfig": "apps.openshift.io/v1",
    "ImageStream": "image.openshift.io/v1",
}

WORKLOAD_KINDS = frozenset(
    ["Deployment", "DaemonSet", "ReplicationController", "Pod", "DeploymentConfig"]
)


class EmittedObject(BaseModel):
    """
    A single cluster object. ``manifest`` is the complete object body
    (apiVersion, kind, metadata, spec) in the cluster's JSON shape.
    """
    kind: str
    name: str
    namespace: str
    manifest: Dict[str, Any]

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.kind, self.namespace, self.name)

    @property
    def is_workload(self) -> bool:
        return self.kind in WORKLOAD_KINDS

    @property
    def spec(self) -> Dict[str, Any]:
        return self.manifest.get("spec", {})

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()["manifest"]
