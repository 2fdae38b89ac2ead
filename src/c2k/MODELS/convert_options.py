"""
Options that steer a conversion, owned by the CLI or the caller.
"""
from typing import Optional
from pydantic import BaseModel, Field
from enum import Enum

from .service_definition import GROUP_LABEL


class Platform(str, Enum):
    KUBERNETES = "kubernetes"
    OPENSHIFT = "openshift"


class ControllerKind(str, Enum):
    """
    Workload kinds a service or group can be materialized as.
    """
    DEPLOYMENT = "Deployment"
    DAEMON_SET = "DaemonSet"
    REPLICATION_CONTROLLER = "ReplicationController"
    POD = "Pod"
    DEPLOYMENT_CONFIG = "DeploymentConfig"

    @classmethod
    def parse(cls, value: str) -> "ControllerKind":
        """
        Parses a kind from a flag or label value, ignoring case.

        :param value: e.g. 'deployment', 'DaemonSet', 'replicationcontroller'.
        :raises ValueError: If the value names no known kind.
        """
        wanted = value.strip().lower()
        for kind in cls:
            if kind.value.lower() == wanted:
                return kind
        raise ValueError(f"unknown controller type '{value}'")


class VolumeMode(str, Enum):
    PERSISTENT_VOLUME_CLAIM = "persistentVolumeClaim"
    EMPTY_DIR = "emptyDir"
    HOST_PATH = "hostPath"


class ColocationMode(str, Enum):
    OFF = "off"
    BY_LABEL = "by-label"
    BY_SHARED_VOLUME = "by-shared-volume"


class ConvertOptions(BaseModel):
    """
    Configuration for a single conversion pass.
    """
    platform: Platform = Platform.KUBERNETES
    replicas: int = Field(default=1, ge=0)
    volume_mode: VolumeMode = VolumeMode.PERSISTENT_VOLUME_CLAIM
    controller: Optional[ControllerKind] = None
    colocation: ColocationMode = ColocationMode.OFF
    namespace: str = "default"
    pvc_request_size: str = "100Mi"
    group_label: str = GROUP_LABEL
