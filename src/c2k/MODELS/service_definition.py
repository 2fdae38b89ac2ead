"""
Models for defining services, including restart policies, health checks, and mounts.
"""
from typing import List, Dict, Optional
from pydantic import BaseModel, Field
from enum import Enum

# Labels read as conversion directives rather than copied onto objects.
DIRECTIVE_PREFIX = "c2k."
CONTROLLER_LABEL = "c2k.controller.type"
SERVICE_TYPE_LABEL = "c2k.service.type"
VOLUME_SIZE_LABEL = "c2k.volume.size"
GROUP_LABEL = "c2k.service.group"


class RestartPolicyCondition(str, Enum):
    """
    Conditions under which a service should be restarted.
    """
    NO = "no"
    ALWAYS = "always"
    ON_FAILURE = "on-failure"
    UNLESS_STOPPED = "unless-stopped"


class DeployMode(str, Enum):
    """
    How many copies of a service run: a replica count, or one per node.
    """
    REPLICATED = "replicated"
    GLOBAL = "global"


class Port(BaseModel):
    """
    A container port, optionally published on a different service port.
    """
    container_port: int
    host_port: int = 0
    protocol: str = "TCP"


class EnvVar(BaseModel):
    name: str
    value: str = ""


class EnvFile(BaseModel):
    """
    An env file as declared by the service, with its parsed contents.
    """
    path: str
    data: Dict[str, str] = {}


class HealthCheck(BaseModel):
    """
    Defines how to probe a service: a command, an HTTP GET, or a TCP connect.
    Timing fields are in seconds; zero leaves the cluster default.
    """
    test: List[str] = []
    http_path: Optional[str] = None
    http_port: int = 0
    tcp_port: int = 0
    interval: int = 0
    timeout: int = 0
    retries: int = 0
    start_period: int = 0
    disable: bool = False


class HealthChecks(BaseModel):
    liveness: Optional[HealthCheck] = None
    readiness: Optional[HealthCheck] = None


class Resources(BaseModel):
    """
    Resource limits and reservations. Memory is in bytes, CPU in millicores.
    Zero means unset.
    """
    mem_limit: int = 0
    cpu_limit: int = 0
    mem_reservation: int = 0
    cpu_reservation: int = 0


class ConfigReference(BaseModel):
    """
    A service's use of a top-level config or secret.
    """
    source: str
    target: Optional[str] = None


class ServiceDescriptor(BaseModel):
    """
    One declared application component of a compose model.
    """
    name: str
    image: str = ""
    container_name: Optional[str] = None

    # Execution
    entrypoint: List[str] = []
    command: List[str] = []
    working_dir: Optional[str] = None
    stdin_open: bool = False
    tty: bool = False

    # Environment
    environment: List[EnvVar] = []
    env_files: List[EnvFile] = []

    # Networking
    ports: List[Port] = []
    hostname: Optional[str] = None
    domain_name: Optional[str] = None

    # Storage
    volumes: List[str] = []
    volumes_from: List[str] = []
    tmpfs: List[str] = []
    configs: List[ConfigReference] = []
    secrets: List[ConfigReference] = []

    # Lifecycle
    restart: RestartPolicyCondition = RestartPolicyCondition.ALWAYS
    health_checks: HealthChecks = Field(default_factory=HealthChecks)
    depends_on: List[str] = []
    deploy_mode: DeployMode = DeployMode.REPLICATED
    replicas: Optional[int] = None
    stop_grace_period: Optional[int] = None
    image_pull_policy: Optional[str] = None

    # Resources
    resources: Resources = Field(default_factory=Resources)

    # Security
    privileged: bool = False
    user: Optional[str] = None
    group_add: List[int] = []
    cap_add: List[str] = []
    cap_drop: List[str] = []

    # Metadata
    labels: Dict[str, str] = {}
    annotations: Dict[str, str] = {}

    @property
    def is_pod_only(self) -> bool:
        """Services that must not be restarted forever can only run as bare pods."""
        return self.restart in (RestartPolicyCondition.NO, RestartPolicyCondition.ON_FAILURE)

    @property
    def object_labels(self) -> Dict[str, str]:
        """Labels that are copied onto emitted objects."""
        return {k: v for k, v in self.labels.items() if not k.startswith(DIRECTIVE_PREFIX)}
