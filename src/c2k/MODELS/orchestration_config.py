"""
Models for the normalized compose model handed to the converter.
"""
from typing import Dict, Optional
from pydantic import BaseModel
from .service_definition import ServiceDescriptor


class ConfigMetadata(BaseModel):
    """
    A top-level config or secret. External ones already exist in the cluster.
    """
    name: str
    file: Optional[str] = None
    content: Optional[str] = None
    external: bool = False


class NormalizedModel(BaseModel):
    """
    Complete configuration for a multi-service stack.
    Equivalent to a parsed docker-compose.yml file.
    """
    services: Dict[str, ServiceDescriptor]
    configs: Dict[str, ConfigMetadata] = {}
    secrets: Dict[str, ConfigMetadata] = {}
