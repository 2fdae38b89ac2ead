"""
Resolved volume mounts with stable generated identities.
"""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class MountDescriptor:
    """
    One mount of a service after volumes_from inheritance is flattened.

    ``volume_id`` names the pod volume and ``claim_name`` the claim backing it;
    ``origin`` is the service that first declared the mount. Mounts reached
    through inheritance keep the identity minted by their origin.
    """

    service: str
    container_path: str
    volume_id: str
    claim_name: str
    origin: str
    host_path: Optional[str] = None
    volume_name: Optional[str] = None
    mode: Optional[str] = None

    @property
    def read_only(self) -> bool:
        return self.mode == "ro"

    @property
    def inherited(self) -> bool:
        return self.origin != self.service
