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
Errors raised while converting a compose model into cluster objects.

Every error is fatal to the pass that raised it; nothing in the conversion
retries or partially recovers.
"""
from typing import List, Optional, Sequence


class ConversionError(Exception):
    """Base class for all conversion failures."""


class ComposeLoadError(ConversionError):
    """The compose file could not be read or decoded."""


class DuplicateServiceNameError(ConversionError):
    """Two services normalize to the same object name."""

    def __init__(self, name: str, originals: Sequence[str]):
        self.name = name
        self.originals = sorted(originals)
        super().__init__(
            f"services {', '.join(self.originals)} all normalize to the name '{name}'"
        )


class CyclicDependencyError(ConversionError):
    """
    The service reference graph has no topological order.

    :param residual: The dependency nodes that take part in a cycle.
    """

    def __init__(self, residual: List):
        self.residual = residual
        names = ", ".join(node.name for node in residual)
        super().__init__(f"circular dependency found between services: {names}")

    @property
    def names(self) -> List[str]:
        return [node.name for node in self.residual]


class InvalidMountFormatError(ConversionError):
    """A mount string is not of the form [name:][host:]container[:mode]."""

    def __init__(self, volume: str, service: Optional[str] = None):
        self.volume = volume
        self.service = service
        where = f" in service '{service}'" if service else ""
        super().__init__(f"invalid volume format{where}: {volume}")


class UnknownServiceReferenceError(ConversionError):
    """A service inherits volumes from a service that does not exist."""

    def __init__(self, service: str, reference: str):
        self.service = service
        self.reference = reference
        super().__init__(
            f"service '{service}' takes volumes from unknown service '{reference}'"
        )


class ConflictingControllerError(ConversionError):
    """Controller directives for a service or group cannot be satisfied together."""

    def __init__(self, services: Sequence[str], reason: str):
        self.services = list(services)
        self.reason = reason
        super().__init__(f"[{', '.join(self.services)}] {reason}")


class MissingProbeSourceError(ConversionError):
    """A health check declares neither a command nor an HTTP or TCP target."""

    def __init__(self, service: str, probe: str):
        self.service = service
        self.probe = probe
        super().__init__(
            f"{probe} health check of service '{service}' must contain a command, "
            f"an HTTP path and port, or a TCP port"
        )


class UnresolvedConfigReferenceError(ConversionError):
    """A service references a config or secret missing from the model."""

    def __init__(self, service: str, reference: str, kind: str = "config"):
        self.service = service
        self.reference = reference
        self.kind = kind
        super().__init__(
            f"service '{service}' references undeclared {kind} '{reference}'"
        )


class DuplicateWorkloadNameError(ConversionError):
    """Two colocation sets would be emitted as workloads of the same name."""

    def __init__(self, name: str, groups: Sequence[Sequence[str]]):
        self.name = name
        self.groups = sorted(sorted(group) for group in groups)
        members = "; ".join(", ".join(group) for group in self.groups)
        super().__init__(f"workload name '{name}' is claimed by several service sets: {members}")


class DuplicateContainerNameError(ConversionError):
    """Members of one pod resolve to the same container name."""

    def __init__(self, name: str, services: Sequence[str]):
        self.name = name
        self.services = sorted(services)
        super().__init__(
            f"services {', '.join(self.services)} share the container name '{name}' in one pod"
        )
