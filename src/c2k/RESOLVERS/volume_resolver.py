"""
Resolution of service mounts, including volumes inherited through volumes_from.
"""
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..MODELS.dependency_node import DependencyNode
from ..MODELS.mount_descriptor import MountDescriptor
from ..MODELS.orchestration_config import NormalizedModel
from ..errors import CyclicDependencyError, InvalidMountFormatError, UnknownServiceReferenceError
from ..UTILS.diagnostics import WarningLog
from ..UTILS.naming import normalize_name


def _is_path(segment: str) -> bool:
    return "/" in segment


def parse_volume(volume: str, warnings: Optional[WarningLog] = None,
                 service: Optional[str] = None) -> Tuple[str, str, str, str]:
    """
    Splits a mount string of the form [name:][host:]container[:mode].

    :param volume: The mount string, e.g. 'data:/var/lib/mysql:ro'.
    :param warnings: Receives a warning when an SELinux relabel suffix is dropped.
    :param service: Owning service, for error messages.
    :return: (name, host, container, mode); absent parts are empty strings.
    :raises InvalidMountFormatError: If the string does not fit the grammar.
    """
    segments = volume.split(":")
    name = host = mode = ""

    if not _is_path(segments[0]):
        name = segments.pop(0)
    if not segments:
        raise InvalidMountFormatError(volume, service)

    # :z and :Z ask for SELinux relabeling, which has no counterpart here
    if segments[-1] in ("z", "Z"):
        if warnings is not None:
            warnings.warn(
                f"relabel:{volume}",
                f"Volume mount \"{volume}\" will be mounted without labeling support. "
                f":z or :Z not supported",
                service=service,
            )
        segments.pop()
    elif segments[-1] in ("rw", "ro"):
        mode = segments.pop()
    if not segments:
        raise InvalidMountFormatError(volume, service)

    container = segments.pop()
    if len(segments) == 1:
        host = segments[0]
    if not _is_path(container) or (host and not _is_path(host)) or len(segments) > 1:
        raise InvalidMountFormatError(volume, service)
    return name, host, container, mode


def volumes_from_graph(model: NormalizedModel) -> List[DependencyNode]:
    """
    Builds the graph of volumes_from references, one node per service.
    """
    return [
        DependencyNode.of(name, (split_reference(ref)[0] for ref in svc.volumes_from))
        for name, svc in sorted(model.services.items())
    ]


def split_reference(reference: str) -> Tuple[str, str]:
    """
    Splits a volumes_from entry such as 'db:ro' into the service and the mode.
    """
    ref, _, mode = reference.partition(":")
    return ref, mode


class VolumeResolver:
    """
    Resolves the mounts of services into MountDescriptors.

    Results are memoized per resolver, so a resolver shared across a pass
    resolves each service once even when inheritance is diamond shaped.
    """

    def __init__(self, model: NormalizedModel, warnings: Optional[WarningLog] = None):
        """
        :param model: Normalized model holding every service by name.
        :param warnings: Accumulator for non-fatal warnings of the pass.
        """
        self.model = model
        self.warnings = warnings if warnings is not None else WarningLog()
        self._cache: Dict[str, List[MountDescriptor]] = {}
        self._resolving: Set[str] = set()

    def resolve_all(self, order: Iterable[str]) -> Dict[str, List[MountDescriptor]]:
        """
        Resolves several services, returning their mounts by service name.
        """
        return {name: self.resolve(name) for name in order}

    def resolve(self, service_name: str) -> List[MountDescriptor]:
        """
        Resolves the mounts of one service.

        Mounts of the services named in volumes_from are resolved first. A
        declared mount whose container path matches an inherited one takes the
        inherited identity; the other declared mounts get new identities, and
        inherited mounts with no declared counterpart are carried forward.

        :param service_name: Name of a service of the model.
        :return: The flattened mounts, declared ones first.
        :raises InvalidMountFormatError: If a mount string does not parse.
        :raises UnknownServiceReferenceError: If volumes_from names no service.
        """
        if service_name in self._cache:
            return list(self._cache[service_name])
        if service_name in self._resolving:
            raise CyclicDependencyError([DependencyNode.of(name) for name in sorted(self._resolving)])

        self._resolving.add(service_name)
        try:
            mounts = self._resolve(service_name)
        finally:
            self._resolving.discard(service_name)

        self._cache[service_name] = mounts
        return list(mounts)

    def _resolve(self, service_name: str) -> List[MountDescriptor]:
        service = self.model.services[service_name]

        inherited: Dict[str, MountDescriptor] = {}
        for reference in service.volumes_from:
            ref, mode = split_reference(reference)
            if ref not in self.model.services:
                raise UnknownServiceReferenceError(service_name, ref)
            for mount in self.resolve(ref):
                if mount.container_path in inherited:
                    continue
                inherited[mount.container_path] = replace(
                    mount, service=service_name, mode="ro" if mode == "ro" else mount.mode
                )

        mounts: List[MountDescriptor] = []
        declared: Set[str] = set()
        for index, volume in enumerate(service.volumes):
            name, host, container, mode = parse_volume(volume, self.warnings, service_name)
            if container in declared:
                continue
            declared.add(container)

            match = inherited.get(container)
            if match is not None:
                mounts.append(replace(match, mode=mode or match.mode))
                continue

            identity = normalize_name(name) if name else f"{service_name}-claim{index}"
            mounts.append(MountDescriptor(
                service=service_name,
                container_path=container,
                volume_id=identity,
                claim_name=identity,
                origin=service_name,
                host_path=host or None,
                volume_name=name or None,
                mode=mode or None,
            ))

        mounts.extend(m for path, m in inherited.items() if path not in declared)
        return mounts
