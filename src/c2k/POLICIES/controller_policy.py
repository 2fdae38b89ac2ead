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
Selection of the workload kind for a service or a colocated group of services.
"""
from typing import Optional, Sequence

from ..MODELS.convert_options import ControllerKind, ConvertOptions, Platform
from ..MODELS.service_definition import CONTROLLER_LABEL, DeployMode, ServiceDescriptor
from ..errors import ConflictingControllerError
from ..UTILS.diagnostics import WarningLog
from ..UTILS.logging import get_logger

_log = get_logger("policies.controller")

DEFAULT_CONTROLLERS = {
    Platform.KUBERNETES: ControllerKind.DEPLOYMENT,
    Platform.OPENSHIFT: ControllerKind.DEPLOYMENT_CONFIG,
}


class ControllerPolicy:
    """
    Decides which controller kind runs a service or a group of services.

    Rules, first match wins:

    1. A restart policy of "no" or "on-failure" allows only a bare Pod; any
       explicit kind from a flag or a label is a conflict.
    2. A ``c2k.controller.type`` label is honored, with a warning when it
       overrides a different flag.
    3. Global deploy mode selects a DaemonSet, with a warning when a different
       flag was given.
    4. The flag is honored.
    5. The platform default: Deployment, or DeploymentConfig on OpenShift.

    For a group, labels and deploy modes are taken over all members, and the
    members must agree on whether they can only run as a bare Pod.
    """

    def __init__(self, options: ConvertOptions, warnings: Optional[WarningLog] = None):
        """
        :param options: Conversion options carrying the platform and the flag.
        :param warnings: Accumulator for override warnings.
        """
        self.options = options
        self.warnings = warnings if warnings is not None else WarningLog()

    def select(self, services: Sequence[ServiceDescriptor],
               flag: Optional[ControllerKind] = None) -> ControllerKind:
        """
        Selects the controller kind for a service or group.

        :param services: The service, or all members of a colocation set.
        :param flag: Explicit kind from the command line; defaults to the options.
        :return: The selected kind.
        :raises ConflictingControllerError: If the directives cannot be combined.
        """
        names = [svc.name for svc in services]
        flag = flag if flag is not None else self.options.controller
        label = self._label_kind(services)

        pod_only = {svc.is_pod_only for svc in services}
        if len(pod_only) > 1:
            raise ConflictingControllerError(
                names, "members disagree on restart policy: some can only run as a bare Pod"
            )

        if pod_only == {True}:
            requested = label or flag
            if requested is not None and requested != ControllerKind.POD:
                raise ConflictingControllerError(
                    names,
                    f"restart policy {self._restart_of(services)} allows only a bare Pod, "
                    f"but {requested.value} was requested",
                )
            kind = ControllerKind.POD
        elif label is not None:
            if flag is not None and flag != label:
                self.warnings.warn(
                    f"controller-label:{','.join(names)}",
                    f"[{', '.join(names)}] label {CONTROLLER_LABEL}={label.value} "
                    f"overrides --controller {flag.value}",
                )
            kind = label
        elif any(svc.deploy_mode == DeployMode.GLOBAL for svc in services):
            if flag is not None and flag != ControllerKind.DAEMON_SET:
                self.warnings.warn(
                    f"controller-global:{','.join(names)}",
                    f"[{', '.join(names)}] global deploy mode overrides --controller "
                    f"{flag.value}; using DaemonSet",
                )
            kind = ControllerKind.DAEMON_SET
        elif flag is not None:
            kind = flag
        else:
            kind = DEFAULT_CONTROLLERS[self.options.platform]

        if kind == ControllerKind.POD and pod_only != {True}:
            raise ConflictingControllerError(
                names, "a bare Pod needs restart policy 'no' or 'on-failure'"
            )
        if kind == ControllerKind.DEPLOYMENT_CONFIG and self.options.platform != Platform.OPENSHIFT:
            raise ConflictingControllerError(
                names, "DeploymentConfig is only available on the OpenShift platform"
            )

        _log.debug("selected controller", services=names, kind=kind.value)
        return kind

    def _label_kind(self, services: Sequence[ServiceDescriptor]) -> Optional[ControllerKind]:
        """
        Reads the controller label across members; they must name the same kind.
        """
        kinds = set()
        for svc in services:
            value = svc.labels.get(CONTROLLER_LABEL)
            if value is None:
                continue
            try:
                kinds.add(ControllerKind.parse(value))
            except ValueError as e:
                raise ConflictingControllerError([svc.name], str(e)) from e

        if len(kinds) > 1:
            raise ConflictingControllerError(
                [svc.name for svc in services],
                f"members request different controllers: "
                f"{', '.join(sorted(k.value for k in kinds))}",
            )
        return kinds.pop() if kinds else None

    @staticmethod
    def _restart_of(services: Sequence[ServiceDescriptor]) -> str:
        return "/".join(sorted({svc.restart.value for svc in services}))


def select_controller(services: Sequence[ServiceDescriptor], options: ConvertOptions,
                      warnings: Optional[WarningLog] = None) -> ControllerKind:
    """
    Shortcut for ``ControllerPolicy(options, warnings).select(services)``.
    """
    return ControllerPolicy(options, warnings).select(services)
