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
Unit tests for controller selection.
"""
import pytest
from c2k.MODELS.convert_options import ControllerKind, ConvertOptions, Platform
from c2k.MODELS.service_definition import (
    CONTROLLER_LABEL, DeployMode, RestartPolicyCondition, ServiceDescriptor,
)
from c2k.POLICIES.controller_policy import ControllerPolicy, select_controller
from c2k.UTILS.diagnostics import WarningLog
from c2k.errors import ConflictingControllerError


def service(name="web", **fields):
    return ServiceDescriptor(name=name, image="nginx", **fields)


@pytest.fixture
def warnings():
    return WarningLog()


def test_platform_defaults():
    assert select_controller([service()], ConvertOptions()) == ControllerKind.DEPLOYMENT
    openshift = ConvertOptions(platform=Platform.OPENSHIFT)
    assert select_controller([service()], openshift) == ControllerKind.DEPLOYMENT_CONFIG


@pytest.mark.parametrize("restart", [RestartPolicyCondition.NO, RestartPolicyCondition.ON_FAILURE])
def test_pod_only_restart_selects_pod(restart):
    assert select_controller([service(restart=restart)], ConvertOptions()) == ControllerKind.POD


@pytest.mark.parametrize("flag", [
    ControllerKind.DEPLOYMENT, ControllerKind.DAEMON_SET, ControllerKind.REPLICATION_CONTROLLER,
])
def test_pod_only_restart_conflicts_with_flag(flag):
    policy = ControllerPolicy(ConvertOptions(controller=flag))
    with pytest.raises(ConflictingControllerError) as exc:
        policy.select([service(restart=RestartPolicyCondition.ON_FAILURE)])
    assert exc.value.services == ["web"]


def test_pod_only_restart_conflicts_with_label():
    svc = service(restart=RestartPolicyCondition.NO, labels={CONTROLLER_LABEL: "deployment"})
    with pytest.raises(ConflictingControllerError):
        select_controller([svc], ConvertOptions())


def test_label_beats_flag_with_warning(warnings):
    svc = service(labels={CONTROLLER_LABEL: "daemonset"})
    policy = ControllerPolicy(ConvertOptions(controller=ControllerKind.DEPLOYMENT), warnings)
    assert policy.select([svc]) == ControllerKind.DAEMON_SET
    assert len(warnings) == 1
    assert CONTROLLER_LABEL in warnings.messages[0]


def test_label_matching_flag_does_not_warn(warnings):
    svc = service(labels={CONTROLLER_LABEL: "Deployment"})
    policy = ControllerPolicy(ConvertOptions(controller=ControllerKind.DEPLOYMENT), warnings)
    assert policy.select([svc]) == ControllerKind.DEPLOYMENT
    assert len(warnings) == 0


def test_unknown_label_value_raises():
    svc = service(labels={CONTROLLER_LABEL: "statefulset"})
    with pytest.raises(ConflictingControllerError):
        select_controller([svc], ConvertOptions())


def test_global_mode_selects_daemon_set(warnings):
    svc = service(deploy_mode=DeployMode.GLOBAL)
    assert select_controller([svc], ConvertOptions()) == ControllerKind.DAEMON_SET

    flagged = ControllerPolicy(
        ConvertOptions(controller=ControllerKind.REPLICATION_CONTROLLER), warnings
    )
    assert flagged.select([svc]) == ControllerKind.DAEMON_SET
    assert "global deploy mode" in warnings.messages[0]


def test_flag_is_honored():
    options = ConvertOptions(controller=ControllerKind.REPLICATION_CONTROLLER)
    assert select_controller([service()], options) == ControllerKind.REPLICATION_CONTROLLER


def test_explicit_flag_argument_overrides_options():
    policy = ControllerPolicy(ConvertOptions(controller=ControllerKind.DEPLOYMENT))
    assert policy.select([service()], flag=ControllerKind.DAEMON_SET) == ControllerKind.DAEMON_SET


def test_deployment_config_requires_openshift():
    options = ConvertOptions(controller=ControllerKind.DEPLOYMENT_CONFIG)
    with pytest.raises(ConflictingControllerError):
        select_controller([service()], options)


class TestGroups:
    """Selection for colocated groups of services."""

    def test_members_must_agree_on_restart(self):
        members = [service("a"), service("b", restart=RestartPolicyCondition.ON_FAILURE)]
        with pytest.raises(ConflictingControllerError) as exc:
            select_controller(members, ConvertOptions())
        assert exc.value.services == ["a", "b"]

    def test_label_of_one_member_applies_to_group(self):
        members = [service("a", labels={CONTROLLER_LABEL: "daemonset"}), service("b")]
        assert select_controller(members, ConvertOptions()) == ControllerKind.DAEMON_SET

    def test_disagreeing_labels_raise(self):
        members = [
            service("a", labels={CONTROLLER_LABEL: "deployment"}),
            service("b", labels={CONTROLLER_LABEL: "daemonset"}),
        ]
        with pytest.raises(ConflictingControllerError):
            select_controller(members, ConvertOptions())

    def test_all_pod_only_members_form_a_pod(self):
        members = [
            service("a", restart=RestartPolicyCondition.NO),
            service("b", restart=RestartPolicyCondition.ON_FAILURE),
        ]
        assert select_controller(members, ConvertOptions()) == ControllerKind.POD
