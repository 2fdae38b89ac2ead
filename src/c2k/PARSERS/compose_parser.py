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
Parsers for Docker Compose YAML files into the normalized model.
"""
import os
import shlex
import yaml
from dotenv import dotenv_values
from typing import Dict, Any, List, Optional
from ..MODELS.orchestration_config import ConfigMetadata, NormalizedModel
from ..MODELS.service_definition import (
    ConfigReference,
    DeployMode,
    EnvFile,
    EnvVar,
    HealthCheck,
    HealthChecks,
    Port,
    Resources,
    RestartPolicyCondition,
    ServiceDescriptor,
)
from ..errors import ComposeLoadError
from ..UTILS.diagnostics import WarningLog
from ..UTILS.units import parse_cpus, parse_duration, parse_memory

# Readiness probes and HTTP/TCP liveness probes have no compose keys of their own
HEALTHCHECK_LABEL = "c2k.service.healthcheck"


class ComposeParser:
    """
    Parser for docker-compose.yml files.
    """
    def __init__(self, base_dir: Optional[str] = None, warnings: Optional[WarningLog] = None):
        """
        Initializes the parser.

        :param base_dir: Directory that env files and config files are relative to.
                         Defaults to the compose file's directory.
        :param warnings: Receives loader warnings, e.g. for unsupported restart policies.
        """
        self.base_dir = base_dir
        self.warnings = warnings if warnings is not None else WarningLog()

    def parse(self, compose_path: str) -> NormalizedModel:
        """
        Parses a compose file from a path.

        :param compose_path: Path to the compose file.
        :return: Parsed model.
        :raises ComposeLoadError: If the file cannot be read or parsed.
        """
        try:
            with open(compose_path, 'r') as f:
                content = f.read()
        except OSError as e:
            raise ComposeLoadError(f"cannot read {compose_path}: {e}") from e
        base_dir = self.base_dir or os.path.dirname(os.path.abspath(compose_path))
        return self.parse_from_string(content, base_dir)

    def parse_from_string(self, content: str, base_dir: Optional[str] = None) -> NormalizedModel:
        """
        Parses a compose file from a string.

        :param content: YAML content of the compose file.
        :param base_dir: Directory for relative env and config files.
        :return: Parsed model.
        :raises ComposeLoadError: If the content is not a compose mapping.
        """
        base_dir = base_dir or self.base_dir or os.getcwd()
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ComposeLoadError(f"invalid YAML: {e}") from e
        if not data:
            data = {}
        if not isinstance(data, dict) or not isinstance(data.get('services', {}), dict):
            raise ComposeLoadError("compose content must be a mapping with a 'services' mapping")

        try:
            services = {
                name: self._parse_service(str(name), spec or {}, base_dir)
                for name, spec in (data.get('services') or {}).items()
            }
            return NormalizedModel(
                services=services,
                configs=self._parse_top_level(data.get('configs'), base_dir),
                secrets=self._parse_top_level(data.get('secrets'), base_dir),
            )
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            raise ComposeLoadError(f"invalid compose content: {e}") from e

    def _parse_service(self, name: str, spec: Dict[str, Any], base_dir: str) -> ServiceDescriptor:
        """
        Parses a single service definition from a compose file.

        :param name: The name of the service.
        :param spec: The service specification dictionary.
        :return: A ServiceDescriptor instance.
        """
        deploy = spec.get('deploy') or {}
        labels = self._to_dict(spec.get('labels'))
        labels.update(self._to_dict(deploy.get('labels')))

        # deploy.restart_policy overrides the service level restart key
        restart = (deploy.get('restart_policy') or {}).get('condition') or spec.get('restart') or 'always'
        if restart == 'unless-stopped':
            self.warnings.warn(
                f"restart:{name}",
                f"[{name}] Restart policy 'unless-stopped' in service {name} is not supported, "
                f"convert it to 'always'",
                service=name,
            )
            restart = 'always'
        if restart == 'any':
            restart = 'always'
        if restart == 'none':
            restart = 'no'

        return ServiceDescriptor(
            name=name,
            image=spec.get('image', ''),
            container_name=spec.get('container_name'),
            entrypoint=self._to_command(spec.get('entrypoint')),
            command=self._to_command(spec.get('command')),
            working_dir=spec.get('working_dir'),
            stdin_open=bool(spec.get('stdin_open', False)),
            tty=bool(spec.get('tty', False)),
            environment=[EnvVar(name=k, value=v) for k, v in self._parse_environment(spec.get('environment')).items()],
            env_files=[self._load_env_file(path, base_dir) for path in self._to_list(spec.get('env_file'))],
            ports=self._parse_ports(spec.get('ports', [])) + self._parse_expose(spec.get('expose', [])),
            hostname=spec.get('hostname'),
            domain_name=spec.get('domainname'),
            volumes=[self._volume_string(v) for v in spec.get('volumes', [])],
            volumes_from=self._to_list(spec.get('volumes_from')),
            tmpfs=self._to_list(spec.get('tmpfs')),
            configs=[self._reference(r) for r in spec.get('configs', [])],
            secrets=[self._reference(r) for r in spec.get('secrets', [])],
            restart=RestartPolicyCondition(restart),
            health_checks=self._parse_health_checks(spec.get('healthcheck'), labels),
            depends_on=self._parse_depends_on(spec),
            deploy_mode=DeployMode(deploy.get('mode', 'replicated')),
            replicas=deploy.get('replicas'),
            stop_grace_period=parse_duration(spec['stop_grace_period']) if spec.get('stop_grace_period') else None,
            image_pull_policy=spec.get('pull_policy'),
            resources=self._parse_resources(spec, deploy),
            privileged=bool(spec.get('privileged', False)),
            user=str(spec['user']) if spec.get('user') is not None else None,
            group_add=[int(g) for g in spec.get('group_add', [])],
            cap_add=self._to_list(spec.get('cap_add')),
            cap_drop=self._to_list(spec.get('cap_drop')),
            labels=labels,
            annotations=self._to_dict(spec.get('annotations')),
        )

    def _parse_depends_on(self, spec: Dict[str, Any]) -> List[str]:
        """
        Services this one depends on, from depends_on (list or mapping) and links.
        """
        depends_on = spec.get('depends_on')
        if isinstance(depends_on, dict):
            deps = list(depends_on.keys())
        else:
            deps = self._to_list(depends_on)
        for link in self._to_list(spec.get('links')):
            name = link.split(':')[0]
            if name not in deps:
                deps.append(name)
        return deps

    def _parse_environment(self, env_spec: Any) -> Dict[str, str]:
        environment = {}
        if isinstance(env_spec, list):
            for e in env_spec:
                k, _, v = str(e).partition('=')
                environment[k] = v
        elif isinstance(env_spec, dict):
            environment = {str(k): '' if v is None else str(v) for k, v in env_spec.items()}
        return environment

    def _load_env_file(self, path: str, base_dir: str) -> EnvFile:
        """
        Reads an env file with python-dotenv, relative to the compose file.
        """
        full_path = os.path.join(base_dir, path)
        if not os.path.exists(full_path):
            raise ComposeLoadError(f"env file {path} not found")
        values = dotenv_values(full_path)
        return EnvFile(path=path, data={k: v or '' for k, v in values.items()})

    def _parse_ports(self, ports_spec: List[Any]) -> List[Port]:
        """
        Parses 'host:container[/proto]', 'ip:host:container' and long syntax ports.
        """
        ports = []
        for p in ports_spec:
            if isinstance(p, dict):
                ports.append(Port(
                    container_port=int(p['target']),
                    host_port=int(p.get('published') or 0),
                    protocol=str(p.get('protocol', 'tcp')).upper(),
                ))
                continue
            value, _, protocol = str(p).partition('/')
            parts = value.split(':')
            container = parts[-1]
            host = parts[-2] if len(parts) >= 2 else ''
            for container_port, host_port in self._expand_range(container, host):
                ports.append(Port(
                    container_port=container_port,
                    host_port=host_port,
                    protocol=(protocol or 'tcp').upper(),
                ))
        return ports

    def _parse_expose(self, expose_spec: List[Any]) -> List[Port]:
        ports = []
        for e in expose_spec:
            value, _, protocol = str(e).partition('/')
            ports.append(Port(container_port=int(value), protocol=(protocol or 'tcp').upper()))
        return ports

    def _expand_range(self, container: str, host: str):
        """
        Expands '8000-8002' style ranges into (container, host) pairs.
        """
        if '-' not in container:
            return [(int(container), int(host) if host else 0)]
        start, end = (int(x) for x in container.split('-'))
        if host and '-' in host:
            host_start = int(host.split('-')[0])
        else:
            host_start = int(host) if host else 0
        return [
            (port, host_start + (port - start) if host_start else 0)
            for port in range(start, end + 1)
        ]

    def _volume_string(self, volume: Any) -> str:
        """
        Converts long syntax volumes into the short 'source:target[:ro]' form.
        """
        if isinstance(volume, str):
            return volume
        target = volume['target']
        source = volume.get('source')
        parts = [source, target] if source else [target]
        if volume.get('read_only'):
            parts.append('ro')
        return ':'.join(parts)

    def _reference(self, ref: Any) -> ConfigReference:
        if isinstance(ref, str):
            return ConfigReference(source=ref)
        return ConfigReference(source=ref['source'], target=ref.get('target'))

    def _parse_top_level(self, spec: Any, base_dir: str) -> Dict[str, ConfigMetadata]:
        """
        Parses top-level configs or secrets, reading file contents where given.
        """
        result = {}
        for name, item in (spec or {}).items():
            item = item or {}
            content = item.get('content')
            file = item.get('file')
            if file and content is None:
                full_path = os.path.join(base_dir, file)
                if os.path.exists(full_path):
                    with open(full_path, 'r') as f:
                        content = f.read()
            result[name] = ConfigMetadata(
                name=item.get('name', name),
                file=file,
                content=content,
                external=bool(item.get('external', False)),
            )
        return result

    def _parse_resources(self, spec: Dict[str, Any], deploy: Dict[str, Any]) -> Resources:
        resources = deploy.get('resources') or {}
        limits = resources.get('limits') or {}
        reservations = resources.get('reservations') or {}
        return Resources(
            mem_limit=parse_memory(limits.get('memory') or spec.get('mem_limit')),
            cpu_limit=parse_cpus(limits.get('cpus') or spec.get('cpus')),
            mem_reservation=parse_memory(reservations.get('memory') or spec.get('mem_reservation')),
            cpu_reservation=parse_cpus(reservations.get('cpus')),
        )

    def _parse_health_checks(self, spec: Optional[Dict[str, Any]], labels: Dict[str, str]) -> HealthChecks:
        """
        Liveness comes from the healthcheck key, completed by liveness labels;
        readiness only from labels, e.g. c2k.service.healthcheck.readiness.test.
        """
        liveness = self._health_check(spec or {}, self._probe_labels(labels, 'liveness')) \
            if spec or self._probe_labels(labels, 'liveness') else None
        readiness_labels = self._probe_labels(labels, 'readiness')
        readiness = self._health_check({}, readiness_labels) if readiness_labels else None
        return HealthChecks(liveness=liveness, readiness=readiness)

    def _probe_labels(self, labels: Dict[str, str], probe: str) -> Dict[str, str]:
        prefix = f"{HEALTHCHECK_LABEL}.{probe}."
        return {k[len(prefix):]: v for k, v in labels.items() if k.startswith(prefix)}

    def _health_check(self, spec: Dict[str, Any], labels: Dict[str, str]) -> HealthCheck:
        test = spec.get('test', labels.get('test', []))
        if isinstance(test, str):
            test = ['CMD-SHELL', test]
        test = list(test)
        if test and test[0] == 'NONE':
            return HealthCheck(disable=True)
        if test and test[0] == 'CMD':
            test = test[1:]
        elif test and test[0] == 'CMD-SHELL':
            test = ['/bin/sh', '-c', ' '.join(test[1:])]

        def value(key: str) -> Any:
            return spec.get(key, labels.get(key))

        return HealthCheck(
            test=test,
            http_path=labels.get('http_get_path'),
            http_port=int(labels.get('http_get_port', 0)),
            tcp_port=int(labels.get('tcp_port', 0)),
            interval=parse_duration(value('interval')),
            timeout=parse_duration(value('timeout')),
            retries=int(value('retries') or 0),
            start_period=parse_duration(value('start_period')),
            disable=bool(spec.get('disable', False)),
        )

    def _to_dict(self, val: Any) -> Dict[str, str]:
        """
        Helper for compose keys that accept a mapping or a list of KEY=VALUE.
        """
        if not val:
            return {}
        if isinstance(val, dict):
            return {str(k): '' if v is None else str(v) for k, v in val.items()}
        return dict(str(item).partition('=')[::2] for item in val)

    def _to_command(self, val: Any) -> List[str]:
        if isinstance(val, str):
            return shlex.split(val)
        return self._to_list(val)

    def _to_list(self, val: Any) -> List[str]:
        """
        Helper to ensure a value is a list of strings.

        :param val: The value to convert.
        :return: A list of strings.
        """
        if val is None:
            return []
        if isinstance(val, str):
            return [val]
        return [str(v) for v in val]
