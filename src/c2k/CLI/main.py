"""
Command Line Interface for C2K.
"""
import click
import json
import os
import sys
import yaml
from .. import __version__
from ..config import load_options
from ..CONVERTERS.to_kubernetes import KubernetesConverter
from ..MODELS.convert_options import ColocationMode, Platform, VolumeMode
from ..PARSERS.compose_parser import ComposeParser
from ..errors import ConversionError
from ..UTILS.diagnostics import WarningLog
from ..UTILS.logging import setup_logging

CONTROLLERS = ['deployment', 'daemonset', 'replicationcontroller', 'deploymentconfig']


@click.group()
@click.option('--file', '-f', default='docker-compose.yml', help='Compose file path')
@click.option('--verbose', '-v', is_flag=True, help='Show debug logs')
@click.option('--log-json', is_flag=True, help='Write logs as JSON lines')
@click.pass_context
def cli(ctx, file, verbose, log_json):
    """
    C2K - Compose to Kubernetes converter.

    Converts Docker Compose setups into Kubernetes or OpenShift objects.
    """
    ctx.ensure_object(dict)
    ctx.obj['file'] = file
    setup_logging('debug' if verbose else 'error', json_output=log_json)


@cli.command()
@click.option('--provider', type=click.Choice([p.value for p in Platform]), default=None,
              help='Target platform')
@click.option('--controller', type=click.Choice(CONTROLLERS, case_sensitive=False), default=None,
              help='Workload kind to create')
@click.option('--replicas', type=int, default=None, help='Replicas for replicated workloads')
@click.option('--volumes', type=click.Choice([m.value for m in VolumeMode]), default=None,
              help='How volumes are backed')
@click.option('--colocation', type=click.Choice([m.value for m in ColocationMode]), default=None,
              help='Which services share a pod')
@click.option('--namespace', '-n', default=None, help='Namespace of every object')
@click.option('--json', 'as_json', is_flag=True, help='Print a JSON List instead of YAML')
@click.option('--out', '-o', default=None, help='Write to a file instead of stdout')
@click.pass_context
def convert(ctx, provider, controller, replicas, volumes, colocation, namespace, as_json, out):
    """Convert the compose file into cluster objects."""
    file = ctx.obj['file']
    if not os.path.exists(file):
        click.echo(f"Error: {file} not found.", err=True)
        sys.exit(1)

    try:
        options = load_options(
            platform=provider,
            controller=controller,
            replicas=replicas,
            volume_mode=volumes,
            colocation=colocation,
            namespace=namespace,
        )
        warnings = WarningLog()
        model = ComposeParser(warnings=warnings).parse(file)
        result = KubernetesConverter(model, options, warnings).convert()
    except (ConversionError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)

    items = result.to_dicts()
    if as_json:
        data = json.dumps({"apiVersion": "v1", "kind": "List", "items": items}, indent=2) + "\n"
    else:
        data = yaml.safe_dump_all(items, sort_keys=False, default_flow_style=False)

    if out:
        with open(out, 'w') as f:
            f.write(data)
        click.echo(f"file \"{out}\" created", err=True)
    else:
        click.echo(data, nl=False)


@cli.command()
def version():
    """Print the version."""
    click.echo(__version__)


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})


if __name__ == '__main__':
    main()
