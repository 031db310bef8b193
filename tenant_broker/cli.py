"""Command line interface for the Tenant Broker.

Commands:
    resolve-address  Print the identity endpoint URL for a host
    connect          Open a connection to one service to verify credentials
    list             Run an accessor across every accessible tenant
    config           Show current configuration (without sensitive data)
"""

import asyncio
import json
import sys
from typing import Any, Dict, Optional

import click
from rich.console import Console
from rich.table import Table

from .address import DEFAULT_PORT, SslPolicy, resolve_address
from .config_manager import BrokerConfig, create_config_from_env, setup_logging
from .exceptions import TenantBrokerError
from .logging_config import configure_logging
from .services.tenant_aggregator import resource_attribute

console = Console()

SSL_POLICY_CHOICES = [policy.value for policy in SslPolicy]


def _load_config(ctx: click.Context) -> BrokerConfig:
    try:
        config = create_config_from_env(log_level=ctx.obj["log_level"])
    except TenantBrokerError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)
    setup_logging(config.logging)
    configure_logging(config.logging.get_log_level(), json_output=False)
    return config


def _display_name(entity: Any) -> str:
    for attr in ("name", "display_name"):
        try:
            value = resource_attribute(entity, attr)
        except (KeyError, AttributeError):
            continue
        if value:
            return str(value)
    return ""


@click.group()
@click.option(
    "--log-level",
    default="INFO",
    help="Logging level (DEBUG, INFO, WARNING, ERROR)",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str) -> None:
    """Tenant Broker - connect to OpenStack and aggregate resources across tenants."""
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = log_level.upper()


@cli.command("resolve-address")
@click.argument("host")
@click.option("--port", type=int, default=DEFAULT_PORT, show_default=True)
@click.option(
    "--security-protocol",
    type=click.Choice(SSL_POLICY_CHOICES),
    default=SslPolicy.NON_SSL.value,
    show_default=True,
)
def resolve_address_command(host: str, port: int, security_protocol: str) -> None:
    """Print the identity endpoint URL for HOST."""
    click.echo(resolve_address(host, port, security_protocol))


@cli.command()
@click.option("--service", default="Compute", show_default=True, help="Service type")
@click.option("--project", help="Project (tenant) name to scope the session to")
@click.pass_context
def connect(ctx: click.Context, service: str, project: Optional[str]) -> None:
    """Open a connection to SERVICE to verify the configured credentials."""
    config = _load_config(ctx)
    connect_options: Dict[str, Any] = {}
    if project:
        connect_options["openstack_project_name"] = project

    try:
        handle = config.create_handle()
        handle.connect(service, **connect_options)
    except TenantBrokerError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)

    click.echo(f"✅ Connected to {service} at {config.connection.get_auth_url()}")


@cli.command("list")
@click.argument("service")
@click.argument("accessor")
@click.option("--key", default="id", show_default=True, help="Entity key attribute")
@click.option(
    "--concurrency",
    type=int,
    default=None,
    help="Max concurrent tenant calls (defaults to TB_MAX_CONCURRENCY)",
)
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def list_command(
    ctx: click.Context,
    service: str,
    accessor: str,
    key: str,
    concurrency: Optional[int],
    output_json: bool,
) -> None:
    """Run ACCESSOR on SERVICE in every accessible tenant and merge the results.

    Examples:
        tenant-broker list Network security_groups
        tenant-broker list Compute servers --concurrency 1 --json
    """
    config = _load_config(ctx)
    concurrency = concurrency or config.processing.max_concurrency

    try:
        handle = config.create_handle()
        if concurrency > 1:
            entities = asyncio.run(
                handle.accessor_for_accessible_tenants_async(
                    service, accessor, key, concurrency=concurrency
                )
            )
        else:
            entities = handle.accessor_for_accessible_tenants(service, accessor, key)
    except TenantBrokerError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)

    if output_json:
        click.echo(
            json.dumps(
                {str(k): v for k, v in entities.items()}, indent=2, default=str
            )
        )
        return

    if not entities:
        click.echo(f"No {accessor} found in any accessible tenant.")
        return

    table = Table(title=f"{service} {accessor}")
    table.add_column(key, style="cyan")
    table.add_column("Name", style="green")
    for entity_key, entity in entities.items():
        table.add_row(str(entity_key), _display_name(entity))
    console.print(table)


@cli.command()
def config() -> None:
    """Show current configuration (without sensitive data)."""
    try:
        config_obj = BrokerConfig.from_environment()
    except TenantBrokerError as e:
        click.echo(f"Failed to display configuration: {e}", err=True)
        sys.exit(1)

    click.echo("Current Configuration:")
    click.echo("=" * 60)

    def print_dict(d: Dict[str, Any], indent: int = 0) -> None:
        for key, value in d.items():
            if isinstance(value, dict):
                click.echo("  " * indent + f"{key}:")
                print_dict(value, indent + 1)
            else:
                click.echo("  " * indent + f"{key}: {value}")

    print_dict(config_obj.to_dict())
    click.echo("=" * 60)
    click.echo("Set TB_* environment variables to customize configuration")


if __name__ == "__main__":
    cli()
