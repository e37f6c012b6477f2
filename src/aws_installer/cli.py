"""
Command-line interface for provisioning a fleet server on AWS.

    install-aws-server [--roles=roles] [--branch=main] [--debug-key=username] server
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import requests
import typer
from botocore.exceptions import BotoCoreError, ClientError
from rich.console import Console
from rich.table import Table

from aws_installer.aws_api import NoImageFoundError, RecordExistsError
from aws_installer.config import ConfigError, InstallConfig, MissingConfigFileError
from aws_installer.provisioner import DEFAULT_BRANCH, DEFAULT_ROLES, ServerProvisioner
from aws_installer.roles import UnknownRoleError

app = typer.Typer(
    name="install-aws-server",
    help="Provision a fleet server on EC2 and register it in Route53",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)

logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s [%(levelname)8s] %(name)s: %(message)s"
)


@app.command()
def install(
    server: str = typer.Argument(..., help="Short server name; the zone name is appended"),
    roles: str = typer.Option(DEFAULT_ROLES, "--roles", help="Comma-separated zulip_ops profiles"),
    branch: str = typer.Option(DEFAULT_BRANCH, "--branch", help="Branch to check out on the server"),
    debug_key: Optional[str] = typer.Option(
        None, "--debug-key", help="GitHub user whose SSH keys are authorized on the server"
    ),
    checkout: Optional[Path] = typer.Option(
        None, "--checkout", help="Repository checkout containing puppet/ (default: cwd)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Launch SERVER with the given roles and add its DNS record."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        provisioner = ServerProvisioner(
            config=InstallConfig(), checkout=checkout, echo=console.print
        )
        result = provisioner.provision(server, roles=roles, branch=branch, debug_key=debug_key)
    except (MissingConfigFileError, UnknownRoleError, RecordExistsError) as e:
        err_console.print(str(e), markup=False)
        raise typer.Exit(1)
    except (ConfigError, NoImageFoundError, ValueError) as e:
        err_console.print(f"❌ {e}", markup=False)
        raise typer.Exit(1)
    except (ClientError, BotoCoreError) as e:
        err_console.print(f"❌ AWS request failed: {e}", markup=False)
        raise typer.Exit(1)
    except requests.RequestException as e:
        err_console.print(f"❌ Could not fetch debug keys for {debug_key}: {e}", markup=False)
        raise typer.Exit(1)

    table = Table(title=f"Provisioned {result.server}")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("DNS name", result.hostname)
    table.add_row("Public DNS", result.public_dns_name)
    table.add_row("Instance ID", result.instance_id)
    table.add_row("AMI", f"{result.ami_id} ({result.architecture})")
    table.add_row("Roles", result.roles)

    console.print(table)
    console.print(f"✅ {result.hostname} is booting; it will install {branch} from the repository.")


def main() -> None:
    """Console-script entry point; usage errors exit 1 instead of click's 2."""
    try:
        app()
    except SystemExit as e:
        if e.code == 2:
            sys.exit(1)
        raise


if __name__ == "__main__":
    main()
