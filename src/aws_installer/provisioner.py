#!/usr/bin/env python3
"""
src/aws_installer/provisioner.py

Provision one fleet server on EC2: pick an AMI, launch a tagged instance with
bootstrap user-data, wait for its public DNS name and register a CNAME.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from aws_installer.aws_api import AWSClient, RecordExistsError
from aws_installer.config import Config, InstallConfig
from aws_installer.roles import RoleManager
from aws_installer.user_data import BootstrapVars, UserDataBuilder

logger = logging.getLogger(__name__)

DEFAULT_ROLES = "base"
DEFAULT_BRANCH = "main"


@dataclass
class ProvisionResult:
    """What was created for a server."""

    server: str
    hostname: str
    roles: str
    instance_id: str
    public_dns_name: str
    ami_id: str
    architecture: str


class ServerProvisioner:
    """Runs the provisioning steps for a single server, in order."""

    def __init__(
        self,
        config: Optional[InstallConfig] = None,
        checkout: Optional[Path] = None,
        client_factory: Callable[[Optional[str]], AWSClient] = AWSClient,
        user_data_builder: Optional[UserDataBuilder] = None,
        echo: Callable[[str], None] = print,
    ) -> None:
        self.config = config if config is not None else InstallConfig()
        self.roles = RoleManager(checkout if checkout is not None else Config.checkout_dir())
        self.client_factory = client_factory
        self.user_data_builder = user_data_builder or UserDataBuilder()
        self.echo = echo

    def provision(
        self,
        server: str,
        roles: str = DEFAULT_ROLES,
        branch: str = DEFAULT_BRANCH,
        debug_key: Optional[str] = None,
    ) -> ProvisionResult:
        """
        Launch ``server`` with ``roles`` and register it in DNS.

        Nothing is rolled back: if a step after the launch fails, the
        instance is left running.

        Raises:
            UnknownRoleError: Before any AWS call, if a role has no manifest
            ConfigError: If the AWS settings for ``roles`` are incomplete
            RecordExistsError: If the hostname is already in the zone
        """
        # 1) Local checks, before touching AWS
        self.roles.validate(roles)
        settings = self.config.aws_settings(roles)
        repo_url = self.config.repo_url
        full_roles = RoleManager.expand(roles)

        aws = self.client_factory(settings.region)

        # 2) Image for the instance type's architecture
        arch = aws.get_architecture(settings.instance_type)
        ami_id = aws.find_ami(arch)
        self.echo(f"🖼️  Using AMI {ami_id} ({arch}) for {settings.instance_type}")

        # 3) Hostname must not already exist
        zone_name = aws.get_zone_name(settings.zone_id)
        hostname = f"{server}.{zone_name}"
        if aws.record_exists(settings.zone_id, hostname):
            raise RecordExistsError(hostname)

        # 4) Bootstrap payload
        user_data = self.user_data_builder.build(
            BootstrapVars(
                server=server,
                hostname=hostname,
                full_roles=full_roles,
                repo_url=repo_url,
                branch=branch,
            ),
            debug_key=debug_key,
        )

        # 5) Launch
        self.echo(f"🆕 Launching {hostname} ({roles}) as {settings.instance_type}")
        instance_id = aws.launch_instance(
            server=server,
            roles=roles,
            image_id=ami_id,
            instance_type=settings.instance_type,
            security_groups=settings.security_groups,
            iam_profile=settings.iam_profile,
            availability_zone=settings.availability_zone,
            disk_size=settings.disk_size,
            user_data=user_data,
        )

        # 6) Wait for a public name, then point DNS at it
        self.echo(f"⏳ Waiting for {instance_id} to get a public DNS name")
        public_dns = aws.wait_for_public_dns(instance_id)

        self.echo(f"🌐 Adding CNAME {hostname} → {public_dns}")
        change = aws.create_cname(settings.zone_id, hostname, public_dns)
        logger.debug(f"Route53 change {change.get('Id')} is {change.get('Status')}")

        return ProvisionResult(
            server=server,
            hostname=hostname,
            roles=roles,
            instance_id=instance_id,
            public_dns_name=public_dns,
            ami_id=ami_id,
            architecture=arch,
        )
