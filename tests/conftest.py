"""Shared test fixtures for install-aws-server tests."""

from pathlib import Path
from typing import Any, Dict
from unittest import mock

import pytest

from aws_installer.config import Config

ROLES = ["base", "a", "b", "prod_app_frontend", "postgresql"]

CONFIG_TEXT = """
[repo]
repo_url = git@github.com:example/zulip.git

[aws]
zone_id = Z0123456789ABCDEFGHIJ
security_groups = sg-0aaa111,sg-0bbb222
instance_type = t3.large
iam_profile = EC2ProdInstance
availability_zone = us-east-1a
disk_size = 40

[aws-postgresql]
instance_type = r6g.xlarge
disk_size = 500
availability_zone = us-east-1b
""".lstrip()


@pytest.fixture
def config_file(tmp_path, monkeypatch) -> Path:
    """Write a sample install config and point Config at it."""
    path = tmp_path / "zulip-install-server.conf"
    path.write_text(CONFIG_TEXT)
    monkeypatch.setattr(Config, "CONFIG_PATH", str(path))
    return path


@pytest.fixture
def checkout(tmp_path, monkeypatch) -> Path:
    """Create a repository checkout with profile manifests for ROLES."""
    root = tmp_path / "checkout"
    profile_dir = root / "puppet" / "zulip_ops" / "manifests" / "profile"
    profile_dir.mkdir(parents=True)
    for role in ROLES:
        (profile_dir / f"{role}.pp").write_text(f"class zulip_ops::profile::{role} {{\n}}\n")
    monkeypatch.setattr(Config, "CHECKOUT", str(root))
    return root


@pytest.fixture
def mock_boto3():
    """Patch boto3.Session so AWSClient gets MagicMock ec2/route53 clients."""
    with mock.patch("aws_installer.aws_api.boto3.Session") as mock_session:
        ec2 = mock.MagicMock()
        route53 = mock.MagicMock()
        clients = {"ec2": ec2, "route53": route53}
        mock_session.return_value.client.side_effect = lambda name, **kwargs: clients[name]

        ec2.describe_instance_types.return_value = {
            "InstanceTypes": [
                {
                    "InstanceType": "t3.large",
                    "ProcessorInfo": {"SupportedArchitectures": ["x86_64"]},
                }
            ]
        }
        ec2.describe_images.return_value = {
            "Images": [
                {
                    "ImageId": "ami-0old",
                    "Name": "ubuntu/images/hvm-ssd-gp3/ubuntu-noble-24.04-amd64-server-20240423",
                    "CreationDate": "2024-04-23T10:00:00.000Z",
                },
                {
                    "ImageId": "ami-0new",
                    "Name": "ubuntu/images/hvm-ssd-gp3/ubuntu-noble-24.04-amd64-server-20241004",
                    "CreationDate": "2024-10-04T10:00:00.000Z",
                },
            ]
        }
        ec2.run_instances.return_value = {"Instances": [{"InstanceId": "i-0123456789abcdef0"}]}
        ec2.describe_instances.return_value = {
            "Reservations": [
                {"Instances": [{"PublicDnsName": "ec2-3-80-1-2.compute-1.amazonaws.com"}]}
            ]
        }

        route53.get_hosted_zone.return_value = {
            "HostedZone": {"Id": "/hostedzone/Z0123456789ABCDEFGHIJ", "Name": "example.com."}
        }
        route53.list_resource_record_sets.return_value = {
            "ResourceRecordSets": [{"Name": "zz.example.com.", "Type": "A"}]
        }
        route53.change_resource_record_sets.return_value = {
            "ChangeInfo": {"Id": "/change/C1", "Status": "PENDING"}
        }

        yield {"session": mock_session, "ec2": ec2, "route53": route53}


@pytest.fixture
def mock_github_keys():
    """Mock requests.get for GitHub key lookups."""
    with mock.patch("aws_installer.user_data.requests.get") as mock_get:
        mock_get.return_value.status_code = 200
        mock_get.return_value.text = "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIKey1\nssh-rsa AAAAB3NzaKey2\n"
        yield mock_get


@pytest.fixture
def sample_settings() -> Dict[str, Any]:
    """Keyword arguments for a launch_instance call."""
    return {
        "server": "web1",
        "roles": "a,b",
        "image_id": "ami-0new",
        "instance_type": "t3.large",
        "security_groups": ["sg-0aaa111", "sg-0bbb222"],
        "iam_profile": "EC2ProdInstance",
        "availability_zone": "us-east-1a",
        "disk_size": 40,
        "user_data": "#!/bin/bash\n",
    }
