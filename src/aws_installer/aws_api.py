"""EC2 and Route53 calls used to provision a server."""

import logging
import time
from typing import Any, Dict, List, Optional

import boto3

logger = logging.getLogger(__name__)

CANONICAL_OWNER_ID = "099720109477"
UBUNTU_IMAGE_PATTERN = "ubuntu/images/hvm-ssd-gp3/ubuntu-noble-24.04-{arch}-server-*"
# EC2 architecture names -> Ubuntu image naming
IMAGE_ARCH = {"x86_64": "amd64", "arm64": "arm64"}
ROOT_DEVICE = "/dev/sda1"
CNAME_TTL = 300


class RecordExistsError(RuntimeError):
    """Raised when the hosted zone already has a record for the hostname."""

    def __init__(self, hostname: str) -> None:
        super().__init__(f"{hostname} already exists!")
        self.hostname = hostname


class NoImageFoundError(RuntimeError):
    """Raised when no machine image matches the requested architecture."""


class AWSClient:
    """Wrapper around boto3 EC2 and Route53 clients."""

    def __init__(self, region: Optional[str] = None, session: Optional[Any] = None) -> None:
        self.session = session if session is not None else boto3.Session(region_name=region)
        self.ec2 = self.session.client("ec2")
        self.route53 = self.session.client("route53")

    def get_architecture(self, instance_type: str) -> str:
        """Return the first supported CPU architecture of an instance type."""
        response = self.ec2.describe_instance_types(InstanceTypes=[instance_type])
        arch = response["InstanceTypes"][0]["ProcessorInfo"]["SupportedArchitectures"][0]
        logger.debug(f"{instance_type} architecture: {arch}")
        return arch  # type: ignore[no-any-return]

    def find_ami(self, architecture: str) -> str:
        """
        Find the newest Canonical Ubuntu server image for an architecture.

        Args:
            architecture: EC2 architecture name, e.g. ``x86_64`` or ``arm64``

        Returns:
            The image ID

        Raises:
            NoImageFoundError: If no available image matches
        """
        pattern = UBUNTU_IMAGE_PATTERN.format(arch=IMAGE_ARCH.get(architecture, architecture))
        response = self.ec2.describe_images(
            Owners=[CANONICAL_OWNER_ID],
            Filters=[
                {"Name": "name", "Values": [pattern]},
                {"Name": "architecture", "Values": [architecture]},
                {"Name": "state", "Values": ["available"]},
            ],
        )
        images = sorted(response["Images"], key=lambda image: image["CreationDate"], reverse=True)
        if not images:
            raise NoImageFoundError(f"No AMI found matching {pattern} ({architecture})")

        logger.debug(f"Using {images[0].get('Name')} ({images[0]['ImageId']})")
        return images[0]["ImageId"]  # type: ignore[no-any-return]

    def get_zone_name(self, zone_id: str) -> str:
        """Return the hosted zone's domain name without the trailing dot."""
        response = self.route53.get_hosted_zone(Id=zone_id)
        return response["HostedZone"]["Name"].rstrip(".")  # type: ignore[no-any-return]

    def record_exists(self, zone_id: str, hostname: str) -> bool:
        """Check whether any record set in the zone is named ``hostname``, ignoring case."""
        fqdn = hostname.rstrip(".").lower() + "."
        response = self.route53.list_resource_record_sets(
            HostedZoneId=zone_id, StartRecordName=fqdn, MaxItems="10"
        )
        return any(rrset["Name"].lower() == fqdn for rrset in response["ResourceRecordSets"])

    def launch_instance(
        self,
        server: str,
        roles: str,
        image_id: str,
        instance_type: str,
        security_groups: List[str],
        iam_profile: str,
        availability_zone: str,
        disk_size: int,
        user_data: str,
    ) -> str:
        """
        Launch a single tagged instance and return its ID.

        The root volume is an encrypted gp3 volume of ``disk_size`` GiB, and
        instance tags are exposed through the metadata service.
        """
        tags: List[Dict[str, str]] = [
            {"Key": "Name", "Value": server},
            {"Key": "role", "Value": roles},
        ]
        response = self.ec2.run_instances(
            MinCount=1,
            MaxCount=1,
            IamInstanceProfile={"Name": iam_profile},
            ImageId=image_id,
            InstanceType=instance_type,
            SecurityGroupIds=security_groups,
            TagSpecifications=[{"ResourceType": "instance", "Tags": tags}],
            UserData=user_data,
            Monitoring={"Enabled": True},
            Placement={"AvailabilityZone": availability_zone},
            BlockDeviceMappings=[
                {
                    "DeviceName": ROOT_DEVICE,
                    "Ebs": {"VolumeSize": disk_size, "VolumeType": "gp3", "Encrypted": True},
                }
            ],
            MetadataOptions={"InstanceMetadataTags": "enabled"},
        )
        instance_id = response["Instances"][0]["InstanceId"]
        logger.info(f"Launched {instance_id} for {server}")
        return instance_id  # type: ignore[no-any-return]

    def wait_for_public_dns(self, instance_id: str, interval: float = 1) -> str:
        """
        Poll until the instance has a public DNS name.

        There is no timeout; this blocks until EC2 assigns a name.
        """
        while True:
            response = self.ec2.describe_instances(InstanceIds=[instance_id])
            dns_name = response["Reservations"][0]["Instances"][0].get("PublicDnsName", "")
            if dns_name:
                return dns_name  # type: ignore[no-any-return]
            logger.debug(f"{instance_id} has no public DNS name yet, sleeping {interval}s")
            time.sleep(interval)

    def create_cname(self, zone_id: str, hostname: str, target: str) -> Dict[str, Any]:
        """Create ``hostname`` as a CNAME to ``target`` and return the change info."""
        change_batch = {
            "Comment": f"Add the {hostname} CNAME record",
            "Changes": [
                {
                    "Action": "CREATE",
                    "ResourceRecordSet": {
                        "Name": hostname,
                        "Type": "CNAME",
                        "TTL": CNAME_TTL,
                        "ResourceRecords": [{"Value": target}],
                    },
                }
            ],
        }
        response = self.route53.change_resource_record_sets(
            HostedZoneId=zone_id, ChangeBatch=change_batch
        )
        return response["ChangeInfo"]  # type: ignore[no-any-return]
