"""Puppet role validation and expansion."""

import logging
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)

PROFILE_NAMESPACE = "zulip_ops::profile"
PROFILE_MANIFEST_DIR = Path("puppet") / "zulip_ops" / "manifests" / "profile"


class UnknownRoleError(ValueError):
    """Raised when a role has no matching profile manifest."""

    def __init__(self, role: str) -> None:
        super().__init__(f"Unknown zulip_ops role '{role}'!")
        self.role = role


class RoleManager:
    """Checks role names against the checkout's profile manifests."""

    def __init__(self, checkout: Path) -> None:
        self.checkout = checkout
        self.manifest_dir = checkout / PROFILE_MANIFEST_DIR

    @staticmethod
    def split(roles: str) -> List[str]:
        return [role.strip() for role in roles.split(",")]

    def manifest_path(self, role: str) -> Path:
        return self.manifest_dir / f"{role}.pp"

    def validate(self, roles: str) -> List[str]:
        """
        Ensure every role in a comma-separated list has a profile manifest.

        Returns:
            The individual role names

        Raises:
            UnknownRoleError: On the first role without a manifest
        """
        names = self.split(roles)
        for role in names:
            if not role or "/" in role or not self.manifest_path(role).is_file():
                raise UnknownRoleError(role)
            logger.debug(f"Role {role} -> {self.manifest_path(role)}")
        return names

    @staticmethod
    def expand(roles: str) -> str:
        """Expand ``a,b`` into ``zulip_ops::profile::a,zulip_ops::profile::b``."""
        return ",".join(f"{PROFILE_NAMESPACE}::{role}" for role in RoleManager.split(roles))
