"""Install configuration: environment overrides plus the per-user INI file."""

import configparser
import logging
import os
import re
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

AWS_KEYS = (
    "zone_id",
    "security_groups",
    "instance_type",
    "iam_profile",
    "availability_zone",
    "disk_size",
)


class ConfigError(ValueError):
    """Raised when the install configuration is incomplete or invalid."""


class MissingConfigFileError(FileNotFoundError):
    """Raised when the INI configuration file does not exist."""


class Config:
    """Loads process-level settings from environment variables."""

    load_dotenv()

    CONFIG_PATH = os.getenv("INSTALL_SERVER_CONFIG", "~/.zulip-install-server.conf")
    CHECKOUT = os.getenv("INSTALL_SERVER_CHECKOUT", "")

    @classmethod
    def config_path(cls) -> Path:
        return Path(os.path.expanduser(cls.CONFIG_PATH))

    @classmethod
    def checkout_dir(cls) -> Path:
        """Repository checkout holding the puppet manifests; defaults to the cwd."""
        return Path(cls.CHECKOUT).expanduser() if cls.CHECKOUT else Path.cwd()


class AWSSettings(BaseModel):
    """Merged ``[aws]`` / ``[aws-<roles>]`` settings for one launch."""

    zone_id: str
    security_groups: List[str]
    instance_type: str
    iam_profile: str
    availability_zone: str
    disk_size: int = Field(gt=0, description="Root volume size in GiB")
    region: Optional[str] = None

    @field_validator("security_groups", mode="before")
    @classmethod
    def split_security_groups(cls, value: object) -> object:
        if isinstance(value, str):
            return [group for group in re.split(r"[,\s]+", value) if group]
        return value

    @field_validator("security_groups")
    @classmethod
    def require_security_groups(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("at least one security group is required")
        return value


class InstallConfig:
    """Reads the INI install configuration file."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path if path is not None else Config.config_path()
        if not self.path.is_file():
            raise MissingConfigFileError(f"No configuration file found in {self.path}")

        self.parser = configparser.ConfigParser(interpolation=None)
        with open(self.path) as f:
            self.parser.read_file(f)
        logger.debug(f"Loaded {self.path} with sections {self.parser.sections()}")

    @property
    def repo_url(self) -> str:
        try:
            return self.parser.get("repo", "repo_url")
        except (configparser.NoSectionError, configparser.NoOptionError):
            raise ConfigError(f"Missing repo_url in [repo] of {self.path}")

    def _lookup(self, roles: str, key: str) -> Optional[str]:
        """Return ``key`` from ``[aws-<roles>]``, falling back to ``[aws]``."""
        for section in (f"aws-{roles}", "aws"):
            if self.parser.has_option(section, key):
                return self.parser.get(section, key)
        return None

    def aws_settings(self, roles: str) -> AWSSettings:
        """
        Merge the AWS sections for the given role string.

        Args:
            roles: The exact ``--roles`` value, used to pick ``[aws-<roles>]``

        Returns:
            Validated settings

        Raises:
            ConfigError: If a required key is missing or has a bad value
        """
        values: Dict[str, str] = {}
        for key in AWS_KEYS:
            value = self._lookup(roles, key)
            if value is None:
                raise ConfigError(f"Missing {key} in [aws-{roles}] or [aws] of {self.path}")
            values[key] = value

        region = self._lookup(roles, "region")
        if region:
            values["region"] = region

        try:
            return AWSSettings(**values)
        except ValidationError as e:
            raise ConfigError(f"Invalid AWS settings in {self.path}: {e}") from e
