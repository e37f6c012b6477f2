#!/usr/bin/env python3
"""
src/aws_installer/user_data.py

Assemble the boot-time user-data script handed to a new EC2 instance.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import requests

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"
INSTALLER_TEMPLATE = "bootstrap-aws-installer"
AWSCLI_TEMPLATE = "bootstrap-awscli"
INLINE_MARKER = "AWS="
GITHUB_KEYS_URL = "https://github.com/{user}.keys"


@dataclass
class BootstrapVars:
    """Variables written into the user-data header."""

    server: str
    hostname: str
    full_roles: str
    repo_url: str
    branch: str = "main"

    def header_lines(self) -> List[str]:
        return [
            f"SERVER={self.server}",
            f"HOSTNAME={self.hostname}",
            f"FULL_ROLES={self.full_roles}",
            f"REPO_URL={self.repo_url}",
            f"BRANCH={self.branch}",
        ]


class UserDataBuilder:
    """Renders the bootstrap template with the header and inlined helpers."""

    def __init__(self, template_dir: Path = TEMPLATE_DIR, timeout: int = 10) -> None:
        self.template_dir = template_dir
        self.timeout = timeout

    def _read(self, name: str) -> str:
        return (self.template_dir / name).read_text()

    def render_installer(self) -> str:
        """
        Return the installer template with the awscli helper placed after
        the ``AWS=`` line, the way ``sed '/^AWS=/ r helper'`` would.
        """
        helper = self._read(AWSCLI_TEMPLATE)
        if not helper.endswith("\n"):
            helper += "\n"

        out: List[str] = []
        for line in self._read(INSTALLER_TEMPLATE).splitlines(keepends=True):
            out.append(line)
            if line.startswith(INLINE_MARKER):
                if not line.endswith("\n"):
                    out.append("\n")
                out.append(helper)
        return "".join(out)

    def fetch_debug_keys(self, username: str) -> List[str]:
        """
        Fetch a GitHub user's public SSH keys.

        Raises:
            requests.HTTPError: If GitHub rejects the request
            ValueError: If the user has no keys
        """
        url = GITHUB_KEYS_URL.format(user=username)
        logger.debug(f"Fetching SSH keys from {url}")
        response = requests.get(url, timeout=self.timeout)
        response.raise_for_status()
        keys = [line.strip() for line in response.text.splitlines() if line.strip()]
        if not keys:
            raise ValueError(f"No SSH keys found for GitHub user {username}")
        return keys

    @staticmethod
    def debug_key_block(keys: List[str]) -> str:
        """Shell snippet that authorizes ``keys`` for root and /etc/skel."""
        key_text = "\n".join(keys)
        return (
            "# Debug access; /etc/skel carries the keys to the zulip user\n"
            "for home in /root /etc/skel; do\n"
            '    mkdir -p "$home/.ssh"\n'
            f'    cat >>"$home/.ssh/authorized_keys" <<\'EOF\'\n{key_text}\nEOF\n'
            '    chmod 700 "$home/.ssh"\n'
            '    chmod 600 "$home/.ssh/authorized_keys"\n'
            "done\n"
        )

    def build(self, variables: BootstrapVars, debug_key: Optional[str] = None) -> str:
        """Return the complete user-data script."""
        script = "\n".join(["#!/bin/bash", *variables.header_lines()]) + "\n"
        if debug_key:
            script += self.debug_key_block(self.fetch_debug_keys(debug_key))
        return script + self.render_installer()
