"""
Mirror Configuration — Parse REPO_MIRROR_* environment variables.

Minimal required config: none. The defaults mirror into the Unity group of
MCP GitLab:

    REPO_MIRROR_HOST_URL=https://gitlab.mcp.nasa.gov/unity/
    REPO_MIRROR_REMOTE=mcp
    REPO_MIRROR_BRANCH=mcp_main

Optional:

    REPO_MIRROR_PULL_MODE=ff-only|merge|rebase
    REPO_MIRROR_PROBE_TIMEOUT=10
    REPO_MIRROR_TOKEN=user:token
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from ..validation import ConfigurationError, validate_auth

logger = logging.getLogger(__name__)

DEFAULT_HOST_URL = "https://gitlab.mcp.nasa.gov/unity/"
DEFAULT_REMOTE = "mcp"
DEFAULT_SECONDARY_BRANCH = "mcp_main"
DEFAULT_PROBE_TIMEOUT = 10.0

ORIGIN_REMOTE = "origin"
PIPELINE_FILENAME = ".gitlab-ci.yml"
PIPELINE_COMMIT_MESSAGE = "added pipeline yml file"
DISABLED_PUSH_URL = "DISABLED"

PULL_MODES = ("ff-only", "merge", "rebase")


@dataclass(frozen=True)
class MirrorSettings:
    """Settings shared by every step of a mirroring run."""

    host_url: str = DEFAULT_HOST_URL
    remote_name: str = DEFAULT_REMOTE
    secondary_branch: str = DEFAULT_SECONDARY_BRANCH
    pull_mode: str = "ff-only"
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    token: Optional[str] = None

    @property
    def pull_args(self) -> list:
        """Extra `git pull` arguments for the configured pull mode."""
        return {
            "ff-only": ["--ff-only"],
            "merge": ["--no-rebase"],
            "rebase": ["--rebase"],
        }[self.pull_mode]

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "MirrorSettings":
        """Parse mirror configuration from environment variables."""
        env = os.environ if environ is None else environ

        host_url = env.get("REPO_MIRROR_HOST_URL", "").strip() or DEFAULT_HOST_URL
        if "://" not in host_url:
            raise ConfigurationError(
                f"REPO_MIRROR_HOST_URL must be an absolute URL, got '{host_url}'"
            )

        pull_mode = env.get("REPO_MIRROR_PULL_MODE", "ff-only").strip().lower()
        if pull_mode not in PULL_MODES:
            raise ConfigurationError(
                f"REPO_MIRROR_PULL_MODE must be one of {', '.join(PULL_MODES)}, "
                f"got '{pull_mode}'"
            )

        raw_timeout = env.get("REPO_MIRROR_PROBE_TIMEOUT", "").strip()
        try:
            probe_timeout = float(raw_timeout) if raw_timeout else DEFAULT_PROBE_TIMEOUT
        except ValueError:
            raise ConfigurationError(
                f"REPO_MIRROR_PROBE_TIMEOUT must be a number, got '{raw_timeout}'"
            )
        if probe_timeout <= 0:
            raise ConfigurationError("REPO_MIRROR_PROBE_TIMEOUT must be positive")

        token = env.get("REPO_MIRROR_TOKEN", "").strip() or None
        if token is not None:
            try:
                validate_auth(token)
            except ValueError as e:
                raise ConfigurationError(f"REPO_MIRROR_TOKEN: {e}")

        settings = cls(
            host_url=host_url,
            remote_name=env.get("REPO_MIRROR_REMOTE", "").strip() or DEFAULT_REMOTE,
            secondary_branch=(
                env.get("REPO_MIRROR_BRANCH", "").strip() or DEFAULT_SECONDARY_BRANCH
            ),
            pull_mode=pull_mode,
            probe_timeout=probe_timeout,
            token=token,
        )

        if settings.remote_name == ORIGIN_REMOTE:
            raise ConfigurationError(
                f"REPO_MIRROR_REMOTE cannot be '{ORIGIN_REMOTE}'"
            )

        logger.debug(
            f"Loaded mirror settings: host={settings.host_url} "
            f"remote={settings.remote_name} branch={settings.secondary_branch}"
        )
        return settings
