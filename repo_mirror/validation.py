"""
Validation — Error types and precondition checks.

Every failure of a mirroring run is one of:

- MirrorPreconditionError: a required condition does not hold (missing
  directory, missing pipeline file, detached HEAD). Exit code 1.
- GitCommandError: a git invocation returned non-zero. The exit code is
  the one git returned.
- ConfigurationError: the environment configuration is invalid.

## Usage

    from repo_mirror.validation import MirrorError, validate_pipeline_file

    try:
        validate_pipeline_file(path)
    except MirrorError as e:
        print(f"Aborted: {e}")
        raise SystemExit(e.exit_code)
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional


class MirrorError(Exception):
    """Base class for errors that abort a mirroring run."""

    exit_code: int = 1

    def __init__(self, message: str, exit_code: Optional[int] = None):
        self.message = message
        if exit_code is not None:
            self.exit_code = exit_code
        super().__init__(message)


class MirrorPreconditionError(MirrorError):
    """Raised when a required condition for mirroring does not hold."""
    pass


class GitCommandError(MirrorError):
    """Raised when a git invocation exits non-zero."""

    def __init__(self, cmd: List[str], returncode: int, stderr: str = ""):
        self.cmd = list(cmd)
        self.returncode = returncode
        self.stderr = stderr.strip()
        message = f"Command '{' '.join(self.cmd)}' failed with exit code {returncode}"
        if self.stderr:
            message += f": {self.stderr}"
        # A signal-killed process reports a negative code
        super().__init__(message, exit_code=returncode if returncode > 0 else 1)


class ConfigurationError(Exception):
    """Raised when configuration is missing or invalid."""
    pass


def validate_option_value(value: str, option: str) -> str:
    """Reject option values that look like another flag."""
    if value.startswith("-"):
        raise ValueError(f"{option}: option argument cannot start with '-'")
    return value


def validate_auth(value: str) -> str:
    """Validate a USER:TOKEN credential pair."""
    user, sep, token = value.partition(":")
    if not sep or not user or not token:
        raise ValueError("auth token must be of the form USER:TOKEN")
    return value


def validate_pipeline_file(path: Path) -> Path:
    """Ensure the pipeline file exists and is a regular file."""
    if not path.exists():
        raise MirrorPreconditionError(f"Pipeline file does not exist: {path}")
    if not path.is_file():
        raise MirrorPreconditionError(f"Pipeline file is not a regular file: {path}")
    return path


def validate_directory(path: Path) -> Path:
    """Ensure the source path is an existing directory."""
    if not path.is_dir():
        raise MirrorPreconditionError(f"'{path}' must be an existing directory")
    return path
