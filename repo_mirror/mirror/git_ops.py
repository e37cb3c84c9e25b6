"""
Git Operations — Thin wrappers around the git CLI.

Every call runs synchronously in an explicit working directory. Failures
raise GitCommandError carrying git's exit code; callers never inspect
return codes themselves unless they pass check=False.
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote, urlsplit, urlunsplit

from ..validation import GitCommandError
from .config import DISABLED_PUSH_URL

logger = logging.getLogger(__name__)


def mask_url(url: str) -> str:
    """Hide the password part of a URL's userinfo."""
    parts = urlsplit(url)
    if not parts.password:
        return url
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return urlunsplit(parts._replace(netloc=f"{parts.username}:****@{host}"))


def _masked(cmd: List[str]) -> List[str]:
    return [mask_url(arg) if "://" in arg else arg for arg in cmd]


def git(
    cwd: Path,
    *args: str,
    check: bool = True,
    timeout: Optional[float] = None,
    env: Optional[dict] = None,
) -> subprocess.CompletedProcess:
    """Run a git command in cwd."""
    cmd = ["git"] + list(args)
    masked = _masked(cmd)
    logger.debug(f"[git] ({cwd}) {' '.join(masked)}")

    run_env = None
    if env:
        run_env = dict(os.environ)
        run_env.update(env)

    try:
        result = subprocess.run(
            cmd,
            cwd=str(cwd),
            capture_output=True,
            text=True,
            timeout=timeout,
            env=run_env,
        )
    except subprocess.TimeoutExpired:
        if not check:
            return subprocess.CompletedProcess(cmd, 124, "", "timed out")
        raise GitCommandError(masked, 124, f"timed out after {timeout}s")

    if check and result.returncode != 0:
        raise GitCommandError(
            masked, result.returncode, result.stderr or result.stdout
        )
    return result


def git_output(cwd: Path, *args: str) -> Optional[str]:
    """Run a git command and return stripped stdout, or None on failure."""
    result = git(cwd, *args, check=False)
    if result.returncode != 0:
        return None
    return result.stdout.strip()


def is_work_tree(path: Path) -> bool:
    """True if path is somewhere inside a git working tree."""
    return git_output(path, "rev-parse", "--is-inside-work-tree") == "true"


def list_remotes(repo: Path) -> List[str]:
    output = git_output(repo, "remote") or ""
    return [line.strip() for line in output.splitlines() if line.strip()]


def has_remote(repo: Path, name: str) -> bool:
    return name in list_remotes(repo)


def add_remote(repo: Path, name: str, url: str) -> None:
    git(repo, "remote", "add", name, url)


def disable_push(repo: Path, remote: str) -> None:
    """Point the remote's push URL at a non-URL so pushes to it fail."""
    git(repo, "remote", "set-url", "--push", remote, DISABLED_PUSH_URL)


def current_branch(repo: Path) -> Optional[str]:
    """Name of the checked-out branch; None when HEAD is detached."""
    return git_output(repo, "symbolic-ref", "--short", "-q", "HEAD") or None


def has_staged_changes(repo: Path) -> bool:
    # --quiet exits 1 when the index differs from HEAD
    return git(repo, "diff", "--cached", "--quiet", check=False).returncode != 0


def pull(repo: Path, remote: str, branch: str, extra: Optional[List[str]] = None) -> None:
    git(repo, "pull", *(extra or []), remote, branch)


def push(
    repo: Path,
    remote: str,
    branch: str,
    skip_ci: bool = False,
    force: bool = False,
) -> None:
    cmd = ["push"]
    if skip_ci:
        cmd += ["-o", "ci.skip"]
    if force:
        cmd.append("--force")
    cmd += [remote, branch]
    git(repo, *cmd)


def build_mirror_url(host_url: str, project: str, auth: Optional[str] = None) -> str:
    """
    Build the mirror project URL: <host_url>/<project>.git

    If auth (USER:TOKEN) is given it is embedded as the URL's userinfo.
    """
    base = host_url if host_url.endswith("/") else host_url + "/"
    url = f"{base}{project}.git"
    if not auth:
        return url

    user, _, token = auth.partition(":")
    parts = urlsplit(url)
    userinfo = f"{quote(user, safe='')}:{quote(token, safe='')}"
    return urlunsplit(parts._replace(netloc=f"{userinfo}@{parts.netloc}"))
