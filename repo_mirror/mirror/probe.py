"""
Source Probes — Decide what kind of source a mirroring run starts from.

Two independent checks are made on the source string:

- is it fetchable over HTTP(S)?
- does `git ls-remote` accept it?

Only a source passing BOTH is a remote repository. A reachable web page
that is not a git repo fails the second check; a local git repo passes
`git ls-remote` but fails the first.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from urllib.parse import urlsplit

import requests

from ..validation import validate_directory
from . import git_ops

logger = logging.getLogger(__name__)


class SourceKind(str, Enum):
    REMOTE = "remote"
    LOCAL_GIT = "local-git"
    PLAIN_DIR = "plain-dir"


def is_http_reachable(source: str, timeout: float) -> bool:
    """True if source is an http(s) URL answering with a non-error status."""
    if urlsplit(source).scheme not in ("http", "https"):
        return False

    try:
        resp = requests.head(source, allow_redirects=True, timeout=timeout)
        if resp.status_code == 405:
            # Some servers refuse HEAD; fall back to GET without reading the body
            resp = requests.get(source, allow_redirects=True, timeout=timeout, stream=True)
            resp.close()
    except requests.RequestException as e:
        logger.debug(f"[probe] HTTP check failed for {git_ops.mask_url(source)}: {e}")
        return False

    return resp.status_code < 400


def is_git_remote(source: str, cwd: Path, timeout: float) -> bool:
    """True if `git ls-remote` can list refs of source."""
    result = git_ops.git(
        cwd,
        "ls-remote",
        source,
        check=False,
        timeout=timeout,
        env={"GIT_TERMINAL_PROMPT": "0"},
    )
    return result.returncode == 0


def classify_source(source: str, base_dir: Path, timeout: float) -> SourceKind:
    """
    Classify source as a remote repository, a local git working tree,
    or a plain local directory.

    Raises MirrorPreconditionError if source is not remote and not an
    existing directory.
    """
    shown = git_ops.mask_url(source)
    url_ok = is_http_reachable(source, timeout)
    if url_ok:
        logger.info(f"[probe] Verified URL '{shown}'")
    else:
        logger.info(f"[probe] Cannot be verified as a URL: '{shown}'")

    git_ok = is_git_remote(source, base_dir, timeout)

    if url_ok and git_ok:
        logger.info(f"[probe] Verified a remote git repository '{shown}'")
        return SourceKind.REMOTE

    logger.info(f"[probe] Not a remote git repository: '{shown}'")
    path = validate_directory(base_dir / source)

    if git_ops.is_work_tree(path):
        return SourceKind.LOCAL_GIT
    return SourceKind.PLAIN_DIR


def repo_name_from_url(url: str) -> str:
    """Directory name a clone of url gets: last path segment minus .git."""
    path = urlsplit(url).path.rstrip("/")
    name = path.rsplit("/", 1)[-1]
    if name.endswith(".git"):
        name = name[:-4]
    return name
