"""
Mirror Manager — Mirror one repository into the internal GitLab.

This is the main entry point for mirroring. A run takes a source (remote
URL, local git repository, or plain directory) and ends with a local
working tree that:

1. has a mirror remote pointing at the internal host,
2. has pushed its primary branch, unmodified, to that remote,
3. has pushed the secondary branch, carrying the pipeline file if one
   was given, to that remote.

## Usage

    from repo_mirror.mirror.manager import MirrorProcedure, MirrorRequest

    request = MirrorRequest(source="https://github.com/org/repo.git")
    result = MirrorProcedure.from_env(request).run()

Any failing step raises and aborts the run. Nothing is rolled back; a
partially mirrored repository may be left behind.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

from ..validation import MirrorPreconditionError, validate_pipeline_file
from . import git_ops
from .config import (
    ORIGIN_REMOTE,
    PIPELINE_COMMIT_MESSAGE,
    PIPELINE_FILENAME,
    MirrorSettings,
)
from .probe import SourceKind, classify_source, repo_name_from_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MirrorRequest:
    """Invocation parameters of a mirroring run."""

    source: str = "."
    branch: str = "main"
    message: str = "initial revision"
    auth: Optional[str] = None  # USER:TOKEN
    pipeline: Optional[Path] = None


@dataclass
class MirrorContext:
    """State threaded through every step of one run."""

    request: MirrorRequest
    base_dir: Path
    work_dir: Optional[Path] = None
    kind: Optional[SourceKind] = None
    just_cloned: bool = False
    branch: Optional[str] = None
    mirror_url: Optional[str] = None
    pulled: bool = False
    pipeline_committed: bool = False

    def set_kind(self, kind: SourceKind) -> None:
        if self.kind is not None:
            raise RuntimeError("Source classification is already set")
        self.kind = kind


@dataclass
class MirrorResult:
    """Summary of a finished run."""

    kind: SourceKind
    work_dir: Path
    primary_branch: str
    secondary_branch: str
    remote: str
    mirror_url: str
    pulled: bool = False
    pipeline_committed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "work_dir": str(self.work_dir),
            "primary_branch": self.primary_branch,
            "secondary_branch": self.secondary_branch,
            "remote": self.remote,
            "mirror_url": git_ops.mask_url(self.mirror_url),
            "pulled": self.pulled,
            "pipeline_committed": self.pipeline_committed,
        }


class MirrorProcedure:
    """
    Runs the mirroring steps in order.

    Each step reads and updates the MirrorContext; the first failure
    propagates out of run().
    """

    def __init__(
        self,
        request: MirrorRequest,
        settings: Optional[MirrorSettings] = None,
        base_dir: Optional[Path] = None,
    ):
        self.settings = settings or MirrorSettings()
        if request.auth is None and self.settings.token:
            request = replace(request, auth=self.settings.token)
        self.ctx = MirrorContext(
            request=request,
            base_dir=(base_dir or Path.cwd()).resolve(),
        )

    @classmethod
    def from_env(cls, request: MirrorRequest, base_dir: Optional[Path] = None) -> "MirrorProcedure":
        """Create a procedure with settings read from the environment."""
        return cls(request, MirrorSettings.from_env(), base_dir)

    def run(self) -> MirrorResult:
        self.preflight()
        self.classify()
        self.materialize()
        self.resolve_branch()
        self.link_remote()
        self.push_primary()
        self.post_process()

        ctx = self.ctx
        return MirrorResult(
            kind=ctx.kind,
            work_dir=ctx.work_dir,
            primary_branch=ctx.branch,
            secondary_branch=self.settings.secondary_branch,
            remote=self.settings.remote_name,
            mirror_url=ctx.mirror_url,
            pulled=ctx.pulled,
            pipeline_committed=ctx.pipeline_committed,
        )

    # ─── Steps ──────────────────────────────────────────────

    def preflight(self) -> None:
        """Check external tools and the pipeline file before touching any repo."""
        if shutil.which("git") is None:
            raise MirrorPreconditionError("git executable not found on PATH")

        lfs = git_ops.git(self.ctx.base_dir, "lfs", "version", check=False)
        if lfs.returncode != 0:
            logger.warning("[mirror] git-lfs is not available; large files will not be handled")

        if self.ctx.request.pipeline is not None:
            validate_pipeline_file(self.ctx.request.pipeline)

    def classify(self) -> SourceKind:
        ctx = self.ctx
        kind = classify_source(ctx.request.source, ctx.base_dir, self.settings.probe_timeout)
        ctx.set_kind(kind)
        logger.info(f"[mirror] Source '{git_ops.mask_url(ctx.request.source)}' classified as {kind.value}")
        return kind

    def materialize(self) -> Path:
        """Produce a local git working tree for the classified source."""
        ctx = self.ctx

        if ctx.kind == SourceKind.REMOTE:
            self._clone()
        else:
            ctx.work_dir = (ctx.base_dir / ctx.request.source).resolve()

        if ctx.kind == SourceKind.PLAIN_DIR:
            self._init_repository()
        elif not ctx.just_cloned:
            self._update_from_origin()

        if not git_ops.is_work_tree(ctx.work_dir):
            raise MirrorPreconditionError(
                f"The working directory must be inside a git repository: {ctx.work_dir}"
            )
        return ctx.work_dir

    def resolve_branch(self) -> str:
        ctx = self.ctx
        branch = git_ops.current_branch(ctx.work_dir)
        if not branch:
            raise MirrorPreconditionError(
                "Could not obtain current branch name (detached HEAD?)"
            )
        if branch == self.settings.secondary_branch:
            raise MirrorPreconditionError(
                f"The current branch '{branch}' is the secondary branch; "
                f"choose another branch or set REPO_MIRROR_BRANCH"
            )
        ctx.branch = branch
        logger.info(f"[mirror] Current branch name is '{branch}'")
        return branch

    def link_remote(self) -> str:
        """Register the mirror remote unless it already exists."""
        ctx = self.ctx
        name = self.settings.remote_name

        if git_ops.has_remote(ctx.work_dir, name):
            url = git_ops.git_output(ctx.work_dir, "remote", "get-url", name) or ""
            logger.info(f"[mirror] Remote '{name}' already exists")
        else:
            url = git_ops.build_mirror_url(
                self.settings.host_url, ctx.work_dir.name, ctx.request.auth
            )
            logger.info(
                f"[mirror] Remote '{name}' does not exist, adding {git_ops.mask_url(url)}"
            )
            git_ops.add_remote(ctx.work_dir, name, url)

        ctx.mirror_url = url
        return url

    def push_primary(self) -> None:
        """Push the primary branch as is, without triggering CI."""
        ctx = self.ctx
        logger.info(
            f"[mirror] Pushing {self.settings.remote_name}/{ctx.branch} (ci.skip)",
            extra={"step": "push_primary", "remote": self.settings.remote_name, "branch": ctx.branch},
        )
        git_ops.push(ctx.work_dir, self.settings.remote_name, ctx.branch, skip_ci=True)

    def post_process(self) -> None:
        """Build and push the secondary branch, then return to the primary one."""
        ctx = self.ctx
        secondary = self.settings.secondary_branch
        remote = self.settings.remote_name

        # -B resets a secondary branch left over from an earlier run
        git_ops.git(ctx.work_dir, "checkout", "-B", secondary)

        pipeline = ctx.request.pipeline
        if pipeline is None:
            logger.info("[mirror] No pipeline YML file provided")
        else:
            target = ctx.work_dir / PIPELINE_FILENAME
            self._copy_pipeline(pipeline, target)
            git_ops.git(ctx.work_dir, "add", "--", PIPELINE_FILENAME)
            if git_ops.has_staged_changes(ctx.work_dir):
                git_ops.git(ctx.work_dir, "commit", "-m", PIPELINE_COMMIT_MESSAGE)
                ctx.pipeline_committed = True
                logger.info(f"[mirror] Committed {pipeline.name} as {PIPELINE_FILENAME}")
            else:
                logger.info(f"[mirror] {PIPELINE_FILENAME} already up to date on '{secondary}'")

        logger.info(
            f"[mirror] Pushing {remote}/{secondary}",
            extra={"step": "post_process", "remote": remote, "branch": secondary},
        )
        # The secondary branch is rebuilt from the primary on every run
        git_ops.push(ctx.work_dir, remote, secondary, force=True)

        git_ops.git(ctx.work_dir, "checkout", ctx.branch)

    @staticmethod
    def _copy_pipeline(pipeline: Path, target: Path) -> None:
        if pipeline.resolve() == target.resolve():
            logger.info(f"[mirror] {PIPELINE_FILENAME} is already in place")
            return
        try:
            shutil.copyfile(pipeline, target)
        except OSError as e:
            raise MirrorPreconditionError(
                f"Cannot copy pipeline file {pipeline} to {target}: {e}"
            )

    # ─── Materialization helpers ────────────────────────────

    def _clone(self) -> None:
        ctx = self.ctx
        name = repo_name_from_url(ctx.request.source)
        if not name:
            raise MirrorPreconditionError(
                f"Cannot derive a repository name from '{git_ops.mask_url(ctx.request.source)}'"
            )

        target = ctx.base_dir / name
        if target.exists():
            raise MirrorPreconditionError(
                f"Clone target already exists: {target}"
            )

        logger.info(f"[mirror] Cloning '{git_ops.mask_url(ctx.request.source)}' into {target}")
        git_ops.git(ctx.base_dir, "clone", ctx.request.source, str(target))
        git_ops.disable_push(target, ORIGIN_REMOTE)

        ctx.work_dir = target
        ctx.just_cloned = True

    def _update_from_origin(self) -> None:
        """Pull upstream changes into an existing repository from origin."""
        ctx = self.ctx
        logger.info(f"[mirror] Already in a git repository: {ctx.work_dir}")

        if not git_ops.has_remote(ctx.work_dir, ORIGIN_REMOTE):
            logger.warning(f"[mirror] There is no remote named '{ORIGIN_REMOTE}' for updates")
            return

        branch = git_ops.current_branch(ctx.work_dir)
        if not branch:
            raise MirrorPreconditionError(
                "Could not obtain current branch name (detached HEAD?)"
            )

        git_ops.disable_push(ctx.work_dir, ORIGIN_REMOTE)
        logger.info(f"[mirror] Pulling updates from '{ORIGIN_REMOTE}/{branch}'")
        git_ops.pull(ctx.work_dir, ORIGIN_REMOTE, branch, self.settings.pull_args)
        ctx.pulled = True

    def _init_repository(self) -> None:
        """Turn a plain directory into a repository with a single commit."""
        ctx = self.ctx
        request = ctx.request
        logger.info(f"[mirror] Converting to a local git repository: {ctx.work_dir}")

        git_ops.git(ctx.work_dir, "init")
        git_ops.git(ctx.work_dir, "symbolic-ref", "HEAD", f"refs/heads/{request.branch}")
        git_ops.git(ctx.work_dir, "add", "-A")
        git_ops.git(ctx.work_dir, "commit", "-m", request.message)
