"""
CLI mirror command — mirror one repository into the internal GitLab.

Usage:
    repo-mirror [ PATH ] [ -b BRANCH ] [ -m MESSAGE ] [ -t TOKEN_NAME:TOKEN ] [ -p PIPELINE ]

PATH is one of:
    1) the URL of a remote git repository (cloned locally first)
    2) a local directory that is a git repository
    3) a local directory that is not a git repository (converted into one)

PATH defaults to the current directory.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import click

from ..mirror.git_ops import mask_url
from ..mirror.manager import MirrorProcedure, MirrorRequest
from ..validation import (
    ConfigurationError,
    MirrorError,
    MirrorPreconditionError,
    validate_auth,
    validate_option_value,
)

logger = logging.getLogger(__name__)

USAGE = (
    "Usage: repo-mirror [ PATH ] [ -b BRANCH ] [ -m MESSAGE ] "
    "[ -t TOKEN_NAME:TOKEN ] [ -p PIPELINE ]"
)


def mask_secret(value: str, show_chars: int = 4) -> str:
    """Mask a secret value, showing only first and last few chars."""
    if not value:
        return ""
    if len(value) <= show_chars * 2:
        return "****"
    return f"{value[:show_chars]}...{value[-show_chars:]}"


def _option_value(ctx: click.Context, param: click.Parameter, value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    try:
        return validate_option_value(value, param.opts[0])
    except ValueError as e:
        raise click.BadParameter(str(e), ctx=ctx, param=param)


def _auth_value(ctx: click.Context, param: click.Parameter, value: Optional[str]) -> Optional[str]:
    value = _option_value(ctx, param, value)
    if value is None:
        return value
    try:
        return validate_auth(value)
    except ValueError as e:
        raise click.BadParameter(str(e), ctx=ctx, param=param)


def _pipeline_value(ctx: click.Context, param: click.Parameter, value: Optional[str]) -> Optional[Path]:
    value = _option_value(ctx, param, value)
    if value is None:
        return None
    return Path(value).expanduser().resolve()


@click.command("mirror", context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("path", required=False, default=".")
@click.option("-b", "--branch", default="main", callback=_option_value,
              help="Branch name for a directory that is not yet a git repository")
@click.option("-m", "--message", default="initial revision", callback=_option_value,
              help="Commit message for a directory that is not yet a git repository")
@click.option("-t", "--token", "auth", default=None, callback=_auth_value,
              help="TOKEN_NAME:TOKEN used to authenticate with the mirror host")
@click.option("-p", "--pipeline", default=None, callback=_pipeline_value,
              help="Pipeline file added as .gitlab-ci.yml on the secondary branch")
@click.pass_context
def mirror(
    ctx: click.Context,
    path: str,
    branch: str,
    message: str,
    auth: Optional[str],
    pipeline: Optional[Path],
) -> None:
    """Mirror PATH into the internal GitLab instance."""
    logger.info(f"branch   '{branch}'")
    logger.info(f"message  '{message}'")
    logger.info(f"token    '{mask_secret(auth or '')}'")
    logger.info(f"pipeline '{pipeline or ''}'")
    logger.info(f"path     '{mask_url(path)}'")

    request = MirrorRequest(
        source=path,
        branch=branch,
        message=message,
        auth=auth,
        pipeline=pipeline,
    )

    try:
        result = MirrorProcedure.from_env(request).run()
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        ctx.exit(1)
    except MirrorPreconditionError as e:
        logger.error(str(e))
        click.echo(USAGE, err=True)
        ctx.exit(e.exit_code)
    except MirrorError as e:
        logger.error(str(e), extra={"returncode": e.exit_code})
        ctx.exit(e.exit_code)

    summary = result.to_dict()
    click.secho(f"✅ Mirrored {summary['work_dir']}", fg="green")
    click.echo(f"  Source:    {summary['kind']}")
    click.echo(f"  Remote:    {summary['remote']} → {summary['mirror_url']}")
    click.echo(f"  Primary:   {summary['primary_branch']}")
    click.echo(f"  Secondary: {summary['secondary_branch']}"
               + (" (with pipeline)" if summary["pipeline_committed"] else ""))
