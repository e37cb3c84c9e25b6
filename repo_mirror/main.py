"""
repo-mirror — CLI Entry Points

Usage:
    repo-mirror [ PATH ] [ -b BRANCH ] [ -m MESSAGE ] [ -t TOKEN_NAME:TOKEN ] [ -p PIPELINE ]
    repo-mirror-pipeline [--output FILE] [--check-env] [--validate FILE]

Exit codes:
    0  success
    1  usage or precondition error
    N  exit code of a failing git command
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import click
from dotenv import load_dotenv

from .cli.mirror import USAGE, mirror
from .cli.pipeline import generate_pipeline
from .logging_config import setup_logging


def _load_env() -> None:
    """Load .env from the current directory, if present."""
    env_file = Path.cwd() / ".env"
    if env_file.exists():
        load_dotenv(env_file)


def _invoke(command: click.Command, argv: Optional[List[str]], prog_name: str, usage: str) -> int:
    _load_env()
    setup_logging()

    try:
        rv = command.main(args=argv, prog_name=prog_name, standalone_mode=False)
    except click.UsageError as e:
        click.echo(f"ERROR:  {e.format_message()}", err=True)
        click.echo(usage, err=True)
        return 1
    except click.ClickException as e:
        e.show()
        return 1
    except click.Abort:
        click.echo("Aborted!", err=True)
        return 1
    return rv or 0


def main(argv: Optional[List[str]] = None) -> int:
    return _invoke(mirror, argv, "repo-mirror", USAGE)


def pipeline_main(argv: Optional[List[str]] = None) -> int:
    return _invoke(
        generate_pipeline,
        argv,
        "repo-mirror-pipeline",
        "Usage: repo-mirror-pipeline [ -o FILE ] [ --image IMAGE ] [ --generator CMD ] "
        "[ --validate FILE ] [ --check-env ]",
    )


if __name__ == "__main__":
    raise SystemExit(main())
