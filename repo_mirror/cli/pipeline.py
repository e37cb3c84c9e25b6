"""
CLI pipeline command — render or check the app generator pipeline.

Usage:
    repo-mirror-pipeline [--output FILE] [--image IMAGE] [--generator CMD]
    repo-mirror-pipeline --validate FILE
    repo-mirror-pipeline --check-env
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import click

from ..pipeline import (
    REQUIRED_ENV,
    default_pipeline,
    load_pipeline,
    missing_pipeline_env,
    render_pipeline,
)
from ..pipeline.template import DEFAULT_GENERATOR, DEFAULT_IMAGE


@click.command("generate-pipeline", context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path),
              help="Output file (default: stdout)")
@click.option("--image", default=DEFAULT_IMAGE, show_default=True, help="Image for every job")
@click.option("--generator", default=DEFAULT_GENERATOR, show_default=True,
              help="App generator command")
@click.option("--validate", "validate_file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="Validate an existing pipeline file instead of generating one")
@click.option("--check-env", is_flag=True, help="Check the CI variables the pipeline needs")
@click.pass_context
def generate_pipeline(
    ctx: click.Context,
    output: Optional[Path],
    image: str,
    generator: str,
    validate_file: Optional[Path],
    check_env: bool,
) -> None:
    """Generate the build/test/push/deploy pipeline file."""
    if check_env:
        missing = missing_pipeline_env(os.environ)
        for name in REQUIRED_ENV:
            if name in missing:
                click.secho(f"  ✗ {name}", fg="red")
            else:
                click.secho(f"  ✓ {name}", fg="green")
        ctx.exit(1 if missing else 0)

    if validate_file is not None:
        try:
            doc = load_pipeline(validate_file)
        except ValueError as e:
            # pydantic's ValidationError is a ValueError
            click.secho(f"❌ {validate_file}: {e}", fg="red", err=True)
            ctx.exit(1)
        click.secho(f"✅ {validate_file}: {len(doc.jobs)} jobs in {len(doc.stages)} stages", fg="green")
        return

    text = render_pipeline(default_pipeline(image=image, generator=generator))

    if output:
        output.write_text(text, encoding="utf-8")
        click.secho(f"✅ Pipeline written to {output}", fg="green")
        click.echo()
        click.echo("Next steps:")
        click.echo(f"  1. Pass it to repo-mirror with -p {output}")
        click.echo(f"  2. Define {', '.join(REQUIRED_ENV)} as CI/CD variables")
    else:
        click.echo(text, nl=False)
