"""
Pipeline Template — Render the four-stage app generator pipeline.

The pipeline runs on the mirror's secondary branch:

    build   → generate the application package and its image
    test    → exercise the generated package
    push    → push the image to the artifact registry
    deploy  → register the application with the downstream registry

Credentials are never written into the document. Jobs reference CI
variables that the CI host supplies from its variable store
(see REQUIRED_ENV).
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Mapping

import yaml

from .models import RESERVED_KEYS, STAGES, PipelineDocument, PipelineJob

DEFAULT_IMAGE = "docker:24"
DEFAULT_GENERATOR = "app-generator"

REQUIRED_ENV = [
    "REGISTRY_USER",
    "REGISTRY_PASSWORD",
    "REGISTRY_URL",
    "DEPLOY_TOKEN",
]


def default_pipeline(
    image: str = DEFAULT_IMAGE,
    generator: str = DEFAULT_GENERATOR,
) -> PipelineDocument:
    """Build the default build/test/push/deploy pipeline."""
    workdir = "$CI_PROJECT_DIR/.app_gen"
    jobs = {
        "build-package": PipelineJob(
            stage="build",
            image=image,
            script=[
                f"{generator} init $CI_PROJECT_DIR {workdir}",
                f"{generator} -w {workdir} build_docker",
            ],
        ),
        "test-package": PipelineJob(
            stage="test",
            image=image,
            script=[
                f"{generator} -w {workdir} build_cwl",
                f"{generator} -w {workdir} test",
            ],
            needs=["build-package"],
        ),
        "push-image": PipelineJob(
            stage="push",
            image=image,
            script=[
                'echo "$REGISTRY_PASSWORD" | docker login -u "$REGISTRY_USER" '
                '--password-stdin "$REGISTRY_URL"',
                f"{generator} -w {workdir} push_docker --registry $REGISTRY_URL",
            ],
            needs=["test-package"],
        ),
        "deploy-app": PipelineJob(
            stage="deploy",
            image=image,
            script=[
                f"{generator} -w {workdir} push_app_registry --token $DEPLOY_TOKEN",
            ],
            needs=["push-image"],
        ),
    }
    return PipelineDocument(
        stages=list(STAGES),
        variables={"DOCKER_DRIVER": "overlay2"},
        jobs=jobs,
    )


def render_pipeline(doc: PipelineDocument) -> str:
    """Serialize a pipeline to .gitlab-ci.yml text, jobs in stage order."""
    data: dict = {"stages": list(doc.stages)}
    if doc.variables:
        data["variables"] = dict(doc.variables)
    for stage in doc.stages:
        for name in doc.jobs_in_stage(stage):
            data[name] = doc.jobs[name].model_dump(exclude_defaults=True)
    return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)


def load_pipeline(path: Path) -> PipelineDocument:
    """Load and validate a .gitlab-ci.yml document."""
    with path.open("r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}")

    if not isinstance(data, dict):
        raise ValueError(f"Pipeline file must contain a mapping: {path}")

    jobs = {
        name: body
        for name, body in data.items()
        if name not in RESERVED_KEYS and not str(name).startswith(".")
    }
    variables = {str(k): str(v) for k, v in (data.get("variables") or {}).items()}
    return PipelineDocument(
        stages=data.get("stages") or list(STAGES),
        variables=variables,
        jobs=jobs,
    )


def missing_pipeline_env(environ: Mapping[str, str]) -> List[str]:
    """Names of required CI variables that are unset or empty."""
    return [name for name in REQUIRED_ENV if not environ.get(name)]
