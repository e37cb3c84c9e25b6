"""
Pipeline Models — Pydantic schemas for the GitLab CI pipeline document.

Only the subset of .gitlab-ci.yml the mirror pipeline uses is modelled:
global stages and variables, and jobs with a stage, an image, and an
ordered script.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

STAGES = ["build", "test", "push", "deploy"]

# Keys at the top level of .gitlab-ci.yml that are not jobs
RESERVED_KEYS = {"stages", "variables", "default", "image", "include", "workflow", "services"}


class PipelineJob(BaseModel):
    """A single CI job."""

    stage: str
    image: Optional[str] = None
    script: List[str] = Field(min_length=1)
    needs: List[str] = Field(default_factory=list)


class PipelineDocument(BaseModel):
    """A whole pipeline: ordered stages plus the jobs running in them."""

    stages: List[str] = Field(default_factory=lambda: list(STAGES))
    variables: Dict[str, str] = Field(default_factory=dict)
    jobs: Dict[str, PipelineJob] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_stages(self) -> "PipelineDocument":
        for name, job in self.jobs.items():
            if job.stage not in self.stages:
                raise ValueError(f"Job '{name}' uses undeclared stage '{job.stage}'")
            for dep in job.needs:
                if dep not in self.jobs:
                    raise ValueError(f"Job '{name}' needs unknown job '{dep}'")
        reserved = RESERVED_KEYS.intersection(self.jobs)
        if reserved:
            raise ValueError(f"Reserved keys used as job names: {sorted(reserved)}")
        return self

    def jobs_in_stage(self, stage: str) -> List[str]:
        """Job names of a stage, in document order."""
        return [name for name, job in self.jobs.items() if job.stage == stage]
