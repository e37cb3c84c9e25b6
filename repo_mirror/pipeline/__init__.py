"""
Pipeline — The CI pipeline document pushed on the mirror's secondary branch.
"""

from .models import PipelineDocument, PipelineJob
from .template import (
    REQUIRED_ENV,
    default_pipeline,
    load_pipeline,
    missing_pipeline_env,
    render_pipeline,
)

__all__ = [
    "PipelineDocument",
    "PipelineJob",
    "REQUIRED_ENV",
    "default_pipeline",
    "load_pipeline",
    "missing_pipeline_env",
    "render_pipeline",
]
