"""
Mirror — Classify a source repository and mirror it into the internal GitLab.

This module provides source classification, git remote management,
and the step-by-step mirroring procedure.
"""
