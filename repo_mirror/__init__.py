"""
repo-mirror — Mirror external repositories into an internal GitLab instance.
"""

__version__ = "0.1.0"
