"""
Shared fixtures for mirroring tests.

Provides an isolated git environment (author identity, HOME with its own
.gitconfig) and helpers to build upstream and mirror repositories in a
temporary directory, so end-to-end tests never touch real remotes.
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from repo_mirror.mirror.config import MirrorSettings

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def run_git(cwd: Path, *args: str) -> str:
    """Run git in cwd and return stripped stdout; fail the test on error."""
    result = subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
    )
    assert result.returncode == 0, f"git {' '.join(args)} failed: {result.stderr}"
    return result.stdout.strip()


def make_bare(path: Path, head: str = "main") -> Path:
    """Create a bare repository that accepts push options."""
    path.mkdir(parents=True)
    run_git(path, "init", "--bare")
    run_git(path, "symbolic-ref", "HEAD", f"refs/heads/{head}")
    run_git(path, "config", "receive.advertisePushOptions", "true")
    return path


def bare_branches(path: Path) -> list:
    output = run_git(path, "for-each-ref", "--format=%(refname:short)", "refs/heads")
    return sorted(output.splitlines())


def tree_files(repo: Path, ref: str) -> list:
    return sorted(run_git(repo, "ls-tree", "-r", "--name-only", ref).splitlines())


@pytest.fixture
def git_env(tmp_path: Path, monkeypatch):
    """Isolated git identity and configuration for the test."""
    home = tmp_path / "home"
    home.mkdir()
    (home / ".gitconfig").write_text(
        "[user]\n"
        "\tname = Mirror Test\n"
        "\temail = mirror@example.com\n"
        "[init]\n"
        "\tdefaultBranch = main\n"
        "[commit]\n"
        "\tgpgsign = false\n"
        "[protocol \"file\"]\n"
        "\tallow = always\n"
    )
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(home / ".gitconfig"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    for var in ("AUTHOR", "COMMITTER"):
        monkeypatch.setenv(f"GIT_{var}_NAME", "Mirror Test")
        monkeypatch.setenv(f"GIT_{var}_EMAIL", "mirror@example.com")
    return home


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Directory the mirroring run starts from (clones land here)."""
    path = tmp_path / "workspace"
    path.mkdir()
    return path


@pytest.fixture
def remotes_dir(tmp_path: Path) -> Path:
    """Stand-in for the internal GitLab group: holds bare mirror repos."""
    path = tmp_path / "remotes"
    path.mkdir()
    return path


@pytest.fixture
def settings(remotes_dir: Path) -> MirrorSettings:
    """Settings pointing the mirror host at remotes_dir."""
    return MirrorSettings(host_url=remotes_dir.as_uri() + "/")


@pytest.fixture
def upstream(tmp_path: Path, git_env) -> Path:
    """A bare upstream repository with one commit on main."""
    bare = make_bare(tmp_path / "upstream" / "project.git")
    seed = tmp_path / "seed"
    seed.mkdir()
    run_git(seed, "init")
    run_git(seed, "symbolic-ref", "HEAD", "refs/heads/main")
    (seed / "README.md").write_text("# project\n")
    run_git(seed, "add", "-A")
    run_git(seed, "commit", "-m", "upstream initial")
    run_git(seed, "remote", "add", "origin", str(bare))
    run_git(seed, "push", "origin", "main")
    return bare


@pytest.fixture
def pipeline_file(tmp_path: Path) -> Path:
    """A caller-supplied pipeline file with a non-standard name."""
    path = tmp_path / "ci" / "my-pipeline.yml"
    path.parent.mkdir()
    path.write_text("stages:\n  - build\nbuild-job:\n  stage: build\n  script:\n    - echo hi\n")
    return path
