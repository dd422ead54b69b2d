"""
The version of shaderpass. Releases use the number below. When running from
a git checkout, the number of commits since the last release tag and the
commit hash are added, so that bug reports can be traced to a commit.
"""

import logging
import subprocess
from pathlib import Path


# Bump before each release; setup.py reads this line.
__version__ = "0.3.0"

logger = logging.getLogger("shaderpass")

repo_dir = Path(__file__).parents[1]
if not repo_dir.joinpath(".git").is_dir():
    repo_dir = None


def describe_checkout():
    """Get ``(tag, commits_since_tag, labels)`` for the git checkout.

    Returns None if git is not available or the checkout cannot be described.
    """
    command = ["git", "describe", "--long", "--always", "--tags", "--dirty"]
    try:
        p = subprocess.run(command, cwd=repo_dir, capture_output=True)
    except OSError as err:
        logger.warning(f"Could not run git to get the shaderpass version: {err}")
        return None
    if p.returncode:
        stderr = p.stderr.decode(errors="ignore").strip()
        logger.warning(f"Could not get the shaderpass version from git: {stderr}")
        return None

    parts = p.stdout.decode(errors="ignore").strip().lstrip("v").split("-")
    if len(parts) <= 2:
        # An untagged repo: only the hash, and maybe 'dirty'
        return None, None, parts
    tag, commits, *labels = parts
    return tag, commits, labels


def get_version():
    """Get the version string, with git info for dev installs."""
    if not repo_dir:
        return __version__
    info = describe_checkout()
    if info is None:
        return __version__ + "+unknown"

    tag, commits, labels = info
    if tag and tag != __version__:
        logger.warning(
            f"The shaderpass version from git ({tag}) does not match {__version__}."
        )
    version = tag or __version__
    if commits and commits != "0":
        version += f".post{commits}"
    if labels:
        version += "+" + ".".join(labels)
    return version


__version__ = get_version()
version_info = tuple(
    int(i) if i.isnumeric() else i for i in __version__.split("+")[0].split(".")
)
