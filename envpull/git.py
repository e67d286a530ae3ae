"""
Project name detection from the git remote.

The project name scopes every remote object: ``<project>/<env>.env``.
"""

import logging
import re
from typing import Optional

from .errors import ProjectUndetectableError
from .shell import CommandRunner

logger = logging.getLogger(__name__)

# git@github.com:owner/name
_SSH_SHORTHAND = re.compile(r'^[^@/\s]+@[^:/\s]+:(.+)/([^/]+)$')
# ssh://git@github.com/owner/name
_SSH_URL = re.compile(r'^ssh://[^/]+/(.+)/([^/]+)$')
# https://github.com/owner/name
_HTTP_URL = re.compile(r'^https?://[^/]+/(.+)/([^/]+)$')


def parse_project_from_url(url: str) -> str:
    """
    Extract the project name from a git remote URL.

    Supported forms:
    - git@github.com:owner/name.git
    - ssh://git@github.com/owner/name.git
    - https://github.com/owner/name(.git)

    Args:
        url: The remote URL

    Returns:
        The last path segment without a ``.git`` suffix
    """
    cleaned = url.strip()
    if cleaned.endswith('.git'):
        cleaned = cleaned[:-len('.git')]

    for pattern in (_SSH_SHORTHAND, _SSH_URL, _HTTP_URL):
        match = pattern.match(cleaned)
        if match:
            return match.group(2)

    raise ProjectUndetectableError(f"unable to parse project name from URL: {url}")


def get_remote_url(runner: Optional[CommandRunner] = None, remote: str = "origin") -> str:
    runner = runner or CommandRunner()
    stdout, status = runner.run_and_capture(["git", "remote", "get-url", remote])
    if status != 0:
        raise ProjectUndetectableError(
            f"failed to detect project name: failed to get git remote {remote} (exit status {status})"
        )
    return stdout.strip()


def get_project_name(runner: Optional[CommandRunner] = None) -> str:
    """
    Derive the project name from ``git remote get-url origin``.

    Args:
        runner: Command runner to use (defaults to a real subprocess runner)

    Returns:
        The project name
    """
    url = get_remote_url(runner)
    project = parse_project_from_url(url)
    logger.debug("Detected project %s from %s", project, url)
    return project


def is_git_repo(runner: Optional[CommandRunner] = None) -> bool:
    runner = runner or CommandRunner()
    _, status = runner.run_and_capture(["git", "rev-parse", "--git-dir"])
    return status == 0
