"""
Repository Clone Executor

Clones one branch of a repository into a temporary workspace, runs an
action against the checkout, and removes the workspace afterwards.

Design Decisions:
- Shallow (depth 1), single-branch clones via GitPython
- Installation tokens reach git as an http.extraHeader set through the
  GIT_CONFIG_* environment, never on the command line or in .git/config
- Tokens are masked in every error message and log line
- The workspace is a TemporaryDirectory, so it is removed on every exit path
"""

import base64
import tempfile
from typing import Callable, Dict, Optional, TypeVar

from git import Repo
from git.exc import GitError

from digger_github.config import get_settings
from digger_github.logging_config import get_logger, redact_value

logger = get_logger(__name__)

T = TypeVar("T")

WORKSPACE_PREFIX = "repo"


class CloneError(Exception):
    """Raised when a repository cannot be cloned."""
    pass


def auth_header(token: str, username: Optional[str] = None) -> str:
    """
    Build the basic auth header git sends with an installation token.

    GitHub ignores the username when the password is an installation token,
    but it must not be empty.
    """
    username = username or get_settings().git_username
    credentials = base64.b64encode(f"{username}:{token}".encode()).decode()
    return f"Authorization: Basic {credentials}"


def clone_env(token: str) -> Dict[str, str]:
    """Environment for the git subprocess; requires git 2.31+ for GIT_CONFIG_COUNT."""
    env = {"GIT_TERMINAL_PROMPT": "0"}
    if token:
        env.update({
            "GIT_CONFIG_COUNT": "1",
            "GIT_CONFIG_KEY_0": "http.extraHeader",
            "GIT_CONFIG_VALUE_0": auth_header(token),
        })
    return env


def _mask(message: str, token: str) -> str:
    if token:
        message = message.replace(token, "***")
    return redact_value(message)


def clone_repo_and_do_action(
    repo_url: str,
    branch: str,
    token: str,
    action: Callable[[str], T],
    base_dir: Optional[str] = None,
) -> T:
    """
    Shallow-clone a branch and run an action against the checkout.

    Args:
        repo_url: Repository URL to clone
        branch: Branch to check out
        token: Installation token; empty for anonymous clones
        action: Called with the workspace path once the clone succeeds
        base_dir: Parent directory for the workspace (defaults to settings,
            then the system temp location)

    Returns:
        Whatever the action returns

    Raises:
        CloneError: If git fails to clone the branch
        OSError: If the workspace directory cannot be created
    """
    parent = base_dir or get_settings().workspace_dir

    with tempfile.TemporaryDirectory(
        prefix=WORKSPACE_PREFIX,
        dir=parent,
        ignore_cleanup_errors=True,
    ) as workspace:
        logger.info(
            "Cloning repository",
            repo_url=redact_value(repo_url),
            branch=branch,
            workspace=workspace
        )

        try:
            clone = Repo.clone_from(
                repo_url,
                workspace,
                env=clone_env(token),
                depth=1,
                single_branch=True,
                branch=branch,
            )
        except GitError as e:
            message = _mask(str(e), token)
            logger.error(
                "Failed to clone repository",
                repo_url=redact_value(repo_url),
                branch=branch,
                error=message
            )
            raise CloneError(f"git clone of {redact_value(repo_url)}@{branch} failed: {message}") from None

        try:
            return action(workspace)
        finally:
            clone.close()
