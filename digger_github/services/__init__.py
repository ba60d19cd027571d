"""
Services Package

This package contains all service modules of the GitHub App integration:
- github_auth: App JWT and installation token exchange
- github_client: GitHub API client
- client_provider: production and mock client providers
- installations: installation lookup interface
- pr_service: repository-bound PR service and its factory
- repo_clone: ephemeral shallow clones
- pr_sync: PR statuses and summary comment
"""

from digger_github.services.client_provider import (
    GitHubAppClientProvider,
    GitHubClientProvider,
    MockGitHubClientProvider,
)
from digger_github.services.github_auth import GitHubAppAuth, GitHubAuthError, InstallationToken
from digger_github.services.github_client import GitHubAPIError, GitHubClient, GitHubRateLimitError
from digger_github.services.installations import (
    AppNotFoundError,
    InMemoryInstallationStore,
    InstallationNotFoundError,
    InstallationStore,
    NotFoundError,
)
from digger_github.services.pr_service import PRService, get_github_service
from digger_github.services.pr_sync import (
    CommentPublishError,
    StatusUpdateError,
    add_initial_comment_jobs,
    build_initial_comment,
    replace_project_block,
    set_pr_status_for_jobs,
    update_project_comment,
)
from digger_github.services.repo_clone import CloneError, clone_repo_and_do_action


__all__ = [
    "GitHubAppClientProvider",
    "GitHubClientProvider",
    "MockGitHubClientProvider",
    "GitHubAppAuth",
    "GitHubAuthError",
    "InstallationToken",
    "GitHubAPIError",
    "GitHubClient",
    "GitHubRateLimitError",
    "AppNotFoundError",
    "InMemoryInstallationStore",
    "InstallationNotFoundError",
    "InstallationStore",
    "NotFoundError",
    "PRService",
    "get_github_service",
    "CommentPublishError",
    "StatusUpdateError",
    "add_initial_comment_jobs",
    "build_initial_comment",
    "replace_project_block",
    "set_pr_status_for_jobs",
    "update_project_comment",
    "CloneError",
    "clone_repo_and_do_action",
]
