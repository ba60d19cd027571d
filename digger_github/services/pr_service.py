"""
Pull Request Service

PRService binds an authenticated GitHubClient to one repository and exposes
the PR-level operations the synchronizer uses. get_github_service resolves an
installation, checks its App exists, and builds a fresh PRService.

Design Decisions:
- A PRService is created per request and never cached
- Lookups fail fast; nothing is retried
"""

from typing import Any, Dict, List, Tuple

from digger_github.logging_config import get_logger
from digger_github.services.client_provider import GitHubClientProvider
from digger_github.services.github_auth import GitHubAuthError, token_expired
from digger_github.services.github_client import GitHubClient
from digger_github.services.installations import (
    AppNotFoundError,
    InstallationNotFoundError,
    InstallationStore,
)

logger = get_logger(__name__)


class PRService:
    """
    Repository-bound view over a GitHub installation client.

    Usage:
        with PRService(client, "owner", "repo") as service:
            service.set_status(42, "pending", "infra/plan")
    """

    def __init__(self, client: GitHubClient, owner: str, repo_name: str):
        self.client = client
        self.owner = owner
        self.repo_name = repo_name

    @property
    def repo_full_name(self) -> str:
        return f"{self.owner}/{self.repo_name}"

    @property
    def is_expired(self) -> bool:
        """True once the installation token is within 5 minutes of expiry."""
        return token_expired(self.client.token_expires_at)

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self.client.close()

    def __enter__(self) -> "PRService":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def get_pull_request(self, pr_number: int) -> Dict[str, Any]:
        return self.client.get_pull_request(self.owner, self.repo_name, pr_number)

    def set_status(self, pr_number: int, state: str, context: str) -> Dict[str, Any]:
        """Set a commit status on the head commit of a pull request."""
        pr = self.get_pull_request(pr_number)
        # KeyError/TypeError here means GitHub returned an unexpected PR shape
        head_sha = pr["head"]["sha"]
        return self.client.create_status(
            self.owner,
            self.repo_name,
            head_sha,
            state=state,
            context=context,
            description=context,
        )

    def publish_comment(self, pr_number: int, body: str) -> Dict[str, Any]:
        return self.client.create_issue_comment(self.owner, self.repo_name, pr_number, body)

    def edit_comment(self, comment_id: int, body: str) -> Dict[str, Any]:
        return self.client.edit_issue_comment(self.owner, self.repo_name, comment_id, body)

    def get_comments(self, pr_number: int) -> List[Dict[str, Any]]:
        return self.client.list_issue_comments(self.owner, self.repo_name, pr_number)


def get_github_service(
    provider: GitHubClientProvider,
    store: InstallationStore,
    installation_id: int,
    repo_full_name: str,
    repo_owner: str,
    repo_name: str,
) -> Tuple[PRService, str]:
    """
    Build a PRService for a repository through its App installation.

    Args:
        provider: Client provider used for the token exchange
        store: Installation and App lookups
        installation_id: GitHub App installation ID
        repo_full_name: Repository in "owner/name" form, used for the lookup
        repo_owner: Owner the service is bound to
        repo_name: Repository name the service is bound to

    Returns:
        Tuple of the PRService and the raw installation token

    Raises:
        InstallationNotFoundError: No installation for this id and repository
        AppNotFoundError: The installation's App is not registered
        GitHubAuthError: The client could not be created
    """
    installation = store.get_installation_by_id_and_repo(installation_id, repo_full_name)
    if installation is None:
        logger.error(
            "Error getting installation",
            installation_id=installation_id,
            repo=repo_full_name
        )
        raise InstallationNotFoundError(installation_id, repo_full_name)

    if store.get_app(installation.github_app_id) is None:
        logger.error("Error getting app", github_app_id=installation.github_app_id)
        raise AppNotFoundError(installation.github_app_id)

    try:
        client, token = provider.get(
            installation.github_app_id,
            installation.github_installation_id
        )
    except GitHubAuthError as e:
        logger.error(
            "Error creating github app client",
            installation_id=installation_id,
            error=str(e)
        )
        raise GitHubAuthError(f"Error creating github app client: {e}") from e

    logger.info(
        "Created GitHub service",
        installation_id=installation_id,
        repo=repo_full_name
    )
    return PRService(client=client, owner=repo_owner, repo_name=repo_name), token
