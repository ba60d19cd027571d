"""
GitHub API Client Module

A synchronous client for the parts of the GitHub REST API the PR
synchronizer needs: pull requests, commit statuses and issue comments.

Design Decisions:
- Use httpx for HTTP requests; the transport is injectable for tests
- The client is bound to a single installation token and never refreshes it
- Errors are raised immediately, exhausted rate limits included; nothing is retried
- Support pagination for comment listings
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from digger_github.config import get_settings
from digger_github.logging_config import get_logger

logger = get_logger(__name__)


class GitHubAPIError(Exception):
    """Custom exception for GitHub API errors."""
    def __init__(self, message: str, status_code: int = None, response_body: str = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class GitHubRateLimitError(GitHubAPIError):
    """Exception raised when GitHub rate limit is exceeded."""
    pass


class GitHubClient:
    """
    GitHub API client authenticated as one App installation.

    Usage:
        client = GitHubClient(token="ghs_...")
        pr = client.get_pull_request("owner", "repo", 42)
    """

    def __init__(
        self,
        token: str,
        base_url: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: Optional[float] = None,
        token_expires_at: Optional[datetime] = None,
    ):
        """
        Initialize the GitHub client.

        Args:
            token: Installation access token
            base_url: API base URL, defaults to the configured GitHub API URL
            transport: Optional httpx transport, used by tests
            timeout: Request timeout in seconds
            token_expires_at: Expiry reported by the token exchange, if known
        """
        self.settings = get_settings()
        self.token_expires_at = token_expires_at
        self._http = httpx.Client(
            base_url=base_url or self.settings.github_api_url,
            transport=transport,
            timeout=timeout or self.settings.github_request_timeout,
            headers={
                "Authorization": f"token {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _check_rate_limit(self, response: httpx.Response) -> None:
        """
        Inspect rate limit headers.

        Logs a warning when running low and raises GitHubRateLimitError
        when the limit is exhausted.
        """
        remaining = response.headers.get("x-ratelimit-remaining")
        if remaining is None:
            return

        remaining_int = int(remaining)
        if remaining_int < 100:
            logger.warning(
                "GitHub API rate limit running low",
                remaining=remaining_int,
                reset_at=response.headers.get("x-ratelimit-reset")
            )

        if remaining_int == 0 and response.status_code in (403, 429):
            raise GitHubRateLimitError(
                "Rate limit exceeded",
                status_code=response.status_code,
                response_body=response.text
            )

    def _request(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        """
        Make an authenticated request to the GitHub API.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint (without base URL)
            **kwargs: Additional arguments to pass to httpx

        Returns:
            httpx.Response object

        Raises:
            GitHubAPIError: If the request fails
            GitHubRateLimitError: If GitHub reports an exhausted rate limit
        """
        try:
            response = self._http.request(method, endpoint, **kwargs)
        except httpx.HTTPError as e:
            logger.error("GitHub API request failed", endpoint=endpoint, error=str(e))
            raise GitHubAPIError(f"GitHub API request failed: {e}") from e

        self._check_rate_limit(response)

        if response.status_code >= 400:
            error_body = response.text
            logger.error(
                "GitHub API error",
                status_code=response.status_code,
                endpoint=endpoint,
                error=error_body[:500]  # Limit error length
            )
            raise GitHubAPIError(
                f"GitHub API error: {response.status_code}",
                status_code=response.status_code,
                response_body=error_body
            )

        return response

    # =========================================================================
    # Pull Requests
    # =========================================================================
    def get_pull_request(self, owner: str, repo: str, pr_number: int) -> Dict[str, Any]:
        """Fetch a pull request."""
        response = self._request("GET", f"/repos/{owner}/{repo}/pulls/{pr_number}")
        return response.json()

    # =========================================================================
    # Commit Statuses
    # =========================================================================
    def create_status(
        self,
        owner: str,
        repo: str,
        sha: str,
        state: str,
        context: str,
        description: Optional[str] = None,
        target_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Create a commit status.

        Args:
            owner: Repository owner
            repo: Repository name
            sha: Commit SHA the status is attached to
            state: One of pending, success, failure, error
            context: Status context label, e.g. "project/plan"
            description: Short description shown next to the status
            target_url: Link shown on the status

        Returns:
            Created status as returned by GitHub
        """
        payload: Dict[str, Any] = {"state": state, "context": context}
        if description is not None:
            payload["description"] = description
        if target_url is not None:
            payload["target_url"] = target_url

        response = self._request("POST", f"/repos/{owner}/{repo}/statuses/{sha}", json=payload)
        return response.json()

    # =========================================================================
    # Issue Comments
    # =========================================================================
    def create_issue_comment(
        self,
        owner: str,
        repo: str,
        issue_number: int,
        body: str
    ) -> Dict[str, Any]:
        """Post a comment on an issue or pull request."""
        response = self._request(
            "POST",
            f"/repos/{owner}/{repo}/issues/{issue_number}/comments",
            json={"body": body}
        )
        return response.json()

    def edit_issue_comment(
        self,
        owner: str,
        repo: str,
        comment_id: int,
        body: str
    ) -> Dict[str, Any]:
        """Replace the body of an existing comment."""
        response = self._request(
            "PATCH",
            f"/repos/{owner}/{repo}/issues/comments/{comment_id}",
            json={"body": body}
        )
        return response.json()

    def list_issue_comments(
        self,
        owner: str,
        repo: str,
        issue_number: int
    ) -> List[Dict[str, Any]]:
        """
        List all comments on an issue or pull request.

        Handles pagination for long discussions.
        """
        all_comments: List[Dict[str, Any]] = []
        page = 1
        per_page = 100

        while True:
            response = self._request(
                "GET",
                f"/repos/{owner}/{repo}/issues/{issue_number}/comments",
                params={"page": page, "per_page": per_page}
            )
            comments = response.json()
            if not comments:
                break

            all_comments.extend(comments)

            if len(comments) < per_page:
                break

            page += 1

        return all_comments
