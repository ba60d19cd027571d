"""
GitHub Client Providers

A provider turns an (app id, installation id) pair into an authenticated
GitHubClient plus the raw installation token. The token is returned on its
own because git operations authenticate with it directly.

Two variants satisfy the same protocol:
- GitHubAppClientProvider performs the real JWT-to-token exchange
- MockGitHubClientProvider routes traffic through an injected httpx transport
"""

from typing import Optional, Protocol, Tuple

import httpx

from digger_github.config import Settings, get_settings
from digger_github.logging_config import get_logger
from digger_github.services.github_auth import GitHubAppAuth
from digger_github.services.github_client import GitHubClient

logger = get_logger(__name__)


class GitHubClientProvider(Protocol):
    """Anything that can produce a client for an App installation."""

    def get(self, github_app_id: int, installation_id: int) -> Tuple[GitHubClient, str]:
        ...


class GitHubAppClientProvider:
    """Production provider: exchanges the App private key for an installation token."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport

    def get(self, github_app_id: int, installation_id: int) -> Tuple[GitHubClient, str]:
        """
        Create a client authenticated as the installation.

        Raises:
            GitHubAuthError: If the key cannot be read or the exchange fails
        """
        auth = GitHubAppAuth(settings=self.settings, transport=self._transport)
        installation_token = auth.get_installation_token(github_app_id, installation_id)

        client = GitHubClient(
            token=installation_token.token,
            base_url=self.settings.github_api_url,
            transport=self._transport,
            token_expires_at=installation_token.expires_at,
        )
        return client, installation_token.token


class MockGitHubClientProvider:
    """
    Test provider backed by an injected transport.

    Usage:
        provider = MockGitHubClientProvider(httpx.MockTransport(handler))
        client, token = provider.get(1, 2)
    """

    token = "token"

    def __init__(self, transport: httpx.BaseTransport, base_url: str = "https://api.github.com"):
        self.transport = transport
        self.base_url = base_url

    def get(self, github_app_id: int, installation_id: int) -> Tuple[GitHubClient, str]:
        logger.debug(
            "Creating mocked GitHub client",
            github_app_id=github_app_id,
            installation_id=installation_id
        )
        client = GitHubClient(token=self.token, base_url=self.base_url, transport=self.transport)
        return client, self.token
