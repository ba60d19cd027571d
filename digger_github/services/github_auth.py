"""
GitHub App Authentication Service

This module exchanges GitHub App credentials for installation tokens:
- JWT generation for App authentication
- Installation access token exchange

Design Decisions:
- Use RS256 algorithm for JWT signing (GitHub requirement)
- No token cache: every exchange returns a fresh, short-lived token
- The private key is read from settings on every exchange
"""

import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx
import jwt

from digger_github.config import Settings, get_settings
from digger_github.logging_config import get_logger

logger = get_logger(__name__)

# Tokens this close to expiry are treated as already expired
EXPIRY_BUFFER = timedelta(minutes=5)


def token_expired(expires_at: Optional[datetime]) -> bool:
    """True if a token expiring at expires_at is expired or within the buffer."""
    if expires_at is None:
        return False
    return datetime.now(timezone.utc) >= expires_at - EXPIRY_BUFFER


@dataclass(frozen=True)
class InstallationToken:
    """Installation access token with expiration."""
    token: str
    expires_at: Optional[datetime] = None

    @property
    def is_expired(self) -> bool:
        """Check if token is expired or will expire within 5 minutes."""
        return token_expired(self.expires_at)


class GitHubAuthError(Exception):
    """Raised when the App credentials cannot be turned into a token."""
    pass


class GitHubAppAuth:
    """
    GitHub App credential exchanger.

    Usage:
        auth = GitHubAppAuth()
        installation_token = auth.get_installation_token(app_id, installation_id)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Args:
            settings: Settings to read the private key and API URL from
            transport: Optional httpx transport, used by tests
        """
        self.settings = settings or get_settings()
        self._transport = transport

    def generate_jwt(self, github_app_id: int) -> str:
        """
        Generate a JWT that authenticates as the GitHub App itself.

        Args:
            github_app_id: GitHub App ID used as the token issuer

        Returns:
            Signed JWT string

        Raises:
            GitHubAuthError: If the key is missing or signing fails
        """
        try:
            private_key = self.settings.get_private_key()
        except ValueError as e:
            logger.error("GitHub App private key unavailable", error=str(e))
            raise GitHubAuthError(f"Failed to read GitHub App private key: {e}") from e

        now = int(time.time())
        payload = {
            # Issued 60 seconds in the past for clock drift
            "iat": now - 60,
            "exp": now + self.settings.jwt_expiration_seconds,
            "iss": str(github_app_id),
        }

        try:
            encoded = jwt.encode(payload, private_key, algorithm="RS256")
        except Exception as e:
            logger.error("Failed to generate JWT", github_app_id=github_app_id, error=str(e))
            raise GitHubAuthError(f"Failed to generate JWT: {e}") from e

        logger.debug("Generated GitHub App JWT", github_app_id=github_app_id)
        return encoded

    def get_installation_token(
        self,
        github_app_id: int,
        installation_id: int
    ) -> InstallationToken:
        """
        Exchange an App JWT for an installation access token.

        Args:
            github_app_id: GitHub App ID
            installation_id: GitHub App installation ID

        Returns:
            InstallationToken with the access token and expiration

        Raises:
            GitHubAuthError: If any step of the exchange fails
        """
        app_jwt = self.generate_jwt(github_app_id)

        url = f"{self.settings.github_api_url}/app/installations/{installation_id}/access_tokens"
        headers = {
            "Authorization": f"Bearer {app_jwt}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

        try:
            with httpx.Client(
                transport=self._transport,
                timeout=self.settings.github_request_timeout
            ) as client:
                response = client.post(url, headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            error_body = e.response.text
            logger.error(
                "Failed to get installation token",
                installation_id=installation_id,
                status_code=e.response.status_code,
                error=error_body[:500]
            )
            raise GitHubAuthError(
                f"Failed to get installation token: {e.response.status_code} - {error_body}"
            ) from e
        except httpx.HTTPError as e:
            logger.error(
                "Installation token request failed",
                installation_id=installation_id,
                error=str(e)
            )
            raise GitHubAuthError(f"Installation token request failed: {e}") from e

        try:
            data = response.json()
            token = data["token"]
        except (ValueError, KeyError, TypeError) as e:
            raise GitHubAuthError(f"Malformed installation token response: {e}") from e

        if not token:
            raise GitHubAuthError("GitHub returned an empty installation token")

        expires_at = None
        if data.get("expires_at"):
            expires_at = datetime.fromisoformat(data["expires_at"].replace("Z", "+00:00"))

        logger.info(
            "Obtained installation access token",
            github_app_id=github_app_id,
            installation_id=installation_id,
            expires_at=expires_at.isoformat() if expires_at else None
        )

        return InstallationToken(token=token, expires_at=expires_at)
