"""
Tests for GitHub App Authentication and Client Providers
"""

from datetime import datetime, timedelta, timezone

import httpx
import jwt
import pytest

from digger_github.services.client_provider import (
    GitHubAppClientProvider,
    MockGitHubClientProvider,
)
from digger_github.services.github_auth import (
    GitHubAppAuth,
    GitHubAuthError,
    InstallationToken,
    token_expired,
)
from digger_github.services.github_client import GitHubClient
from digger_github.services.pr_service import PRService


def token_exchange_handler(public_key_pem: str, seen: list):
    """Fake /app/installations/{id}/access_tokens endpoint that checks the JWT."""

    def handle(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path.endswith("/access_tokens"):
            app_jwt = request.headers["Authorization"].removeprefix("Bearer ")
            claims = jwt.decode(app_jwt, public_key_pem, algorithms=["RS256"])
            assert claims["iss"] == "42"
            return httpx.Response(
                201,
                json={"token": "ghs_installationtoken", "expires_at": "2099-01-01T00:00:00Z"},
            )
        assert request.headers["Authorization"] == "token ghs_installationtoken"
        return httpx.Response(200, json={"number": 1, "head": {"sha": "abc"}})

    return handle


class TestGitHubAppAuth:
    """Tests for the JWT and token exchange."""

    def test_generate_jwt_claims(self, monkeypatch, private_key_pem, public_key_pem):
        """The JWT is RS256-signed with the app id as issuer."""
        monkeypatch.setenv("GITHUB_APP_PRIVATE_KEY", private_key_pem)

        encoded = GitHubAppAuth().generate_jwt(42)
        claims = jwt.decode(encoded, public_key_pem, algorithms=["RS256"])

        assert claims["iss"] == "42"
        assert claims["exp"] - claims["iat"] <= 660
        assert jwt.get_unverified_header(encoded)["alg"] == "RS256"

    def test_missing_private_key(self):
        """No configured key is a credential exchange failure."""
        with pytest.raises(GitHubAuthError, match="private key"):
            GitHubAppAuth().generate_jwt(42)

    def test_invalid_private_key(self, monkeypatch):
        """A key that is not PEM cannot sign."""
        monkeypatch.setenv("GITHUB_APP_PRIVATE_KEY", "not-a-key")

        with pytest.raises(GitHubAuthError, match="JWT"):
            GitHubAppAuth().generate_jwt(42)

    def test_exchange_returns_token(self, monkeypatch, private_key_pem, public_key_pem):
        """A successful exchange yields the token and its expiry."""
        monkeypatch.setenv("GITHUB_APP_PRIVATE_KEY", private_key_pem)
        seen = []
        auth = GitHubAppAuth(transport=httpx.MockTransport(token_exchange_handler(public_key_pem, seen)))

        result = auth.get_installation_token(42, 99)

        assert result.token == "ghs_installationtoken"
        assert result.expires_at == datetime(2099, 1, 1, tzinfo=timezone.utc)
        assert seen[0].method == "POST"
        assert seen[0].url.path == "/app/installations/99/access_tokens"

    def test_exchange_http_error(self, monkeypatch, private_key_pem):
        """A rejected exchange raises GitHubAuthError with the status code."""
        monkeypatch.setenv("GITHUB_APP_PRIVATE_KEY", private_key_pem)
        transport = httpx.MockTransport(
            lambda request: httpx.Response(401, json={"message": "Bad credentials"})
        )

        with pytest.raises(GitHubAuthError, match="401"):
            GitHubAppAuth(transport=transport).get_installation_token(42, 99)

    def test_exchange_malformed_response(self, monkeypatch, private_key_pem):
        """A response without a token is rejected."""
        monkeypatch.setenv("GITHUB_APP_PRIVATE_KEY", private_key_pem)
        transport = httpx.MockTransport(lambda request: httpx.Response(201, json={}))

        with pytest.raises(GitHubAuthError, match="Malformed"):
            GitHubAppAuth(transport=transport).get_installation_token(42, 99)

    def test_exchange_connection_error(self, monkeypatch, private_key_pem):
        """Transport failures are wrapped."""
        monkeypatch.setenv("GITHUB_APP_PRIVATE_KEY", private_key_pem)

        def fail(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(GitHubAuthError, match="request failed"):
            GitHubAppAuth(transport=httpx.MockTransport(fail)).get_installation_token(42, 99)


class TestInstallationToken:
    """Tests for token expiry."""

    def test_not_expired(self):
        token = InstallationToken("t", datetime.now(timezone.utc) + timedelta(hours=1))
        assert not token.is_expired

    def test_expired_within_buffer(self):
        token = InstallationToken("t", datetime.now(timezone.utc) + timedelta(minutes=2))
        assert token.is_expired

    def test_unknown_expiry(self):
        assert not InstallationToken("t").is_expired

    def test_token_and_session_share_expiry_rule(self):
        """InstallationToken and the client session agree at every offset."""
        for minutes in (-1, 2, 6, 60):
            expires_at = datetime.now(timezone.utc) + timedelta(minutes=minutes)
            client = GitHubClient(token="t", token_expires_at=expires_at)
            try:
                assert InstallationToken("t", expires_at).is_expired == token_expired(expires_at)
                assert PRService(client, "o", "r").is_expired == token_expired(expires_at)
            finally:
                client.close()
        assert not token_expired(None)


class TestClientProviders:
    """Both providers return a usable client and a non-empty token."""

    def test_app_provider(self, monkeypatch, private_key_pem, public_key_pem):
        """The production provider exchanges a token and authenticates the client with it."""
        monkeypatch.setenv("GITHUB_APP_PRIVATE_KEY", private_key_pem)
        seen = []
        provider = GitHubAppClientProvider(
            transport=httpx.MockTransport(token_exchange_handler(public_key_pem, seen))
        )

        client, token = provider.get(42, 99)

        with client:
            assert isinstance(client, GitHubClient)
            assert token == "ghs_installationtoken"
            assert client.token_expires_at == datetime(2099, 1, 1, tzinfo=timezone.utc)
            assert client.get_pull_request("owner", "repo", 1)["head"]["sha"] == "abc"

    def test_app_provider_fresh_token_each_call(self, monkeypatch, private_key_pem, public_key_pem):
        """Nothing is cached between calls."""
        monkeypatch.setenv("GITHUB_APP_PRIVATE_KEY", private_key_pem)
        seen = []
        provider = GitHubAppClientProvider(
            transport=httpx.MockTransport(token_exchange_handler(public_key_pem, seen))
        )

        provider.get(42, 99)[0].close()
        provider.get(42, 99)[0].close()

        assert len([r for r in seen if r.url.path.endswith("/access_tokens")]) == 2

    def test_app_provider_without_key(self):
        """Missing configuration yields an error, never a half-built client."""
        with pytest.raises(GitHubAuthError):
            GitHubAppClientProvider().get(42, 99)

    def test_mock_provider(self, fake_github):
        """The mock provider routes requests through the injected transport."""
        client, token = MockGitHubClientProvider(fake_github.transport).get(1, 2)

        with client:
            pr = client.get_pull_request("owner", "repo", 5)

        assert token == "token"
        assert pr["number"] == 5
        assert fake_github.requests[0].headers["Authorization"] == "token token"
