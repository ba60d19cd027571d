"""
Test Configuration

Pytest configuration and fixtures for the test suite.
"""

import json
from pathlib import Path
from typing import Dict, Generator, List, Optional

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from git import Actor, Repo

from digger_github.config import get_settings
from digger_github.services.client_provider import MockGitHubClientProvider
from digger_github.services.pr_service import PRService

HEAD_SHA = "abc123def456"


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch) -> Generator[None, None, None]:
    """Isolate every test from the host environment and the settings cache."""
    for var in (
        "GITHUB_APP_PRIVATE_KEY",
        "GITHUB_APP_PRIVATE_KEY_PATH",
        "GITHUB_API_URL",
        "WORKSPACE_DIR",
        "GIT_USERNAME",
    ):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_key) -> str:
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


@pytest.fixture(scope="session")
def public_key_pem(rsa_key) -> str:
    return rsa_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()


class FakeGitHub:
    """
    Minimal stand-in for the GitHub REST API.

    Records every request and can fail the Nth status write or the
    comment publish, answer status writes as rate limited, or return
    bodies missing the fields callers rely on.
    """

    head_sha = HEAD_SHA

    def __init__(
        self,
        fail_status_on: Optional[int] = None,
        fail_comment: bool = False,
        rate_limited: bool = False,
        malformed: bool = False,
    ):
        self.fail_status_on = fail_status_on
        self.fail_comment = fail_comment
        self.rate_limited = rate_limited
        self.malformed = malformed
        self.requests: List[httpx.Request] = []
        self.statuses: List[Dict] = []
        self.comments: List[Dict] = []
        self.edits: List[Dict] = []

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    @property
    def status_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if "/statuses/" in r.url.path]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "GET" and "/pulls/" in path:
            if self.malformed:
                return httpx.Response(200, json={"number": 1})
            number = int(path.rsplit("/", 1)[1])
            return httpx.Response(200, json={"number": number, "head": {"sha": HEAD_SHA}})

        if request.method == "POST" and "/statuses/" in path:
            if self.rate_limited:
                return httpx.Response(
                    403,
                    headers={"x-ratelimit-remaining": "0", "x-ratelimit-reset": "0"},
                    json={"message": "API rate limit exceeded"},
                )
            if self.fail_status_on == len(self.status_requests):
                return httpx.Response(500, json={"message": "Server Error"})
            payload = json.loads(request.content)
            self.statuses.append(payload)
            return httpx.Response(201, json={"id": len(self.statuses), **payload})

        if request.method == "POST" and path.endswith("/comments"):
            if self.fail_comment:
                return httpx.Response(422, json={"message": "Validation Failed"})
            payload = json.loads(request.content)
            self.comments.append(payload)
            if self.malformed:
                return httpx.Response(201, json={"body": payload["body"]})
            return httpx.Response(201, json={"id": 9000 + len(self.comments), **payload})

        if request.method == "GET" and path.endswith("/comments"):
            return httpx.Response(200, json=[{"id": 9001 + i, **c} for i, c in enumerate(self.comments)])

        if request.method == "PATCH" and "/issues/comments/" in path:
            payload = json.loads(request.content)
            self.edits.append(payload)
            return httpx.Response(200, json={"id": int(path.rsplit("/", 1)[1]), **payload})

        return httpx.Response(404, json={"message": "Not Found"})


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def github_factory():
    """FakeGitHub class, for tests that need failure injection."""
    return FakeGitHub


@pytest.fixture
def make_pr_service():
    """Build a PRService whose traffic goes to the given FakeGitHub."""
    services = []

    def _make(github: FakeGitHub) -> PRService:
        client, _ = MockGitHubClientProvider(github.transport).get(1, 2)
        service = PRService(client=client, owner="owner", repo_name="repo")
        services.append(service)
        return service

    yield _make
    for service in services:
        service.close()


@pytest.fixture
def pr_service(fake_github: FakeGitHub, make_pr_service) -> PRService:
    return make_pr_service(fake_github)


@pytest.fixture
def local_repo(tmp_path: Path) -> Path:
    """Repository with one tracked file on main and two commits of history."""
    repo_dir = tmp_path / "origin"
    repo = Repo.init(repo_dir, initial_branch="main")
    actor = Actor("Test User", "test@example.com")

    tracked = repo_dir / "main.tf"
    tracked.write_text('resource "null_resource" "a" {}\n')
    repo.index.add(["main.tf"])
    repo.index.commit("Initial commit", author=actor, committer=actor)

    tracked.write_text('resource "null_resource" "b" {}\n')
    repo.index.add(["main.tf"])
    repo.index.commit("Rename resource", author=actor, committer=actor)

    repo.close()
    return repo_dir
