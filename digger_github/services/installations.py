"""
Installation Lookup

The persistence of installation and App records belongs to the embedding
service. This module defines the lookup interface it must provide, the
not-found errors, and an in-memory store for tests and local wiring.
"""

from typing import Dict, Iterable, Optional, Protocol, Tuple

from digger_github.models import GitHubApp, Installation


class NotFoundError(Exception):
    """A required record does not exist."""
    pass


class InstallationNotFoundError(NotFoundError):
    def __init__(self, installation_id: int, repo_full_name: str):
        super().__init__(
            f"installation not found: id={installation_id} repo={repo_full_name}"
        )
        self.installation_id = installation_id
        self.repo_full_name = repo_full_name


class AppNotFoundError(NotFoundError):
    def __init__(self, github_app_id: int):
        super().__init__(f"app not found: id={github_app_id}")
        self.github_app_id = github_app_id


class InstallationStore(Protocol):
    """Read-only lookups over installation and App records."""

    def get_installation_by_id_and_repo(
        self, installation_id: int, repo_full_name: str
    ) -> Optional[Installation]:
        ...

    def get_app(self, github_app_id: int) -> Optional[GitHubApp]:
        ...


class InMemoryInstallationStore:
    """InstallationStore kept in process memory."""

    def __init__(
        self,
        installations: Iterable[Installation] = (),
        apps: Iterable[GitHubApp] = (),
    ):
        self._installations: Dict[Tuple[int, str], Installation] = {}
        self._apps: Dict[int, GitHubApp] = {}
        for installation in installations:
            self.add_installation(installation)
        for app in apps:
            self.add_app(app)

    def add_installation(self, installation: Installation) -> None:
        key = (installation.github_installation_id, installation.repo_full_name)
        self._installations[key] = installation

    def add_app(self, app: GitHubApp) -> None:
        self._apps[app.github_app_id] = app

    def get_installation_by_id_and_repo(
        self, installation_id: int, repo_full_name: str
    ) -> Optional[Installation]:
        return self._installations.get((installation_id, repo_full_name))

    def get_app(self, github_app_id: int) -> Optional[GitHubApp]:
        return self._apps.get(github_app_id)
