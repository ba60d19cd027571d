"""
Data Models Module

Pydantic models shared by the GitHub App integration.

Design Decisions:
- Installation and App records are immutable lookups owned by the caller's store
- Jobs are read-only inputs; this package never decides which commands run
- Private key material is never part of any model
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enums
# =============================================================================

class CommitState(str, Enum):
    """GitHub commit status states."""
    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"
    ERROR = "error"


class DiggerCommand(str, Enum):
    """Commands that have a PR status context."""
    PLAN = "digger plan"
    APPLY = "digger apply"

    @property
    def short_name(self) -> str:
        """Suffix used in the status context, e.g. "plan"."""
        return self.value.split(" ", 1)[1]

    @classmethod
    def from_command(cls, command: str) -> Optional["DiggerCommand"]:
        """Return the matching command, or None for anything unrecognized."""
        try:
            return cls(command)
        except ValueError:
            return None


# =============================================================================
# Installation Records
# =============================================================================

class Installation(BaseModel):
    """
    A GitHub App installation bound to one repository.

    Attributes:
        github_app_id: ID of the App this installation belongs to
        github_installation_id: Installation ID used for the token exchange
        repo_full_name: Repository in "owner/name" form
    """
    model_config = ConfigDict(frozen=True)

    github_app_id: int
    github_installation_id: int
    repo_full_name: str


class GitHubApp(BaseModel):
    """GitHub App registration. Only its existence matters here."""
    model_config = ConfigDict(frozen=True)

    github_app_id: int
    name: Optional[str] = None


# =============================================================================
# Jobs
# =============================================================================

class Job(BaseModel):
    """
    Planned work for one project.

    Commands are kept in the order they will run.
    """
    model_config = ConfigDict(frozen=True)

    project_name: str = Field(min_length=1)
    commands: List[str] = Field(default_factory=list)

    def status_contexts(self) -> List[str]:
        """Status contexts for recognized commands, in command order."""
        contexts = []
        for command in self.commands:
            digger_command = DiggerCommand.from_command(command)
            if digger_command is not None:
                contexts.append(f"{self.project_name}/{digger_command.short_name}")
        return contexts
