"""
Digger GitHub App Integration

Authenticates as a GitHub App installation, clones repository branches into
ephemeral workspaces, and keeps pull request statuses and the summary comment
in sync with per-project plan/apply jobs.
"""

__version__ = "1.0.0"
__author__ = "Digger Team"
