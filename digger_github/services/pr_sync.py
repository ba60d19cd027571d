"""
PR State Synchronizer

Projects a list of jobs onto a pull request:
- a pending commit status per recognized command
- a summary comment with one marked block per project

Each project's block in the comment is wrapped in a pair of HTML comment
markers so a later update can replace exactly that block.
"""

import re
from typing import Iterable, List

from digger_github.logging_config import get_logger
from digger_github.models import CommitState, Job
from digger_github.services.github_client import GitHubAPIError
from digger_github.services.pr_service import PRService

logger = get_logger(__name__)

COMMENT_HEADER = ":arrow_right: The following projects are impacted\n\n"
BLOCK_START = "<!-- PROJECTHOLDER {project} -->"
BLOCK_END = "<!-- PROJECTHOLDEREND {project} -->"


class StatusUpdateError(Exception):
    """A commit status could not be set. Statuses set before it remain."""
    pass


class CommentPublishError(Exception):
    """The summary comment could not be published or edited."""
    pass


def set_pr_status_for_jobs(pr_service: PRService, pr_number: int, jobs: Iterable[Job]) -> None:
    """
    Mark every plan/apply command of every job as pending on the PR.

    Statuses are set in job order, then command order. Unrecognized commands
    are skipped. The first failure stops the loop.

    Raises:
        StatusUpdateError: If GitHub rejects a status write or returns a
            pull request without a head commit
    """
    for job in jobs:
        for context in job.status_contexts():
            try:
                pr_service.set_status(pr_number, CommitState.PENDING.value, context)
            except (GitHubAPIError, KeyError, TypeError) as e:
                logger.error(
                    "Error setting status",
                    repo=pr_service.repo_full_name,
                    pr_number=pr_number,
                    context=context,
                    error=str(e)
                )
                raise StatusUpdateError(f"Error setting pr status {context}: {e}") from e

            logger.debug(
                "Set PR status",
                repo=pr_service.repo_full_name,
                pr_number=pr_number,
                context=context
            )


def render_project_block(project_name: str, content: str) -> str:
    """Wrap a project's text in its start and end markers."""
    return (
        f"{BLOCK_START.format(project=project_name)}\n"
        f"{content}\n"
        f"{BLOCK_END.format(project=project_name)}\n"
    )


def build_initial_comment(jobs: Iterable[Job]) -> str:
    """Comment body listing every job's project as pending."""
    message = COMMENT_HEADER
    for job in jobs:
        message += render_project_block(
            job.project_name,
            f":airplane: {job.project_name} Pending"
        )
    return message


def add_initial_comment_jobs(pr_service: PRService, pr_number: int, jobs: List[Job]) -> int:
    """
    Publish the summary comment for a set of jobs.

    Returns:
        ID of the created comment

    Raises:
        CommentPublishError: If GitHub rejects the comment or its response
            carries no comment id
    """
    body = build_initial_comment(jobs)
    try:
        comment = pr_service.publish_comment(pr_number, body)
        comment_id = comment["id"]
    except (GitHubAPIError, KeyError, TypeError) as e:
        logger.error(
            "Error publishing comment",
            repo=pr_service.repo_full_name,
            pr_number=pr_number,
            error=str(e)
        )
        raise CommentPublishError(f"Error publishing comment: {e}") from e

    logger.info(
        "Published initial comment",
        repo=pr_service.repo_full_name,
        pr_number=pr_number,
        comment_id=comment_id,
        projects=len(jobs)
    )
    return comment_id


def replace_project_block(body: str, project_name: str, content: str) -> str:
    """
    Replace the text between one project's markers.

    Raises:
        ValueError: If the body has no block for the project
    """
    pattern = re.compile(
        re.escape(BLOCK_START.format(project=project_name))
        + r"\n.*?"
        + re.escape(BLOCK_END.format(project=project_name))
        + r"\n?",
        re.DOTALL,
    )
    if not pattern.search(body):
        raise ValueError(f"No comment block for project {project_name}")
    block = render_project_block(project_name, content)
    return pattern.sub(lambda _: block, body, count=1)


def update_project_comment(
    pr_service: PRService,
    comment_id: int,
    body: str,
    project_name: str,
    content: str,
) -> str:
    """
    Rewrite one project's block of an existing summary comment.

    Args:
        pr_service: Service bound to the repository
        comment_id: ID returned by add_initial_comment_jobs
        body: Current comment body
        project_name: Project whose block is replaced
        content: New text for the block

    Returns:
        The new comment body

    Raises:
        ValueError: If the body has no block for the project
        CommentPublishError: If GitHub rejects the edit
    """
    new_body = replace_project_block(body, project_name, content)
    try:
        pr_service.edit_comment(comment_id, new_body)
    except GitHubAPIError as e:
        logger.error(
            "Error editing comment",
            repo=pr_service.repo_full_name,
            comment_id=comment_id,
            project=project_name,
            error=str(e)
        )
        raise CommentPublishError(f"Error editing comment {comment_id}: {e}") from e
    return new_body
