from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field

from github import Auth, Github, GithubException

from ptalbot_core.errors import DecodeError, UpstreamApiError

logger = logging.getLogger(__name__)

# Accepts both html and API urls:
#   https://github.com/acme/widgets/pull/42
#   https://api.github.com/repos/acme/widgets/pulls/42
_PULL_URL_RE = re.compile(r"/pulls?/(\d+)(?:/|$)")


@dataclass(frozen=True)
class PullRequestSnapshot:
    """The subset of a GitHub pull request a PTAL embed renders."""

    number: int
    title: str
    url: str
    author: str
    state: str  # "open" | "closed"
    merged: bool = False
    draft: bool = False
    requested_reviewers: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ReviewSnapshot:
    reviewer: str
    state: str  # "APPROVED" | "CHANGES_REQUESTED" | "COMMENTED" | "DISMISSED" | "PENDING"


PullState = tuple[PullRequestSnapshot, list[ReviewSnapshot]]


def get_repo(gh: Github, owner: str, repo: str):
    return gh.get_repo(f"{owner}/{repo}")


def get_pull(repo, pr_number: int):
    return repo.get_pull(pr_number)


def parse_pull_number(url: str | None) -> int:
    """Extract the PR number from a pull request url or raise DecodeError."""
    if not url or not isinstance(url, str):
        raise DecodeError("No pull request url provided")
    match = _PULL_URL_RE.search(url.split("?", 1)[0].split("#", 1)[0])
    if not match:
        raise DecodeError(f"Not a pull request url: {url!r}")
    return int(match.group(1))


def to_pull_snapshot(pr) -> PullRequestSnapshot:
    reviewers = [u.login for u in pr.requested_reviewers or []]
    reviewers += [t.slug for t in pr.requested_teams or []]
    return PullRequestSnapshot(
        number=pr.number,
        title=pr.title or "",
        url=pr.html_url or "",
        author=pr.user.login if pr.user else "",
        state=pr.state or "open",
        merged=bool(pr.merged),
        draft=bool(pr.draft),
        requested_reviewers=tuple(reviewers),
    )


def to_review_snapshots(reviews) -> list[ReviewSnapshot]:
    """Convert PyGithub reviews (oldest first) into snapshots, dropping ghost users."""
    return [ReviewSnapshot(reviewer=r.user.login, state=r.state or "") for r in reviews if r.user is not None]


class GithubSource:
    """Async facade over PyGithub for the pull request reads the pipeline needs.

    PyGithub is blocking, so every call runs in a worker thread. Failures
    surface as UpstreamApiError.
    """

    def __init__(self, token: str | None = None, gh: Github | None = None):
        if gh is None:
            gh = Github(auth=Auth.Token(token)) if token else Github()
        self._gh = gh

    def _fetch_state(self, owner: str, repo: str, number: int) -> PullState:
        logger.debug("Fetching pull request %s/%s#%d", owner, repo, number)
        pr = get_pull(get_repo(self._gh, owner, repo), number)
        return to_pull_snapshot(pr), to_review_snapshots(pr.get_reviews())

    async def get_pull_state(self, owner: str, repo: str, number: int) -> PullState:
        """Fetch a pull request and its reviews from a single pull lookup."""
        try:
            return await asyncio.to_thread(self._fetch_state, owner, repo, number)
        except GithubException as e:
            raise UpstreamApiError("github", f"get pull state {owner}/{repo}#{number}: {e.status}") from e
