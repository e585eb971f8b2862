"""Review-state summary and PTAL embed rendering.

Rendering is a pure function of (PR snapshot, review list, description):
no timestamps, no random ids. Re-rendering unchanged upstream state yields
an identical payload, which is what makes reconciliation safe to repeat.
"""

from __future__ import annotations

from dataclasses import dataclass

import discord

from ptalbot_core.gh.pull_request import PullRequestSnapshot, ReviewSnapshot

EMBED_BRAND_COLOR = 0xA581F3

_STATUS_STYLE = {
    "merged": ("🟣 Merged", 0x8957E5),
    "closed": ("🔴 Closed", 0xDA3633),
    "draft": ("⚪ Draft", 0x6E7681),
    "changes_requested": ("🟠 Changes Requested", 0xD29922),
    "approved": ("🟢 Approved", 0x2EA043),
    "awaiting_review": ("🔵 Awaiting Review", EMBED_BRAND_COLOR),
}


@dataclass(frozen=True)
class ReviewSummary:
    approved: int = 0
    changes_requested: int = 0
    commented: int = 0
    pending: int = 0


def summarize_reviews(reviews: list[ReviewSnapshot], requested_reviewers: tuple[str, ...] = ()) -> ReviewSummary:
    """Reduce a chronological review list to one verdict per reviewer.

    A reviewer's latest APPROVED or CHANGES_REQUESTED review is their
    verdict; DISMISSED clears it. COMMENTED only counts for reviewers who
    have not given a verdict. PENDING reviews are unsubmitted drafts and
    are ignored. ``pending`` is the number of outstanding review requests.
    """
    verdicts: dict[str, str] = {}
    for review in reviews:
        state = review.state.upper()
        if state in ("APPROVED", "CHANGES_REQUESTED"):
            verdicts[review.reviewer] = state
        elif state == "DISMISSED":
            verdicts.pop(review.reviewer, None)
        elif state == "COMMENTED":
            verdicts.setdefault(review.reviewer, state)

    counts = list(verdicts.values())
    return ReviewSummary(
        approved=counts.count("APPROVED"),
        changes_requested=counts.count("CHANGES_REQUESTED"),
        commented=counts.count("COMMENTED"),
        pending=len(requested_reviewers),
    )


def pr_status(pr: PullRequestSnapshot, summary: ReviewSummary) -> str:
    if pr.merged:
        return "merged"
    if pr.state == "closed":
        return "closed"
    if pr.draft:
        return "draft"
    if summary.changes_requested:
        return "changes_requested"
    if summary.approved:
        return "approved"
    return "awaiting_review"


def build_ptal_embed(
    owner: str,
    repo: str,
    pr: PullRequestSnapshot,
    reviews: list[ReviewSnapshot],
    description: str,
) -> dict:
    """Render the chat message payload for one PTAL record."""
    summary = summarize_reviews(reviews, pr.requested_reviewers)
    label, color = _STATUS_STYLE[pr_status(pr, summary)]

    embed = discord.Embed(
        title=f"{owner}/{repo}#{pr.number}: {pr.title}"[:256],
        url=pr.url or None,
        description=description or None,
        color=color,
    )
    if pr.author:
        embed.set_author(name=pr.author, url=f"https://github.com/{pr.author}")
    embed.add_field(name="Status", value=label, inline=False)
    embed.add_field(name="Approvals", value=str(summary.approved), inline=True)
    embed.add_field(name="Changes Requested", value=str(summary.changes_requested), inline=True)
    embed.add_field(name="Comments", value=str(summary.commented), inline=True)
    embed.add_field(name="Pending Reviews", value=str(summary.pending), inline=True)
    if pr.requested_reviewers:
        embed.add_field(
            name="Awaiting",
            value=", ".join(f"`{r}`" for r in pr.requested_reviewers)[:1024],
            inline=False,
        )
    embed.set_footer(text="PTAL · updates automatically as reviews come in")
    return {"embeds": [embed.to_dict()]}
