"""Typed webhook events and the decoder that produces them.

Every event is a frozen dataclass carrying a class-level ``tag`` used as the
routing key on the EventBus and in the webhook dispatch table. Review and
review-comment deliveries fold into ReviewChanged; both only mean "the
review state of this PR may have moved".
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

from ptalbot_core.errors import DecodeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Push:
    tag: ClassVar[str] = "push"

    ref: str
    owner: str
    repo: str


@dataclass(frozen=True)
class PullRequestChanged:
    tag: ClassVar[str] = "pull_request"

    action: str
    owner: str
    repo: str
    number: int
    title: str = ""
    merged: bool = False
    sender: str = ""


@dataclass(frozen=True)
class ReviewChanged:
    tag: ClassVar[str] = "pull_request_review"

    action: str
    owner: str
    repo: str
    number: int
    sender: str = ""


@dataclass(frozen=True)
class RepositoryDispatch:
    tag: ClassVar[str] = "repository_dispatch"

    action: str
    owner: str
    repo: str
    client_payload: dict = field(default_factory=dict, hash=False, compare=False)


@dataclass(frozen=True)
class Unhandled:
    tag: ClassVar[str] = "unhandled"

    event_name: str


WebhookEvent = Union[Push, PullRequestChanged, ReviewChanged, RepositoryDispatch, Unhandled]


def parse_json_body(body: bytes) -> dict:
    """Parse a raw webhook body into a JSON object or raise DecodeError."""
    try:
        payload = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError(f"Body is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise DecodeError(f"Expected a JSON object, got {type(payload).__name__}")
    return payload


def _require(obj: Any, *path: str) -> Any:
    """Walk ``path`` through nested dicts, raising DecodeError on the first gap."""
    current = obj
    for i, key in enumerate(path):
        if not isinstance(current, dict) or current.get(key) is None:
            raise DecodeError(f"Missing field: {'.'.join(path[: i + 1])}")
        current = current[key]
    return current


def _repository(payload: dict) -> tuple[str, str]:
    owner = _require(payload, "repository", "owner", "login")
    name = _require(payload, "repository", "name")
    if not isinstance(owner, str) or not isinstance(name, str):
        raise DecodeError("repository.owner.login and repository.name must be strings")
    return owner, name


def _pr_number(payload: dict, container: str) -> int:
    number = _require(payload, container, "number")
    # bool is an int subclass; a JSON true is never a PR number.
    if isinstance(number, bool) or not isinstance(number, int):
        raise DecodeError(f"{container}.number must be an integer")
    return number


def _sender(payload: dict) -> str:
    sender = payload.get("sender")
    if isinstance(sender, dict):
        return sender.get("login") or ""
    return ""


def _decode_push(payload: dict) -> Push:
    owner, repo = _repository(payload)
    return Push(ref=payload.get("ref") or "", owner=owner, repo=repo)


def _decode_pull_request(payload: dict) -> PullRequestChanged:
    owner, repo = _repository(payload)
    pr = _require(payload, "pull_request")
    return PullRequestChanged(
        action=payload.get("action") or "",
        owner=owner,
        repo=repo,
        number=_pr_number(payload, "pull_request"),
        title=pr.get("title") or "",
        merged=bool(pr.get("merged")),
        sender=_sender(payload),
    )


def _decode_review(payload: dict) -> ReviewChanged:
    owner, repo = _repository(payload)
    return ReviewChanged(
        action=payload.get("action") or "",
        owner=owner,
        repo=repo,
        number=_pr_number(payload, "pull_request"),
        sender=_sender(payload),
    )


def _decode_repository_dispatch(payload: dict) -> RepositoryDispatch:
    owner, repo = _repository(payload)
    client_payload = payload.get("client_payload") or {}
    if not isinstance(client_payload, dict):
        raise DecodeError("client_payload must be an object")
    return RepositoryDispatch(
        action=_require(payload, "action"),
        owner=owner,
        repo=repo,
        client_payload=client_payload,
    )


_DECODERS = {
    "push": _decode_push,
    "pull_request": _decode_pull_request,
    "pull_request_review": _decode_review,
    "pull_request_review_comment": _decode_review,
    "repository_dispatch": _decode_repository_dispatch,
}


def decode_event(event_name: str, payload: dict) -> WebhookEvent:
    """Map an ``X-GitHub-Event`` name and its JSON body to a typed event.

    Unknown event names become Unhandled rather than an error: GitHub adds
    event types over time and an installation may be subscribed to more
    than this bot handles.
    """
    decoder = _DECODERS.get(event_name)
    if decoder is None:
        logger.info("Unhandled event type: %s", event_name)
        return Unhandled(event_name=event_name)
    return decoder(payload)
