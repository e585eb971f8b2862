"""Tests for webhook body parsing and event decoding."""

import pytest

from ptalbot_core.errors import DecodeError
from ptalbot_core.webhooks.events import (
    PullRequestChanged,
    Push,
    RepositoryDispatch,
    ReviewChanged,
    Unhandled,
    decode_event,
    parse_json_body,
)


def _repository(owner="acme", name="widgets"):
    return {"name": name, "owner": {"login": owner}}


# ---------------------------------------------------------------------------
# parse_json_body
# ---------------------------------------------------------------------------


class TestParseJsonBody:
    def test_parses_object(self):
        assert parse_json_body(b'{"a": 1}') == {"a": 1}

    def test_rejects_invalid_json(self):
        with pytest.raises(DecodeError, match="not valid JSON"):
            parse_json_body(b"{not json")

    def test_rejects_invalid_utf8(self):
        with pytest.raises(DecodeError):
            parse_json_body(b"\xff\xfe")

    def test_rejects_non_object(self):
        with pytest.raises(DecodeError, match="JSON object"):
            parse_json_body(b"[1, 2]")


# ---------------------------------------------------------------------------
# decode_event
# ---------------------------------------------------------------------------


class TestDecodePullRequest:
    def test_decodes_fields(self):
        payload = {
            "action": "closed",
            "repository": _repository(),
            "pull_request": {"number": 42, "title": "Sync translations", "merged": True},
            "sender": {"login": "octocat"},
        }
        event = decode_event("pull_request", payload)
        assert event == PullRequestChanged(
            action="closed",
            owner="acme",
            repo="widgets",
            number=42,
            title="Sync translations",
            merged=True,
            sender="octocat",
        )
        assert event.tag == "pull_request"

    def test_missing_pull_request_raises(self):
        with pytest.raises(DecodeError, match="pull_request"):
            decode_event("pull_request", {"action": "opened", "repository": _repository()})

    def test_missing_owner_raises(self):
        payload = {"repository": {"name": "widgets"}, "pull_request": {"number": 1}}
        with pytest.raises(DecodeError, match="repository.owner"):
            decode_event("pull_request", payload)

    def test_string_number_raises(self):
        payload = {"repository": _repository(), "pull_request": {"number": "42"}}
        with pytest.raises(DecodeError, match="integer"):
            decode_event("pull_request", payload)

    def test_boolean_number_raises(self):
        payload = {"repository": _repository(), "pull_request": {"number": True}}
        with pytest.raises(DecodeError):
            decode_event("pull_request", payload)


class TestDecodeReview:
    def test_review_event(self):
        payload = {
            "action": "submitted",
            "repository": _repository(),
            "pull_request": {"number": 7},
            "review": {"state": "approved"},
        }
        assert decode_event("pull_request_review", payload) == ReviewChanged(
            action="submitted", owner="acme", repo="widgets", number=7
        )

    def test_review_comment_folds_into_review_changed(self):
        payload = {"action": "created", "repository": _repository(), "pull_request": {"number": 7}}
        event = decode_event("pull_request_review_comment", payload)
        assert isinstance(event, ReviewChanged)
        assert event.number == 7


class TestDecodeOther:
    def test_push(self):
        event = decode_event("push", {"ref": "refs/heads/main", "repository": _repository()})
        assert event == Push(ref="refs/heads/main", owner="acme", repo="widgets")

    def test_repository_dispatch(self):
        payload = {
            "action": "crowdin-ptal",
            "repository": _repository(),
            "client_payload": {"pull_request_url": "https://github.com/acme/widgets/pull/42"},
        }
        event = decode_event("repository_dispatch", payload)
        assert isinstance(event, RepositoryDispatch)
        assert event.action == "crowdin-ptal"
        assert event.client_payload["pull_request_url"].endswith("/pull/42")

    def test_repository_dispatch_without_client_payload(self):
        event = decode_event("repository_dispatch", {"action": "x", "repository": _repository()})
        assert event.client_payload == {}

    def test_repository_dispatch_rejects_non_object_payload(self):
        payload = {"action": "x", "repository": _repository(), "client_payload": "nope"}
        with pytest.raises(DecodeError, match="client_payload"):
            decode_event("repository_dispatch", payload)

    def test_unknown_event_is_unhandled(self):
        event = decode_event("star", {"anything": True})
        assert event == Unhandled(event_name="star")

    def test_ping_is_unhandled_even_without_repository(self):
        assert isinstance(decode_event("ping", {"zen": "Keep it logically awesome."}), Unhandled)
