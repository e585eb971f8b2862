"""Shared fakes for the reconciliation pipeline tests."""

from __future__ import annotations

import asyncio

import pytest

from ptalbot_core.chat import ChatApi
from ptalbot_core.errors import UpstreamApiError
from ptalbot_core.gh.pull_request import PullRequestSnapshot, ReviewSnapshot
from ptalbot_core.ptal.dispatch import DispatchQueue
from ptalbot_store.memory import MemoryStore


def _make_pr(number=42, title="Sync translations", state="open", merged=False, draft=False, requested=()):
    return PullRequestSnapshot(
        number=number,
        title=title,
        url=f"https://github.com/acme/widgets/pull/{number}",
        author="crowdin-bot",
        state=state,
        merged=merged,
        draft=draft,
        requested_reviewers=tuple(requested),
    )


class FakeSource:
    """Serves PR/review state per (owner, repo, number); ``states`` entries are consumed in order."""

    def __init__(self):
        self.states: dict[tuple, list[tuple[PullRequestSnapshot, list[ReviewSnapshot]]]] = {}
        self.calls: list[tuple] = []
        self.fail: set[tuple] = set()
        self.fetches: list[tuple[PullRequestSnapshot, list[ReviewSnapshot]]] = []

    def set_state(self, key, pr, reviews=()):
        self.states[key] = [(pr, list(reviews))]

    def queue_states(self, key, *states):
        self.states[key] = [(pr, list(reviews)) for pr, reviews in states]

    def _current(self, key):
        states = self.states[key]
        return states[0] if len(states) == 1 else states.pop(0)

    async def get_pull_state(self, owner, repo, number):
        key = (owner, repo, number)
        self.calls.append(("get_pull_state",) + key)
        if key in self.fail:
            raise UpstreamApiError("github", "boom")
        pr, reviews = self._current(key)
        self.fetches.append((pr, list(reviews)))
        return pr, list(reviews)


class RecordingChat(ChatApi):
    def __init__(self):
        self.created: list[tuple[str, dict]] = []
        self.edited: list[tuple[str, str, dict]] = []
        self.fail_channels: set[str] = set()
        self.edit_delays: list[float] = []
        self.workspaces: list[dict] = [{"id": "G1", "name": "Acme"}]
        self.workspaces_error: Exception | None = None
        self._next_id = 1000

    async def create_message(self, channel_id, payload):
        if channel_id in self.fail_channels:
            raise UpstreamApiError("discord", f"cannot post in {channel_id}")
        self.created.append((channel_id, payload))
        self._next_id += 1
        return str(self._next_id)

    async def edit_message(self, channel_id, message_id, payload):
        if self.edit_delays:
            await asyncio.sleep(self.edit_delays.pop(0))
        if channel_id in self.fail_channels:
            raise UpstreamApiError("discord", f"cannot edit in {channel_id}")
        self.edited.append((channel_id, message_id, payload))

    async def list_my_workspaces(self):
        if self.workspaces_error is not None:
            raise self.workspaces_error
        return list(self.workspaces)


class RecordingSleep:
    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def source():
    return FakeSource()


@pytest.fixture
def chat():
    return RecordingChat()


@pytest.fixture
def store():
    s = MemoryStore()
    s.upsert_guild("G1")
    return s


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def queue(sleep):
    return DispatchQueue(delay=2.0, sleep=sleep)


@pytest.fixture
def make_pr():
    return _make_pr


@pytest.fixture
def anyio_backend():
    return "asyncio"
