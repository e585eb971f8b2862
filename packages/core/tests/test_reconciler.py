"""Tests for Reconciler: re-rendering tracked PTAL messages from fresh state."""

import asyncio
import logging

import pytest

from ptalbot_core.gh.pull_request import ReviewSnapshot
from ptalbot_core.ptal.dispatch import catch_up_sweep
from ptalbot_core.ptal.embed import build_ptal_embed
from ptalbot_core.ptal.reconciler import Reconciler
from ptalbot_store.models import PtalRecord

KEY = ("acme", "widgets", 42)


def _record(channel="C1", message="M1", guild_id="G1", pr=42):
    return PtalRecord(
        channel=channel,
        message=message,
        owner="acme",
        repository="widgets",
        pr=pr,
        guild_id=guild_id,
        description="Crowdin Sync Request",
    )


@pytest.fixture
def reconciler(store, source, chat, queue):
    return Reconciler(store, source, chat, queue)


class TestReconcile:
    @pytest.mark.anyio
    async def test_edits_tracked_message_with_fresh_state(self, reconciler, store, source, chat, make_pr):
        store.insert_ptal(_record())
        pr = make_pr()
        reviews = [ReviewSnapshot("alice", "APPROVED")]
        source.set_state(KEY, pr, reviews)

        assert await reconciler.reconcile("acme", "widgets", 42) == 1

        assert chat.edited == [
            ("C1", "M1", build_ptal_embed("acme", "widgets", pr, reviews, "Crowdin Sync Request")),
        ]
        assert chat.created == []

    @pytest.mark.anyio
    async def test_untracked_pr_makes_no_calls(self, reconciler, source, chat):
        assert await reconciler.reconcile("acme", "widgets", 99) == 0
        assert source.calls == []
        assert chat.edited == []

    @pytest.mark.anyio
    async def test_edits_every_record_for_the_pr(self, reconciler, store, source, chat, make_pr):
        store.upsert_guild("G2")
        store.insert_ptal(_record("C1", "M1"))
        store.insert_ptal(_record("C2", "M2", guild_id="G2"))
        store.insert_ptal(_record("C3", "M3", pr=7))
        source.set_state(KEY, make_pr())

        assert await reconciler.reconcile("acme", "widgets", 42) == 2
        assert [(c, m) for c, m, _ in chat.edited] == [("C1", "M1"), ("C2", "M2")]

    @pytest.mark.anyio
    async def test_repeated_reconcile_renders_identical_payload(self, reconciler, store, source, chat, make_pr):
        store.insert_ptal(_record())
        source.set_state(KEY, make_pr(), [ReviewSnapshot("alice", "COMMENTED")])

        await reconciler.reconcile("acme", "widgets", 42)
        await reconciler.reconcile("acme", "widgets", 42)

        assert len(chat.edited) == 2
        assert chat.edited[0] == chat.edited[1]

    @pytest.mark.anyio
    async def test_converges_on_latest_fetch_regardless_of_delivery_order(
        self, reconciler, store, source, chat, make_pr
    ):
        store.insert_ptal(_record())
        approved = [ReviewSnapshot("alice", "APPROVED")]
        # Two deliveries race; GitHub already reflects the approval by the second fetch.
        source.queue_states(KEY, (make_pr(), []), (make_pr(), approved))

        await reconciler.reconcile("acme", "widgets", 42)
        await reconciler.reconcile("acme", "widgets", 42)

        final = chat.edited[-1][2]
        assert final == build_ptal_embed("acme", "widgets", make_pr(), approved, "Crowdin Sync Request")

    @pytest.mark.anyio
    async def test_one_failing_record_does_not_block_others(self, reconciler, store, source, chat, make_pr, caplog):
        store.insert_ptal(_record("C1", "M1"))
        store.insert_ptal(_record("C2", "M2"))
        chat.fail_channels.add("C1")
        source.set_state(KEY, make_pr())

        with caplog.at_level(logging.ERROR, logger="ptalbot_core.ptal.reconciler"):
            assert await reconciler.reconcile("acme", "widgets", 42) == 1

        assert [(c, m) for c, m, _ in chat.edited] == [("C2", "M2")]
        assert "acme/widgets#42" in caplog.text
        assert "M1" in caplog.text


class TestReconcileRecord:
    @pytest.mark.anyio
    async def test_skips_record_in_departed_guild(self, reconciler, source, chat, caplog):
        with caplog.at_level(logging.WARNING, logger="ptalbot_core.ptal.reconciler"):
            assert await reconciler.reconcile_record(_record(guild_id="GONE")) is False

        assert source.calls == []
        assert chat.edited == []
        assert "no longer in guild GONE" in caplog.text

    @pytest.mark.anyio
    async def test_github_failure_returns_false(self, reconciler, source, chat):
        source.fail.add(KEY)
        assert await reconciler.reconcile_record(_record()) is False
        assert chat.edited == []

    @pytest.mark.anyio
    async def test_unexpected_error_is_contained(self, reconciler, source, chat, mocker):
        mocker.patch.object(source, "get_pull_state", side_effect=KeyError("surprise"))
        assert await reconciler.reconcile_record(_record()) is False
        assert chat.edited == []

    @pytest.mark.anyio
    async def test_live_edits_are_not_paced(self, reconciler, store, source, sleep, make_pr):
        store.insert_ptal(_record())
        source.set_state(KEY, make_pr())

        for _ in range(3):
            await reconciler.reconcile("acme", "widgets", 42)
        assert sleep.calls == []


class TestConcurrentReconcile:
    @pytest.mark.anyio
    async def test_slow_stale_edit_does_not_overwrite_newer_state(self, reconciler, store, source, chat, make_pr):
        store.insert_ptal(_record())
        approved = [ReviewSnapshot("alice", "APPROVED")]
        source.queue_states(KEY, (make_pr(), []), (make_pr(), approved))
        chat.edit_delays = [0.05]

        await asyncio.gather(
            reconciler.reconcile("acme", "widgets", 42),
            reconciler.reconcile("acme", "widgets", 42),
        )

        assert [payload for _, _, payload in chat.edited] == [
            build_ptal_embed("acme", "widgets", pr, reviews, "Crowdin Sync Request") for pr, reviews in source.fetches
        ]
        assert chat.edited[-1][2] == build_ptal_embed("acme", "widgets", make_pr(), approved, "Crowdin Sync Request")

    @pytest.mark.anyio
    async def test_live_update_during_sweep_lands_last(self, reconciler, store, source, chat, queue, make_pr):
        store.insert_ptal(_record())
        approved = [ReviewSnapshot("alice", "APPROVED")]
        source.queue_states(KEY, (make_pr(), []), (make_pr(), approved))
        chat.edit_delays = [0.05]

        await asyncio.gather(
            catch_up_sweep(store, reconciler, queue),
            reconciler.reconcile("acme", "widgets", 42),
        )

        assert len(chat.edited) == 2
        assert chat.edited[-1][2] == build_ptal_embed("acme", "widgets", make_pr(), approved, "Crowdin Sync Request")

    @pytest.mark.anyio
    async def test_different_messages_do_not_wait_on_each_other(self, reconciler, store, source, chat, make_pr):
        store.insert_ptal(_record("C1", "M1"))
        store.insert_ptal(_record("C2", "M2", pr=7))
        source.set_state(KEY, make_pr())
        source.set_state(("acme", "widgets", 7), make_pr(number=7))
        chat.edit_delays = [0.05]

        await asyncio.gather(
            reconciler.reconcile("acme", "widgets", 42),
            reconciler.reconcile("acme", "widgets", 7),
        )

        assert [m for _, m, _ in chat.edited] == ["M2", "M1"]
