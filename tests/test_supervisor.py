"""Log stream supervisor lifecycle against a scripted feed."""

from __future__ import annotations

import pytest

from clickploy.tui.screens import Screen, ScreenKind
from clickploy.tui.supervisor import LogStreamSupervisor

from conftest import ScriptedFeed, settle


@pytest.fixture()
def feed() -> ScriptedFeed:
    return ScriptedFeed()


@pytest.fixture()
def supervisor(feed) -> LogStreamSupervisor:
    return LogStreamSupervisor(feed, queue_size=16)


class TestSubscription:
    @pytest.mark.asyncio()
    async def test_idle_off_logs_screen(self, state, supervisor, feed):
        state.navigate(Screen.project_list())
        supervisor.sync(state)
        await settle()
        assert supervisor.deployment_id is None
        assert feed.opened == []

    @pytest.mark.asyncio()
    async def test_chunks_arrive_in_order(self, state, supervisor, feed):
        state.navigate(Screen.deployment_logs("d1"))
        supervisor.sync(state)
        for chunk in ("one\n", "two\n", "three\n"):
            feed.push("d1", chunk)
        await settle()
        supervisor.sync(state)

        assert supervisor.deployment_id == "d1"
        assert state.live_logs.text == "one\ntwo\nthree\n"
        await supervisor.aclose()

    @pytest.mark.asyncio()
    async def test_switching_ids_never_mixes_streams(self, state, supervisor, feed):
        state.navigate(Screen.deployment_logs("A"))
        supervisor.sync(state)
        feed.push("A", "a1")
        await settle()
        supervisor.sync(state)
        assert state.live_logs.text == "a1"

        # Queued but not yet drained when the switch happens.
        feed.push("A", "a2")
        await settle()

        state.navigate(Screen.deployment_logs("B"))
        supervisor.sync(state)
        assert state.live_logs.text == ""
        assert supervisor.deployment_id == "B"

        feed.push("A", "a3")
        feed.push("B", "b1")
        await settle()
        supervisor.sync(state)

        assert state.live_logs.text == "b1"
        assert "A" in feed.closed
        assert feed.opened == ["A", "B"]
        await supervisor.aclose()

    @pytest.mark.asyncio()
    async def test_leaving_logs_cancels_and_clears(self, state, supervisor, feed):
        state.navigate(Screen.deployment_logs("d1"))
        supervisor.sync(state)
        feed.push("d1", "line\n")
        await settle()
        supervisor.sync(state)
        state.live_logs.scroll_by(1)
        task = supervisor.task

        state.navigate(Screen(ScreenKind.DOCS))
        supervisor.sync(state)
        await settle()

        assert supervisor.deployment_id is None
        assert task is not None and task.done()
        assert state.live_logs.text == ""
        assert state.live_logs.scroll == 0
        assert feed.closed == ["d1"]

    @pytest.mark.asyncio()
    async def test_same_id_is_not_resubscribed(self, state, supervisor, feed):
        state.navigate(Screen.deployment_logs("d1"))
        supervisor.sync(state)
        await settle()
        supervisor.sync(state)
        supervisor.sync(state)
        assert feed.opened == ["d1"]
        await supervisor.aclose()


class TestFailure:
    @pytest.mark.asyncio()
    async def test_stream_error_stops_silently(self, state, supervisor, feed):
        state.navigate(Screen.deployment_logs("d1"))
        supervisor.sync(state)
        feed.push("d1", "partial")
        feed.push("d1", ConnectionError("refused"))
        await settle()
        supervisor.sync(state)

        assert state.live_logs.text == "partial"
        assert state.error is None
        assert supervisor.task.done()
        assert supervisor.deployment_id == "d1"

        supervisor.sync(state)
        assert feed.opened == ["d1"]

    @pytest.mark.asyncio()
    async def test_reentering_retries(self, state, supervisor, feed):
        state.navigate(Screen.deployment_logs("d1"))
        supervisor.sync(state)
        feed.push("d1", None)
        await settle()

        state.navigate(Screen.project_list())
        supervisor.sync(state)
        state.navigate(Screen.deployment_logs("d1"))
        supervisor.sync(state)
        await settle()

        assert feed.opened == ["d1", "d1"]
        await supervisor.aclose()

    @pytest.mark.asyncio()
    async def test_without_feed_tracks_id_only(self, state):
        supervisor = LogStreamSupervisor()
        state.navigate(Screen.deployment_logs("d1"))
        supervisor.sync(state)
        assert supervisor.deployment_id == "d1"
        assert supervisor.task is None


class TestClose:
    @pytest.mark.asyncio()
    async def test_aclose_waits_for_task(self, state, supervisor, feed):
        state.navigate(Screen.deployment_logs("d1"))
        supervisor.sync(state)
        await settle()
        task = supervisor.task

        await supervisor.aclose()

        assert task.cancelled()
        assert feed.closed == ["d1"]
        assert supervisor.task is None
