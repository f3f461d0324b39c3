"""Tests for the BackgroundSync refresher."""

import asyncio
import pytest
from unittest.mock import AsyncMock, patch

from notesync.notes import Note
from notesync.sync import BackgroundSync, SyncResult, SyncStatus


@pytest.fixture
def refresher(engine):
    """Refresher with short intervals."""
    return BackgroundSync(engine, refresh_interval_ms=10, settle_delay_ms=10)


class TestBackgroundSyncInit:
    """Tests for initialization."""

    def test_init_parameters(self, engine):
        """Test intervals are stored in seconds."""
        refresher = BackgroundSync(engine, refresh_interval_ms=1000, settle_delay_ms=250)

        assert refresher._interval == 1.0
        assert refresher._settle_delay == 0.25
        assert refresher.is_running is False


class TestPeriodicPull:
    """Tests for the periodic pull loop."""

    @pytest.mark.asyncio
    async def test_pulls_repeatedly(self, refresher, remote, store):
        """Test the loop keeps pulling the remote state."""
        remote.notes = [Note(id="r", title="t", content="c", created_at=1, updated_at=1)]

        await refresher.start()
        await asyncio.sleep(0.1)
        await refresher.stop()

        assert remote.fetch_count >= 2
        assert [n.id for n in store.get_all()] == ["r"]

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, refresher):
        """Test starting twice keeps a single task."""
        await refresher.start()
        task = refresher._task
        await refresher.start()

        assert refresher._task is task
        await refresher.stop()

    @pytest.mark.asyncio
    async def test_stop(self, refresher, remote):
        """Test stop ends the loop."""
        await refresher.start()
        await asyncio.sleep(0.03)
        await refresher.stop()
        count = remote.fetch_count
        await asyncio.sleep(0.05)

        assert refresher.is_running is False
        assert refresher._task is None
        assert remote.fetch_count == count

    @pytest.mark.asyncio
    async def test_errors_do_not_stop_loop(self, refresher, engine):
        """Test an exception from pull is logged and the loop continues."""
        pull = AsyncMock(side_effect=RuntimeError("boom"))

        with patch.object(engine, "pull", new=pull):
            await refresher.start()
            await asyncio.sleep(0.08)
            await refresher.stop()

        assert pull.await_count >= 2

    @pytest.mark.asyncio
    async def test_run_until_stop_event(self, refresher, remote):
        """Test run returns once the stop event is set."""
        stop_event = asyncio.Event()

        async def stop_soon():
            await asyncio.sleep(0.05)
            stop_event.set()

        await asyncio.gather(refresher.run(stop_event), stop_soon())

        assert refresher.is_running is False
        assert remote.fetch_count >= 1


class TestLocalChange:
    """Tests for change-triggered push-settle-pull."""

    @pytest.mark.asyncio
    async def test_push_then_pull(self, refresher, store, remote):
        """Test a local change is pushed and then pulled back."""
        note = await store.create("new", "")

        result = await refresher.notify_local_change()

        assert result.status == SyncStatus.SUCCESS
        assert remote.pushed == [[note]]
        assert remote.fetch_count == 1
        assert store.get_all() == [note]

    @pytest.mark.asyncio
    async def test_failed_push_skips_pull(self, refresher, engine, remote):
        """Test no pull follows a failed push."""
        failed = SyncResult(status=SyncStatus.FAILED, error="disk full")

        with patch.object(engine, "push", new=AsyncMock(return_value=failed)):
            result = await refresher.notify_local_change()

        assert result is failed
        assert remote.fetch_count == 0

    @pytest.mark.asyncio
    async def test_stop_cancels_pending_change(self, engine, remote):
        """Test stop cancels a change still waiting to pull."""
        refresher = BackgroundSync(engine, refresh_interval_ms=1000, settle_delay_ms=10_000)

        task = refresher.notify_local_change()
        await asyncio.sleep(0.02)
        await refresher.stop()

        assert task.cancelled()
        assert len(remote.pushed) == 1
        assert remote.fetch_count == 0

    @pytest.mark.asyncio
    async def test_offline_change_still_settles(self, refresher, store, remote, blobs):
        """Test an offline change lands in the snapshot and is pulled back from it."""
        remote.online = False
        note = await store.create("offline", "")

        await refresher.notify_local_change()

        assert "offline" in blobs.blobs["server.json"]
        assert store.get_all() == [note]
