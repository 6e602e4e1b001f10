"""Tests for the notification inbox (task_bridge/inbox.py)."""

import asyncio

import pytest

from task_bridge.inbox import NotificationInbox
from task_bridge.notifications import write_notice
from task_bridge.types import Notice


@pytest.fixture
def inbox_path(data_dir):
    d = data_dir / "inbox"
    d.mkdir()
    return d


def _write_notice_file(directory, filename, message, label="*claude:/a*"):
    (directory / filename).write_text(Notice(message=message, session_label=label).to_json())


class TestDispatchLoop:
    async def test_queued_notices_delivered_in_order(self, inbox_path):
        delivered = []
        inbox = NotificationInbox(delivered.append, directory=inbox_path)
        await inbox.start()

        for message in ("first", "second", "third"):
            inbox._queue.put_nowait((None, Notice(message=message)))

        await asyncio.sleep(0.3)
        await inbox.stop()
        assert [n.message for n in delivered] == ["first", "second", "third"]

    async def test_delivery_error_does_not_stop_loop(self, inbox_path):
        delivered = []

        def deliver(notice):
            if notice.message == "boom":
                raise RuntimeError("host gone")
            delivered.append(notice.message)

        inbox = NotificationInbox(deliver, directory=inbox_path)
        await inbox.start()
        inbox._queue.put_nowait((None, Notice(message="boom")))
        inbox._queue.put_nowait((None, Notice(message="ok")))
        await asyncio.sleep(0.3)
        await inbox.stop()
        assert delivered == ["ok"]


class TestNoticeFiles:
    async def test_preexisting_notices_consumed(self, inbox_path):
        _write_notice_file(inbox_path, "20261018-140300-000001-1.json", "older")
        _write_notice_file(inbox_path, "20261018-140300-000002-1.json", "newer")

        delivered = []
        inbox = NotificationInbox(delivered.append, directory=inbox_path)
        inbox._poll_interval = 0.2
        await inbox.start()
        await asyncio.sleep(0.5)
        await inbox.stop()

        assert [n.message for n in delivered] == ["older", "newer"]
        assert list(inbox_path.glob("*.json")) == []

    async def test_new_notice_detected(self, inbox_path):
        delivered = []
        inbox = NotificationInbox(delivered.append, directory=inbox_path)
        inbox._poll_interval = 0.2
        await inbox.start()
        await asyncio.sleep(0.3)

        _write_notice_file(inbox_path, "20261018-140500-000001-1.json", "fresh", label="*claude:/b*")

        await asyncio.sleep(1.0)
        await inbox.stop()

        assert len(delivered) == 1
        assert delivered[0].message == "fresh"
        assert delivered[0].session_label == "*claude:/b*"

    async def test_corrupt_notice_dropped(self, inbox_path):
        (inbox_path / "bad.json").write_text("{not json")
        _write_notice_file(inbox_path, "good.json", "fine")

        delivered = []
        inbox = NotificationInbox(delivered.append, directory=inbox_path)
        inbox._poll_interval = 0.2
        await inbox.start()
        await asyncio.sleep(0.5)
        await inbox.stop()

        assert [n.message for n in delivered] == ["fine"]
        assert not (inbox_path / "bad.json").exists()

    async def test_hidden_temp_files_ignored(self, inbox_path):
        (inbox_path / ".partial.tmp").write_text("{}")

        delivered = []
        inbox = NotificationInbox(delivered.append, directory=inbox_path)
        inbox._poll_interval = 0.2
        await inbox.start()
        await asyncio.sleep(0.5)
        await inbox.stop()

        assert delivered == []
        assert (inbox_path / ".partial.tmp").exists()


class TestDurability:
    async def test_failed_delivery_keeps_file(self, inbox_path):
        path = write_notice("Refactor done", "*claude:/a*")
        attempts = []

        def deliver(notice):
            attempts.append(notice.message)
            raise OSError("disk full")

        inbox = NotificationInbox(deliver, directory=inbox_path)
        inbox._poll_interval = 0.2
        await inbox.start()
        await asyncio.sleep(1.0)
        await inbox.stop()

        assert attempts == ["Refactor done"]
        assert path.exists()

        delivered = []
        retry = NotificationInbox(delivered.append, directory=inbox_path)
        retry._poll_interval = 0.2
        await retry.start()
        await asyncio.sleep(0.5)
        await retry.stop()

        assert [n.message for n in delivered] == ["Refactor done"]
        assert not path.exists()

    async def test_stop_with_queued_notices_keeps_files(self, inbox_path):
        _write_notice_file(inbox_path, "20261018-140300-000001-1.json", "queued")

        inbox = NotificationInbox(lambda n: None, directory=inbox_path)
        inbox._consume(inbox_path / "20261018-140300-000001-1.json")
        assert inbox._queue.qsize() == 1
        await inbox.stop()

        assert (inbox_path / "20261018-140300-000001-1.json").exists()

        delivered = []
        restarted = NotificationInbox(delivered.append, directory=inbox_path)
        await restarted.start()
        await asyncio.sleep(0.5)
        await restarted.stop()
        assert [n.message for n in delivered] == ["queued"]

    async def test_file_enqueued_once(self, inbox_path):
        _write_notice_file(inbox_path, "one.json", "once")
        inbox = NotificationInbox(lambda n: None, directory=inbox_path)
        inbox._consume(inbox_path / "one.json")
        inbox._consume(inbox_path / "one.json")
        assert inbox._queue.qsize() == 1


class TestLifecycle:
    async def test_stop_clears_running(self, inbox_path):
        inbox = NotificationInbox(lambda n: None, directory=inbox_path)
        await inbox.start()
        assert inbox.running
        await inbox.stop()
        assert not inbox.running
