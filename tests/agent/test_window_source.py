from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from focus_agent.desktop import DesktopTracker
from focus_agent.window_source import ActivityWatchWindowSource

NOW = datetime(2025, 3, 10, 9, 0, 0, tzinfo=timezone.utc)


def window_event(app, title="", seconds_ago=1, duration=0):
    return SimpleNamespace(
        timestamp=NOW - timedelta(seconds=seconds_ago),
        duration=timedelta(seconds=duration),
        data={"app": app, "title": title},
    )


@pytest.fixture
def aw_client():
    return MagicMock()


@pytest.fixture
def source(aw_client):
    return ActivityWatchWindowSource(bucket_id="aw-watcher-window_test", client=aw_client, clock=lambda: NOW)


def test_current_window(source, aw_client):
    aw_client.get_events.return_value = [window_event("Code", "main.py")]
    target = source.current_window()
    assert target.application == "Code"
    assert target.title == "main.py"
    aw_client.get_events.assert_called_once_with(bucket_id="aw-watcher-window_test", limit=1)


def test_stale_event_means_no_window(source, aw_client):
    aw_client.get_events.return_value = [window_event("Code", seconds_ago=120, duration=30)]
    assert source.current_window() is None


def test_empty_bucket_and_errors(source, aw_client):
    aw_client.get_events.return_value = []
    assert source.current_window() is None
    aw_client.get_events.side_effect = ConnectionError("aw-server down")
    assert source.current_window() is None


def test_empty_application_name(source, aw_client):
    aw_client.get_events.return_value = [window_event("")]
    assert source.current_window() is None


def test_tracker_switches_when_the_application_changes(source, aw_client):
    session = MagicMock()
    tracker = DesktopTracker(session, source)

    aw_client.get_events.return_value = [window_event("Code", "a.py")]
    tracker.poll()
    aw_client.get_events.return_value = [window_event("Slack", "general")]
    tracker.poll()

    targets = [call.args[0] for call in session.switch_focus.call_args_list]
    assert [target.application for target in targets] == ["Code", "Slack"]


def test_tracker_start_schedules_polling(source, aw_client):
    aw_client.get_events.return_value = []
    session = MagicMock(running=False)
    DesktopTracker(session, source).start()
    assert session.add_job.call_args.args[2] == "window_poll_job"
    session.start.assert_called_once()
