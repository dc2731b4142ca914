import io
import json
import struct
from unittest.mock import MagicMock

import pytest

from focus_agent.credentials import CredentialStore
from focus_agent.emitter import ActivityEmitter
from focus_agent.idle import IdleDetector
from focus_agent.native_host import BrowserHost, InvalidMessage, NativeMessagingError, read_message, write_message
from focus_agent.session import IDLE_CHECK_JOB_ID, TrackingSession
from focus_agent.task_timer import TaskTimer


def frame(message):
    body = json.dumps(message).encode("utf-8")
    return struct.pack("@I", len(body)) + body


@pytest.fixture
def credentials():
    return CredentialStore(path=None)


@pytest.fixture
def sync():
    return MagicMock()


@pytest.fixture
def host(credentials, sync, fake_clock, fake_monotonic):
    session = TrackingSession(
        ActivityEmitter(clock=fake_clock),
        IdleDetector(timeout_seconds=300, clock=fake_monotonic),
        sync,
        scheduler=MagicMock(),
    )
    timer = TaskTimer(
        TrackingSession(
            ActivityEmitter(clock=fake_clock),
            IdleDetector(timeout_seconds=300, clock=fake_monotonic),
            sync,
            scheduler=MagicMock(),
        )
    )
    return BrowserHost(session, credentials, timer=timer)


def advance(fake_clock, fake_monotonic, seconds):
    fake_clock.advance(seconds)
    fake_monotonic.advance(seconds)


def tab(url, title="Page", **extra):
    return {"tab": dict(url=url, title=title, **extra)}


def test_read_and_write_frames():
    out = io.BytesIO()
    write_message(out, {"success": True})
    out.seek(0)
    assert read_message(out) == {"success": True}
    assert read_message(out) is None


def test_truncated_frames_are_rejected():
    with pytest.raises(NativeMessagingError):
        read_message(io.BytesIO(b"\x05\x00"))
    with pytest.raises(NativeMessagingError):
        read_message(io.BytesIO(struct.pack("@I", 10) + b"{}"))


def test_non_object_message_is_rejected():
    with pytest.raises(NativeMessagingError):
        read_message(io.BytesIO(frame([1, 2, 3])))


def test_set_token_and_status(host, credentials):
    assert host.handle({"type": "SET_TOKEN", "token": "abc"}) == {"success": True}
    assert credentials.token == "abc"

    host.handle({"type": "TAB_ACTIVATED", **tab("https://github.com/acme")})
    status = host.handle({"type": "GET_STATUS"})
    assert status == {
        "isTracking": True,
        "currentSite": "github.com",
        "isAuthenticated": True,
        "isIdle": False,
        "activeTask": None,
    }


def test_internal_page_closes_without_opening(host, sync, fake_clock):
    host.handle({"type": "TAB_ACTIVATED", **tab("https://github.com/acme")})
    fake_clock.advance(20)
    host.handle({"type": "TAB_ACTIVATED", **tab("chrome://extensions")})

    assert sync.dispatch.call_args.args[0].duration == 20
    assert host.handle({"type": "GET_STATUS"})["isTracking"] is False


def test_tab_updated_only_counts_completed_loads(host):
    host.handle({"type": "TAB_UPDATED", "status": "loading", **tab("https://github.com/")})
    assert not host.session.emitter.is_tracking
    host.handle({"type": "TAB_UPDATED", "status": "complete", **tab("https://github.com/")})
    assert host.session.emitter.is_tracking


def test_browser_losing_focus_closes_the_activity(host, fake_clock):
    host.handle({"type": "TAB_ACTIVATED", **tab("https://github.com/")})
    host.handle({"type": "WINDOW_FOCUS_CHANGED", "windowId": -1})
    assert not host.session.emitter.is_tracking

    host.handle({"type": "WINDOW_FOCUS_CHANGED", "windowId": 3, **tab("https://docs.python.org/")})
    assert host.session.emitter.current.target.domain == "docs.python.org"


def test_os_idle_pauses_and_activity_resumes(host, sync, fake_clock):
    host.handle({"type": "TAB_ACTIVATED", **tab("https://github.com/")})
    fake_clock.advance(40)
    host.handle({"type": "IDLE_STATE_CHANGED", "state": "locked"})
    assert host.session.emitter.is_suspended
    assert sync.dispatch.call_args.args[0].duration == 40

    fake_clock.advance(600)
    host.handle({"type": "IDLE_STATE_CHANGED", "state": "active"})
    fake_clock.advance(10)
    assert host.session.emitter.snapshot().duration == 50


def test_content_interaction_merges_metadata(host, fake_clock):
    host.handle({"type": "TAB_ACTIVATED", **tab("https://github.com/")})
    host.handle({"type": "CONTENT_INTERACTION", "data": {"scrollDepth": 80, "keystrokes": 12}})
    fake_clock.advance(6)
    metadata = host.session.emitter.snapshot().metadata
    assert metadata["scrollDepth"] == 80
    assert metadata["keystrokes"] == 12


def test_task_tracking_links_and_unlinks(host, fake_clock):
    host.handle({"type": "TAB_ACTIVATED", **tab("https://github.com/")})
    host.handle({"type": "START_TASK_TRACKING", "taskId": "card-1", "taskTitle": "Review"})
    assert host.session.emitter.current.metadata["taskId"] == "card-1"
    host.handle({"type": "STOP_TASK_TRACKING"})
    assert "taskId" not in host.session.emitter.current.metadata


def test_pause_and_resume_tracking(host, fake_clock):
    host.handle({"type": "TAB_ACTIVATED", **tab("https://github.com/")})
    fake_clock.advance(10)
    host.handle({"type": "PAUSE_TRACKING"})
    fake_clock.advance(100)
    host.handle({"type": "RESUME_TRACKING"})
    fake_clock.advance(5)
    assert host.session.emitter.snapshot().duration == 15


def test_visibility_loss_flushes(host, sync, fake_clock):
    host.handle({"type": "TAB_ACTIVATED", **tab("https://github.com/")})
    fake_clock.advance(33)
    host.handle({"type": "VISIBILITY_CHANGED", "hidden": True})
    assert sync.dispatch.call_args.args[0].is_active is True


def test_suspend_sends_beacon(host, sync, fake_clock):
    host.handle({"type": "TAB_ACTIVATED", **tab("https://github.com/")})
    fake_clock.advance(45)
    host.handle({"type": "SUSPEND"})
    assert sync.beacon.call_args.args[0].duration == 45


def test_unknown_message(host):
    response = host.handle({"type": "FLY"})
    assert response["success"] is False


def test_run_answers_each_message_and_flushes_on_eof(host, sync, fake_clock):
    stdin = io.BytesIO(
        frame({"type": "SET_TOKEN", "token": "abc"}) + frame({"type": "TAB_ACTIVATED", **tab("https://github.com/")})
    )
    stdout = io.BytesIO()

    host.run(stdin, stdout)

    stdout.seek(0)
    assert read_message(stdout) == {"success": True}
    assert read_message(stdout) == {"success": True}
    assert read_message(stdout) is None
    sync.beacon.assert_called_once()


def test_invalid_json_frame_is_an_invalid_message():
    with pytest.raises(InvalidMessage):
        read_message(io.BytesIO(struct.pack("@I", 5) + b"{nope"))


def test_run_keeps_reading_after_an_unreadable_frame(host):
    stdin = io.BytesIO(struct.pack("@I", 5) + b"{nope" + frame({"type": "SET_TOKEN", "token": "abc"}))
    stdout = io.BytesIO()

    host.run(stdin, stdout)

    stdout.seek(0)
    assert read_message(stdout)["success"] is False
    assert read_message(stdout) == {"success": True}
    assert host.credentials.token == "abc"


def test_reading_without_input_is_not_idle(host, fake_clock, fake_monotonic):
    host.handle({"type": "TAB_ACTIVATED", **tab("https://docs.python.org/3/")})
    for _ in range(72):
        advance(fake_clock, fake_monotonic, 5)
        host.session.idle_check_job()

    assert not host.session.emitter.is_suspended
    assert not host.session.idle.is_idle
    assert host.session.emitter.snapshot().duration == 360


def test_browser_sessions_do_not_schedule_idle_checks(host):
    host.session.start()
    host.timer.session.start()

    for tracked in host.sessions:
        job_ids = [call.kwargs["id"] for call in tracked.scheduler.add_job.call_args_list]
        assert IDLE_CHECK_JOB_ID not in job_ids


def test_timer_messages_record_a_productive_task(host, sync, fake_clock):
    response = host.handle(
        {
            "type": "START_TIMER",
            "cardId": "card-1",
            "cardTitle": "Fix login",
            "boardId": "board-9",
            "listId": "list-2",
            "boardName": "Sprint",
        }
    )
    assert response == {"success": True}
    assert host.handle({"type": "GET_STATUS"})["activeTask"] == "card-1"
    fake_clock.advance(90)

    assert host.handle({"type": "STOP_TIMER"}) == {"success": True, "duration": 90}
    record = sync.dispatch.call_args.args[0]
    assert record.type == "task"
    assert record.task_id == "card-1"
    assert record.category == "productive"
    assert record.is_active is False
    assert host.handle({"type": "GET_STATUS"})["activeTask"] is None


def test_start_timer_requires_a_card(host):
    assert host.handle({"type": "START_TIMER", "cardTitle": "No id"})["success"] is False
    assert not host.timer.is_running


def test_timer_runs_alongside_browsing(host, fake_clock, fake_monotonic):
    host.handle({"type": "TAB_ACTIVATED", **tab("https://github.com/")})
    host.handle({"type": "START_TIMER", "cardId": "card-1", "cardTitle": "Review"})
    for _ in range(70):
        advance(fake_clock, fake_monotonic, 5)
        for tracked in host.sessions:
            tracked.idle_check_job()

    assert host.session.emitter.snapshot().duration == 350
    assert host.timer.elapsed() == 350


def test_os_idle_pauses_the_timer_too(host, fake_clock):
    host.handle({"type": "START_TIMER", "cardId": "card-1", "cardTitle": "Review"})
    fake_clock.advance(30)
    host.handle({"type": "IDLE_STATE_CHANGED", "state": "idle"})
    assert host.timer.session.emitter.is_suspended

    fake_clock.advance(200)
    host.handle({"type": "IDLE_STATE_CHANGED", "state": "active"})
    fake_clock.advance(15)
    assert host.handle({"type": "STOP_TIMER"})["duration"] == 45


def test_timer_visibility_flushes_the_timer(host, sync, fake_clock):
    host.handle({"type": "START_TIMER", "cardId": "card-1", "cardTitle": "Review"})
    fake_clock.advance(40)
    host.handle({"type": "TIMER_VISIBILITY", "hidden": True})
    record = sync.dispatch.call_args.args[0]
    assert record.task_id == "card-1"
    assert record.is_active is True


def test_suspend_beacons_browser_and_timer(host, sync, fake_clock):
    host.handle({"type": "TAB_ACTIVATED", **tab("https://github.com/")})
    host.handle({"type": "START_TIMER", "cardId": "card-1", "cardTitle": "Review"})
    fake_clock.advance(20)
    host.handle({"type": "SUSPEND"})

    beaconed = sorted(call.args[0].type for call in sync.beacon.call_args_list)
    assert beaconed == ["task", "website"]
