from unittest.mock import MagicMock

import pytest

from focus_agent.emitter import END, START, ActivityEmitter, TrackerState
from focus_agent.models import FocusTarget


@pytest.fixture
def sink():
    return MagicMock()


@pytest.fixture
def emitter(sink, fake_clock):
    return ActivityEmitter(sink=sink, clock=fake_clock)


GITHUB = FocusTarget.from_tab("https://github.com/acme/widgets", "acme/widgets")
DOCS = FocusTarget.from_tab("https://docs.python.org/3/", "Python docs")


def test_switch_focus_closes_previous_before_opening_next(emitter, sink, fake_clock):
    emitter.switch_focus(GITHUB)
    fake_clock.advance(42.7)

    closed = emitter.switch_focus(DOCS)

    assert closed.domain == "github.com"
    assert closed.duration == 42
    assert closed.is_active is False
    assert closed.end_time == fake_clock.now
    sink.assert_called_once_with(closed)
    assert emitter.current.target is DOCS


def test_same_target_is_a_no_op(emitter, sink, fake_clock):
    emitter.switch_focus(GITHUB)
    client_id = emitter.current.client_id
    fake_clock.advance(10)

    assert emitter.switch_focus(FocusTarget.from_tab(GITHUB.url, "new title")) is None
    assert emitter.current.client_id == client_id
    sink.assert_not_called()


def test_none_target_only_closes(emitter, sink, fake_clock):
    emitter.switch_focus(GITHUB)
    fake_clock.advance(8)

    closed = emitter.switch_focus(None)

    assert closed.duration == 8
    assert emitter.current is None
    assert emitter.switch_focus(None) is None
    assert sink.call_count == 1


def test_lifecycle_notifications(emitter, fake_clock):
    events = []
    emitter.subscribe(lambda event, record: events.append((event, record.domain)))

    emitter.switch_focus(GITHUB)
    fake_clock.advance(5)
    emitter.switch_focus(DOCS)

    assert events == [(START, "github.com"), (END, "github.com"), (START, "docs.python.org")]


def test_failing_listener_does_not_break_tracking(emitter, fake_clock):
    emitter.subscribe(MagicMock(side_effect=RuntimeError("boom")))
    emitter.switch_focus(GITHUB)
    assert emitter.is_tracking


def test_durations_add_up_to_focused_wall_clock_time(emitter, sink, fake_clock):
    targets = [GITHUB, DOCS, FocusTarget.from_window("Code", "main.py"), GITHUB, None]
    spans = [12.4, 30.9, 7.2, 61.0]
    for target, span in zip(targets, spans):
        emitter.switch_focus(target)
        fake_clock.advance(span)
    emitter.switch_focus(targets[-1])

    recorded = sum(call.args[0].duration for call in sink.call_args_list)
    assert abs(recorded - sum(spans)) <= len(spans)
    assert recorded <= sum(spans)


def test_resume_excludes_idle_time(emitter, sink, fake_clock):
    emitter.switch_focus(GITHUB)
    client_id = emitter.current.client_id
    fake_clock.advance(40)

    paused = emitter.suspend()
    fake_clock.advance(120)
    assert emitter.resume() is True
    fake_clock.advance(20)
    final = emitter.close()

    assert paused.duration == 40
    assert paused.is_active is False
    assert paused.metadata["isPaused"] is True
    assert final.duration == 60
    assert final.client_id == paused.client_id == client_id
    assert final.metadata["isPaused"] is False


def test_suspended_activity_stops_accumulating(emitter, fake_clock):
    emitter.switch_focus(GITHUB)
    fake_clock.advance(15)
    emitter.suspend()
    fake_clock.advance(600)

    assert emitter.snapshot() is None
    assert emitter.suspend() is None
    assert emitter.close().duration == 15


def test_snapshot_reports_progress_while_active(emitter, sink, fake_clock):
    opened_at = fake_clock.now
    emitter.switch_focus(GITHUB)
    fake_clock.advance(31)

    snapshot = emitter.snapshot()

    assert snapshot.duration == 31
    assert snapshot.is_active is True
    assert snapshot.start_time == opened_at
    assert snapshot.end_time == fake_clock.now
    assert emitter.is_tracking
    sink.assert_not_called()


def test_resume_without_suspension_is_ignored(emitter):
    assert emitter.resume() is False
    emitter.switch_focus(GITHUB)
    assert emitter.resume() is False


def test_website_activity_starts_with_zeroed_counters(emitter):
    record = emitter.open(GITHUB)
    assert record.metadata == {"tabCount": 0, "tabSwitches": 0, "scrollDepth": 0, "keystrokes": 0, "clicks": 0}


def test_merge_metadata_and_task_linkage(emitter, fake_clock):
    emitter.switch_focus(GITHUB)
    emitter.merge_metadata({"scrollDepth": 55, "clicks": 3})
    emitter.link_task("card-7", "Write docs")
    fake_clock.advance(9)

    linked = emitter.snapshot()
    assert linked.metadata["scrollDepth"] == 55
    assert linked.metadata["taskId"] == "card-7"
    assert linked.metadata["isUnifiedTracking"] is True

    emitter.unlink_task()
    unlinked = emitter.snapshot()
    assert "taskId" not in unlinked.metadata
    assert unlinked.metadata["isUnifiedTracking"] is False


def test_state_is_owned_and_injectable(sink, fake_clock):
    state = TrackerState()
    first = ActivityEmitter(sink=sink, clock=fake_clock, state=state)
    second = ActivityEmitter(sink=sink, clock=fake_clock)

    first.switch_focus(GITHUB)

    assert state.current is not None
    assert second.current is None


@pytest.mark.parametrize("url", [
    None,
    "",
    "chrome://newtab/",
    "chrome-extension://abc/popup.html",
    "edge://settings",
    "about:blank",
    "file:///home/me/notes.html",
])
def test_tabs_without_a_meaningful_target(url):
    assert FocusTarget.from_tab(url, "x") is None


def test_window_without_application_name():
    assert FocusTarget.from_window("", "Untitled") is None
    assert FocusTarget.from_window("   ") is None
    assert FocusTarget.from_window("Slack", "general").application == "Slack"


def test_window_title_change_is_the_same_focus():
    assert FocusTarget.from_window("Code", "a.py").identity == FocusTarget.from_window("Code", "b.py").identity


def test_task_target_is_productive():
    target = FocusTarget.from_task("card-1", "Fix login", board_id="board-9", list_id="list-2", board_name="Sprint")
    assert target.category == "productive"
    assert target.description == "Working on: Fix login"
    assert target.details == {"cardTitle": "Fix login", "listId": "list-2", "boardName": "Sprint"}


def test_record_payload_is_camel_case_and_sparse(emitter, fake_clock):
    emitter.switch_focus(FocusTarget.from_task("card-1", "Fix login", board_id="board-9"))
    fake_clock.advance(12)

    payload = emitter.snapshot().to_payload()

    assert payload["taskId"] == "card-1"
    assert payload["boardId"] == "board-9"
    assert payload["isActive"] is True
    assert payload["category"] == "productive"
    assert payload["startTime"] == "2025-03-10T09:00:00+00:00"
    assert "url" not in payload
