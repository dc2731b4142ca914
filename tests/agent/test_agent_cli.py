from unittest.mock import MagicMock, patch

import pytest

from focus_agent import daemon
from focus_agent.credentials import CredentialStore
from focus_agent.native_host import BrowserHost


def test_set_idle_timeout_command():
    session = MagicMock()
    session.set_idle_timeout.return_value = True
    with patch.object(daemon, "setup_logging"), patch.object(daemon, "build_session", return_value=session):
        assert daemon.main(["set-idle-timeout", "120"]) == 0
    session.set_idle_timeout.assert_called_once_with(120)


def test_set_idle_timeout_refused():
    session = MagicMock()
    session.set_idle_timeout.return_value = False
    with patch.object(daemon, "setup_logging"), patch.object(daemon, "build_session", return_value=session):
        assert daemon.main(["set-idle-timeout", "120"]) == 1


def test_build_session_uses_the_stored_idle_timeout():
    credentials = MagicMock(idle_timeout=0)
    session = daemon.build_session(credentials)
    assert session.idle.timeout == 0
    assert session.sync.credentials is credentials


def test_unknown_command_exits():
    with pytest.raises(SystemExit):
        daemon.main(["explode"])


def test_native_host_command_serves_browser_and_timer_sessions():
    credentials = CredentialStore(path=None)
    with patch.object(daemon, "setup_logging"), patch.object(daemon, "CredentialStore", return_value=credentials):
        with patch.object(BrowserHost, "run", autospec=True) as run:
            assert daemon.main(["native-host"]) == 0

    host = run.call_args.args[0]
    assert host.timer.session is not host.session
    assert host.timer.session.sync is host.session.sync
    assert all(not tracked.poll_idle for tracked in host.sessions)
