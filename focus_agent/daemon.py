"""
Focus Agent entry point.

    python -m focus_agent.daemon run            # desktop window tracker
    python -m focus_agent.daemon native-host    # browser extension host (stdio)
    python -m focus_agent.daemon login USER
    python -m focus_agent.daemon set-idle-timeout SECONDS
"""
import argparse
import atexit
import getpass
import logging
import signal
import sys
import time
from typing import Optional, TextIO

from . import config
from .credentials import CredentialStore
from .desktop import DesktopTracker
from .emitter import ActivityEmitter
from .idle import IdleDetector
from .input_monitor import InputMonitor
from .native_host import BrowserHost
from .session import TrackingSession
from .sync import SyncClient
from .window_source import ActivityWatchWindowSource

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# LOGGING SETUP
# ---------------------------------------------------------------------------
def setup_logging(console_stream: TextIO = sys.stdout):
    """Configures logging for the agent. The native host must log to stderr; stdout is its pipe."""
    log_format = "%(asctime)s - %(levelname)s - [%(threadName)s:%(name)s] - %(message)s"
    log_level = getattr(logging, config.LOG_LEVEL, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Console Handler
    console_handler = logging.StreamHandler(console_stream)
    console_handler.setFormatter(logging.Formatter(log_format))
    root_logger.addHandler(console_handler)

    # File Handler (optional)
    if config.LOG_FILE:
        try:
            file_handler = logging.FileHandler(config.LOG_FILE, mode='a')
            file_handler.setFormatter(logging.Formatter(log_format))
            root_logger.addHandler(file_handler)
        except Exception as e:
            print(f"Error setting up file logger at {config.LOG_FILE}: {e}", file=sys.stderr)

    # Quiet noisy libraries
    logging.getLogger("apscheduler.scheduler").setLevel(logging.WARNING)
    logging.getLogger("apscheduler.executors.default").setLevel(logging.WARNING)
    logging.getLogger("urllib3.connectionpool").setLevel(logging.INFO)
    logging.getLogger("aw_client.client").setLevel(logging.INFO)


def build_session(credentials: Optional[CredentialStore] = None) -> TrackingSession:
    credentials = credentials or CredentialStore()
    timeout = credentials.idle_timeout
    idle = IdleDetector(timeout_seconds=config.IDLE_TIMEOUT_SECONDS if timeout is None else timeout)
    return TrackingSession(ActivityEmitter(), idle, SyncClient(credentials))


# ---------------------------------------------------------------------------
# COMMANDS
# ---------------------------------------------------------------------------
def run_desktop() -> int:
    log.info("--- Starting TaskFlow Focus Agent ---")
    session = build_session()
    tracker = DesktopTracker(session, ActivityWatchWindowSource())
    monitor = InputMonitor(session.record_input)

    # Process exit flushes the open activity by beacon; after a clean stop there is nothing left to send.
    atexit.register(session.teardown)
    signal.signal(signal.SIGTERM, lambda signum, frame: sys.exit(0))

    if not monitor.start():
        log.warning("Input listeners unavailable; idle detection relies on the window watcher only.")
    tracker.start()
    try:
        # Keep the main thread alive while the scheduler runs in the background
        while True:
            time.sleep(1)
    except (KeyboardInterrupt, SystemExit):
        log.info("Shutdown signal received.")
    finally:
        monitor.stop()
        tracker.stop()
    log.info("TaskFlow Focus Agent stopped.")
    return 0


def run_native_host() -> int:
    credentials = CredentialStore()
    host = BrowserHost(build_session(credentials), credentials)
    host.run(sys.stdin.buffer, sys.stdout.buffer)
    return 0


def login(username: str) -> int:
    client = SyncClient(CredentialStore())
    if client.login(username, getpass.getpass("Password: ")):
        print("Signed in.")
        return 0
    print("Sign-in failed.", file=sys.stderr)
    return 1


def set_idle_timeout(seconds: int) -> int:
    session = build_session()
    if session.set_idle_timeout(seconds):
        print(f"Idle timeout set to {seconds}s." if seconds else "Idle detection disabled.")
        return 0
    print("Only privileged users can change the idle timeout.", file=sys.stderr)
    return 1


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="focus-agent", description="TaskFlow productivity tracking agent")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("run", help="Track the foreground application window")
    subparsers.add_parser("native-host", help="Serve the browser extension and card timers over native messaging")
    login_parser = subparsers.add_parser("login", help="Sign in and store the access token")
    login_parser.add_argument("username")
    timeout_parser = subparsers.add_parser("set-idle-timeout", help="Change the idle timeout (privileged users)")
    timeout_parser.add_argument("seconds", type=int, help="Seconds without input before pausing; 0 disables")
    args = parser.parse_args(argv)

    setup_logging(console_stream=sys.stderr if args.command == "native-host" else sys.stdout)
    if args.command == "run":
        return run_desktop()
    if args.command == "native-host":
        return run_native_host()
    if args.command == "login":
        return login(args.username)
    return set_idle_timeout(args.seconds)


if __name__ == "__main__":
    sys.exit(main())
