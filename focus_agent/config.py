"""
Configuration for the Focus Agent.
"""
import os
import socket

# Base URL of the TaskFlow API (v1 prefix included)
API_URL = os.getenv("TASKFLOW_API_URL", "http://localhost:8000/api/v1").rstrip("/")

# Where the agent keeps its bearer token and local settings between runs
STATE_FILE = os.getenv("FOCUS_AGENT_STATE_FILE", os.path.expanduser("~/.taskflow_agent.json"))

# --- Sync protocol (fixed, not user-configurable) ---
# Syncs representing less than this much activity are never sent
MIN_SYNC_DURATION_SECONDS = 5
# Interval between mid-flight updates of the open activity
HEARTBEAT_INTERVAL_SECONDS = 30

# --- Idle detection ---
# Default idle timeout; 0 disables idle detection. Only privileged users may change it.
IDLE_TIMEOUT_SECONDS = int(os.getenv("IDLE_TIMEOUT_SECONDS", 300))
# How often the idle state is re-evaluated
IDLE_CHECK_INTERVAL_SECONDS = int(os.getenv("IDLE_CHECK_INTERVAL_SECONDS", 5))
# Pointer-move events reset the idle timer at most this often
POINTER_MOVE_THROTTLE_SECONDS = 1.0

# Interval for polling the foreground window in seconds
WINDOW_POLL_INTERVAL_SECONDS = int(os.getenv("WINDOW_POLL_INTERVAL_SECONDS", 2))

# ActivityWatch specific settings
try:
    hostname = socket.gethostname()
except Exception:
    hostname = "localhost"

AW_HOSTNAME = os.getenv("AW_HOSTNAME", hostname)
AW_HOST = os.getenv("AW_HOST", "127.0.0.1")
AW_PORT = int(os.getenv("AW_PORT", 5600))
AW_CLIENT_NAME = "taskflow_focus_agent"
AW_WINDOW_BUCKET_ID = f"aw-watcher-window_{AW_HOSTNAME}"
# A window event older than this is treated as "no foreground window"
AW_STALE_AFTER_SECONDS = int(os.getenv("AW_STALE_AFTER_SECONDS", 10))

# Logging configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", "focus_agent.log") # Set to empty to log to console only
