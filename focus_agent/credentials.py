"""
Local JSON store for the agent's bearer token and client-side settings.
"""
import json
import logging
import os
import threading
from typing import Any, Dict, Optional

from . import config

log = logging.getLogger(__name__)

TOKEN_KEY = "authToken"
IDLE_TIMEOUT_KEY = "idleTimeoutSeconds"


class CredentialStore:
    def __init__(self, path: Optional[str] = config.STATE_FILE):
        self.path = path
        self._lock = threading.Lock()
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.path or not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return data if isinstance(data, dict) else {}
        except (OSError, json.JSONDecodeError) as e:
            log.error(f"Could not read agent state from {self.path}: {e}")
            return {}

    def _save(self):
        if not self.path:
            return
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(self._data, f)
        except OSError as e:
            log.error(f"Could not write agent state to {self.path}: {e}")

    def _set(self, key: str, value: Any):
        with self._lock:
            if value is None:
                self._data.pop(key, None)
            else:
                self._data[key] = value
            self._save()

    @property
    def token(self) -> Optional[str]:
        return self._data.get(TOKEN_KEY)

    @token.setter
    def token(self, value: Optional[str]):
        self._set(TOKEN_KEY, value)
        if value:
            log.info("Token saved")

    def clear_token(self):
        self._set(TOKEN_KEY, None)
        log.info("Token cleared")

    @property
    def idle_timeout(self) -> Optional[int]:
        return self._data.get(IDLE_TIMEOUT_KEY)

    @idle_timeout.setter
    def idle_timeout(self, seconds: Optional[int]):
        self._set(IDLE_TIMEOUT_KEY, seconds)
