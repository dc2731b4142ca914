"""
Sync client for the Focus Agent.
Delivers activity records to the TaskFlow API.

Every sync is an independent create-or-continue POST; the server folds
repeated syncs of the same activity together by its client id. Failures are
logged and the record dropped: there is no retry and no queue. The next
heartbeat or the terminal flush carries the cumulative duration anyway.
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Dict, Optional

import requests

from . import config
from .credentials import CredentialStore
from .idle import Principal
from .models import ActivityRecord

log = logging.getLogger(__name__)


class SyncClient:
    def __init__(
        self,
        credentials: CredentialStore,
        api_url: str = config.API_URL,
        http: Optional[requests.Session] = None,
        min_duration: int = config.MIN_SYNC_DURATION_SECONDS,
    ):
        self.credentials = credentials
        self.api_url = api_url.rstrip("/")
        self.http = http or requests.Session()
        self.min_duration = min_duration
        self._executor: Optional[ThreadPoolExecutor] = None

    @property
    def activities_url(self) -> str:
        return f"{self.api_url}/activities"

    def _should_send(self, record: ActivityRecord) -> Optional[str]:
        """Returns the token to send with, or None when this sync is suppressed."""
        if record.duration < self.min_duration:
            log.debug(f"Skipping sync of {record.client_id}: {record.duration}s is below the {self.min_duration}s floor")
            return None
        token = self.credentials.token
        if not token:
            log.info("No auth token, skipping save")
            return None
        return token

    def push(self, record: ActivityRecord) -> Optional[Dict[str, Any]]:
        """
        Sends one sync and waits for the answer.
        Returns the saved activity as the server echoes it, or None when nothing was saved.
        """
        token = self._should_send(record)
        if token is None:
            return None
        headers = {"Authorization": f"Bearer {token}"}
        try:
            response = self.http.post(self.activities_url, json=record.to_payload(), headers=headers)
        except requests.exceptions.RequestException as e:
            log.error(f"Error saving activity {record.client_id}: {e}")
            return None

        if response.status_code == 401:
            log.warning("Server rejected the auth token (401). Clearing it; activity is not saved until re-authentication.")
            self.credentials.clear_token()
            return None
        if not response.ok:
            log.error(f"Failed to save activity {record.client_id}: {response.status_code} - {response.text}")
            return None
        log.info(
            f"Activity saved: {record.type} {record.duration}s "
            f"({'update' if record.is_active else 'final'})"
        )
        try:
            return response.json()
        except ValueError:
            return {}

    def dispatch(self, record: ActivityRecord) -> Optional[Future]:
        """Queues `push` on a background worker so the caller never waits on the network."""
        if record.duration < self.min_duration:
            return None
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="sync")
        return self._executor.submit(self.push, record)

    def beacon(self, record: ActivityRecord) -> Optional[threading.Thread]:
        """
        Fire-and-forget delivery for teardown. The request runs on a daemon
        thread, the response is ignored, and the token travels in the query
        string so the request needs no further round trips.
        """
        token = self._should_send(record)
        if token is None:
            return None
        thread = threading.Thread(
            target=self._send_beacon,
            args=(token, record.to_payload()),
            name="sync-beacon",
            daemon=True,
        )
        thread.start()
        log.info(f"Final update sent via beacon ({record.duration}s)")
        return thread

    def _send_beacon(self, token: str, payload: Dict[str, Any]):
        try:
            requests.post(self.activities_url, params={"token": token}, json=payload)
        except requests.exceptions.RequestException as e:
            log.debug(f"Beacon delivery failed: {e}")

    def shutdown(self, wait: bool = True):
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None

    # ------------------------------------------------------------------
    # Account helpers
    # ------------------------------------------------------------------
    def login(self, username: str, password: str) -> bool:
        try:
            response = self.http.post(
                f"{self.api_url}/auth/token", data={"username": username, "password": password}
            )
        except requests.exceptions.RequestException as e:
            log.error(f"Login request failed: {e}")
            return False
        if not response.ok:
            log.error(f"Login failed: {response.status_code} - {response.text}")
            return False
        self.credentials.token = response.json()["access_token"]
        return True

    def fetch_principal(self) -> Optional[Principal]:
        """The authenticated user as a Principal, or None when not signed in."""
        token = self.credentials.token
        if not token:
            return None
        try:
            response = self.http.get(f"{self.api_url}/auth/me", headers={"Authorization": f"Bearer {token}"})
        except requests.exceptions.RequestException as e:
            log.error(f"Could not fetch user profile: {e}")
            return None
        if response.status_code == 401:
            self.credentials.clear_token()
            return None
        if not response.ok:
            log.error(f"Could not fetch user profile: {response.status_code} - {response.text}")
            return None
        profile = response.json()
        return Principal(username=profile["username"], is_privileged=bool(profile.get("isPrivileged")))
