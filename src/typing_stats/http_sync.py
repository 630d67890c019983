#!/usr/bin/env python3
"""
HTTP synchronization client for Typing Stats.
Handles all HTTP communication with the shared remote day store.
"""

import json
import logging
import threading
from datetime import datetime
from typing import Dict, Optional

import requests

from .daily_stats import DailyAggregate
from .device import get_device_name
from .errors import LoadError, PayloadTooLarge
from .storage import ChangeCallback, RemoteStore

logger = logging.getLogger(__name__)

SOURCE = "typing-stats"
PAYLOAD_VERSION = "1.0"
# The shared store is a small key-value blob; keep each day well inside it.
MAX_PAYLOAD_BYTES = 1_000_000
REQUEST_TIMEOUT = (5, 15)  # (connect, read)


class SyncPayloadBuilder:
    """Builds payloads for the remote day store."""

    def __init__(self, device: str = ""):
        self.device = device
        self.device_name = get_device_name()

    def create_day_payload(self, aggregate: DailyAggregate) -> Dict:
        """Create the upsert payload for one day."""
        return {
            "timestamp": datetime.now().isoformat(),
            "day": aggregate.day,
            "record": aggregate.to_dict(),
            "source": SOURCE,
            "device": self.device,
            "device_name": self.device_name,
            "version": PAYLOAD_VERSION,
        }


class HttpSyncClient(RemoteStore):
    """Remote store backed by an HTTP endpoint.

    ``GET {endpoint}/days`` returns ``{"days": {day: record}}`` and
    ``PUT {endpoint}/days/{day}`` upserts a single day.
    """

    def __init__(
        self,
        endpoint: str,
        auth_token: str = "",  # nosec B107
        device: str = "",
        poll_interval: float = 60.0,
        max_payload_bytes: int = MAX_PAYLOAD_BYTES,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.auth_token = auth_token
        self.poll_interval = poll_interval
        self.max_payload_bytes = max_payload_bytes
        self.payload_builder = SyncPayloadBuilder(device)
        self._poller: Optional[RemoteChangePoller] = None

    @property
    def days_url(self) -> str:
        return f"{self.endpoint}/days"

    def _get_headers(self) -> Dict[str, str]:
        """Get request headers including authentication if configured."""
        headers = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    def load_all(self) -> Dict[str, DailyAggregate]:
        """Fetch every day currently held by the remote store."""
        try:
            response = requests.get(
                self.days_url, headers=self._get_headers(), timeout=REQUEST_TIMEOUT
            )
        except requests.exceptions.RequestException as e:
            raise LoadError(f"Network error loading remote days: {e}") from e

        if response.status_code == 404:
            # Nothing has been published yet
            return {}
        if response.status_code != 200:
            raise LoadError(
                f"Loading remote days failed: HTTP {response.status_code}"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise LoadError(f"Remote store returned invalid JSON: {e}") from e

        records = body.get("days") if isinstance(body, dict) else None
        if not isinstance(records, dict):
            if records is None and isinstance(body, dict):
                return {}
            raise LoadError(f"Remote store returned an unexpected body: {body!r}")

        days: Dict[str, DailyAggregate] = {}
        for key, record in records.items():
            try:
                aggregate = DailyAggregate.from_dict(record)
            except (ArithmeticError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed remote day %s: %s", key, e)
                continue
            days[aggregate.day] = aggregate
        return days

    def _encode_payload(self, aggregate: DailyAggregate) -> bytes:
        payload = self.payload_builder.create_day_payload(aggregate)
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        if len(body) > self.max_payload_bytes:
            raise PayloadTooLarge(len(body), self.max_payload_bytes)
        return body

    def save(self, aggregate: DailyAggregate) -> bool:
        """Upsert this device's merged view of one day."""
        try:
            body = self._encode_payload(aggregate)
        except PayloadTooLarge as e:
            logger.warning("Not syncing %s: %s", aggregate.day, e)
            return False

        try:
            response = requests.put(
                f"{self.days_url}/{aggregate.day}",
                data=body,
                headers=self._get_headers(),
                timeout=REQUEST_TIMEOUT,
            )
        except requests.exceptions.RequestException as e:
            logger.warning("Network error syncing %s: %s", aggregate.day, e)
            return False

        if response.status_code in [200, 201, 204]:
            logger.debug(
                "Synced %s: %d keystrokes", aggregate.day, aggregate.total_keystrokes
            )
            return True

        logger.warning(
            "Sync failed for %s: HTTP %s - %s",
            aggregate.day,
            response.status_code,
            response.text,
        )
        return False

    def observe_changes(self, callback: ChangeCallback) -> None:
        """Poll the remote store in the background and report changed days."""
        self.stop()
        self._poller = RemoteChangePoller(self, callback, self.poll_interval)
        self._poller.start()

    def stop(self) -> None:
        if self._poller is not None:
            self._poller.stop()
            self._poller = None

    def test_connection(self) -> bool:
        """Test connection to the sync endpoint."""
        try:
            response = requests.get(
                self.days_url, headers=self._get_headers(), timeout=REQUEST_TIMEOUT
            )
            return response.status_code < 500
        except requests.exceptions.RequestException:
            return False


class RemoteChangePoller:
    """Background thread delivering remote days that changed between polls.

    The first poll delivers every remote day; merging is idempotent, so
    redelivery is harmless.
    """

    def __init__(self, store: RemoteStore, callback: ChangeCallback, interval: float):
        self.store = store
        self.callback = callback
        self.interval = interval
        self._seen: Dict[str, DailyAggregate] = {}
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def poll_once(self) -> int:
        """Fetch remote days once and deliver the changed ones."""
        try:
            remote_days = self.store.load_all()
        except LoadError as e:
            logger.warning("Remote poll failed: %s", e)
            return 0

        changed = [
            aggregate
            for day, aggregate in sorted(remote_days.items())
            if self._seen.get(day) != aggregate
        ]
        if not changed:
            return 0

        self.callback(changed)
        for aggregate in changed:
            self._seen[aggregate.day] = aggregate
        return len(changed)

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.poll_once()
            except Exception as e:
                logger.warning("Error delivering remote changes: %s", e)
            self._stop_event.wait(self.interval)

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="RemoteChangePoller", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=self.interval + 1)
        self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
