"""Request log for upstream API traffic: requests, responses and errors."""

import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from ..core.enums import LogEntryType

logger = logging.getLogger(__name__)

SENSITIVE_HEADERS = ("x-cmc_pro_api_key", "authorization", "api-key")
MASK = "***"


@dataclass(frozen=True)
class LogEntry:
    """One request, response or error record."""
    type: LogEntryType
    method: str
    url: str
    params: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    status: Optional[int] = None
    status_text: str = ""
    data_size: Optional[int] = None
    duration_ms: Optional[float] = None
    error_message: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: str = field(default_factory=lambda: uuid.uuid4().hex)


Listener = Callable[[List[LogEntry]], None]


class RequestLog:
    """Size-bounded, append-only log of upstream traffic.

    The newest entry comes first; past *max_entries* the oldest is dropped.
    Listeners are notified with the current entries after every change.
    """

    def __init__(self, max_entries: int = 100):
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._entries: deque = deque(maxlen=max_entries)
        self._listeners: Dict[int, Listener] = {}
        self._next_listener_id = 0

    # ------------------------------------------------------------------
    # Writers
    # ------------------------------------------------------------------

    def add(self, entry: LogEntry) -> LogEntry:
        self._entries.appendleft(entry)
        self._notify()
        return entry

    def log_request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> LogEntry:
        return self.add(LogEntry(
            type=LogEntryType.REQUEST,
            method=method.upper(),
            url=url,
            params=dict(params or {}),
            headers=self.sanitize_headers(headers),
            status_text="pending",
        ))

    def log_response(
        self,
        method: str,
        url: str,
        status: int,
        status_text: str = "",
        data_size: Optional[int] = None,
        duration_ms: Optional[float] = None,
    ) -> LogEntry:
        return self.add(LogEntry(
            type=LogEntryType.RESPONSE,
            method=method.upper(),
            url=url,
            status=status,
            status_text=status_text,
            data_size=data_size,
            duration_ms=duration_ms,
        ))

    def log_error(
        self,
        method: str,
        url: str,
        error_message: str,
        status: Optional[int] = None,
        status_text: str = "",
        duration_ms: Optional[float] = None,
    ) -> LogEntry:
        return self.add(LogEntry(
            type=LogEntryType.ERROR,
            method=method.upper(),
            url=url,
            status=status,
            status_text=status_text or error_message,
            duration_ms=duration_ms,
            error_message=error_message,
        ))

    def clear(self) -> None:
        self._entries.clear()
        self._notify()

    @staticmethod
    def sanitize_headers(headers: Optional[Dict[str, str]]) -> Dict[str, str]:
        """Copy *headers* with credential-bearing values masked."""
        if not headers:
            return {}
        return {
            key: MASK if key.lower() in SENSITIVE_HEADERS else value
            for key, value in headers.items()
        }

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a handle that unregisters it."""
        listener_id = self._next_listener_id
        self._next_listener_id += 1
        self._listeners[listener_id] = listener

        def unsubscribe() -> None:
            self._listeners.pop(listener_id, None)

        return unsubscribe

    def listener_count(self) -> int:
        return len(self._listeners)

    def _notify(self) -> None:
        entries = self.get_logs()
        for listener in list(self._listeners.values()):
            try:
                listener(entries)
            except Exception as e:
                logger.error(f"Error in request log listener: {e}")

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get_logs(self) -> List[LogEntry]:
        return list(self._entries)

    def get_filtered_logs(
        self,
        entry_type: Optional[LogEntryType] = None,
        method: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[LogEntry]:
        """Filter by entry type, HTTP method, and ``"success"``/``"error"`` outcome."""
        entries = self.get_logs()
        if entry_type is not None:
            entries = [e for e in entries if e.type == entry_type]
        if method:
            entries = [e for e in entries if e.method == method.upper()]
        if status == "success":
            entries = [
                e for e in entries
                if e.type == LogEntryType.RESPONSE and e.status is not None and 200 <= e.status < 300
            ]
        elif status == "error":
            entries = [
                e for e in entries
                if e.type == LogEntryType.ERROR or (e.status is not None and e.status >= 400)
            ]
        return entries

    def get_stats(self) -> Dict[str, float]:
        """Counts per entry type and the share of completed calls that succeeded."""
        requests = sum(1 for e in self._entries if e.type == LogEntryType.REQUEST)
        responses = sum(1 for e in self._entries if e.type == LogEntryType.RESPONSE)
        errors = sum(1 for e in self._entries if e.type == LogEntryType.ERROR)
        completed = responses + errors
        return {
            "total": len(self._entries),
            "requests": requests,
            "responses": responses,
            "errors": errors,
            "success_rate": round(responses / completed * 100, 1) if completed else 0.0,
        }
