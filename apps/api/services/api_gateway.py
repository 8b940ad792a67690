"""
API Gateway contract.

The dashboard core never talks to storage or the network itself. Activities,
the active goal and calendar entries come from an API gateway collaborator,
and calendar mutations go back through it.

Units crossing this boundary are the stored ones: meters, seconds per
kilometer, minutes. Nothing converted (miles, M:SS) is ever sent upstream.

The core performs no retries, timeouts or cancellation; gateway adapters own
that and raise GatewayError when a call ultimately fails.
"""

from abc import ABC, abstractmethod
from datetime import date, timedelta
from threading import RLock
from typing import Dict, Iterable, List, Optional, Union
from uuid import UUID
import logging

from core.exceptions import NotFoundError
from schemas import Activity, CalendarEntry, CalendarEntryUpsert, EntryStatus, Goal
from services.time_windows import DAYS_PER_WEEK, to_local
from services.training_block import date_key, parse_date_key

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """Transient I/O failure talking to the gateway. Safe to retry later."""

    def __init__(self, operation: str, reason: str = "gateway unavailable"):
        super().__init__(f"{operation} failed: {reason}")
        self.operation = operation
        self.reason = reason


class APIGateway(ABC):
    """Everything the dashboard core consumes from upstream."""

    @abstractmethod
    def list_activities(self) -> List[Activity]:
        pass

    @abstractmethod
    def get_active_goal(self) -> Optional[Goal]:
        """The active goal, or None when the athlete has not set one."""
        pass

    @abstractmethod
    def get_calendar_week(self, start_date_key: str) -> List[CalendarEntry]:
        """Entries for the 7 days beginning at start_date_key, by date."""
        pass

    @abstractmethod
    def upsert_calendar_entry(self, entry: CalendarEntryUpsert) -> CalendarEntry:
        """Create or fully replace the entry for entry.date. Idempotent per date."""
        pass

    @abstractmethod
    def delete_calendar_entry(self, entry_id: UUID) -> None:
        pass

    @abstractmethod
    def update_calendar_entry_status(self, entry_id: UUID, status: EntryStatus) -> None:
        pass


class InMemoryGateway(APIGateway):
    """
    Process-local gateway for development and tests.

    Calendar entries live in a dict keyed by date key, which is what makes
    upsert last-write-wins. set_available(False) makes every call raise
    GatewayError.
    """

    def __init__(
        self,
        activities: Iterable[Activity] = (),
        goal: Optional[Goal] = None,
        entries: Iterable[CalendarEntry] = (),
    ):
        self._lock = RLock()
        self._activities: List[Activity] = list(activities)
        self._goal = goal
        self._entries: Dict[str, CalendarEntry] = {date_key(e.date): e for e in entries}
        self._available = True

    # --- test/dev controls ---------------------------------------------------

    def set_available(self, available: bool) -> None:
        self._available = available

    def set_activities(self, activities: Iterable[Activity]) -> None:
        with self._lock:
            self._activities = list(activities)

    def set_goal(self, goal: Optional[Goal]) -> None:
        with self._lock:
            self._goal = goal

    def _check(self, operation: str) -> None:
        if not self._available:
            logger.warning(f"Gateway call {operation} failed: gateway marked unavailable")
            raise GatewayError(operation)

    def _find(self, entry_id: UUID) -> CalendarEntry:
        for entry in self._entries.values():
            if entry.id == entry_id:
                return entry
        raise NotFoundError("Calendar entry", str(entry_id))

    # --- contract -------------------------------------------------------------

    def list_activities(self) -> List[Activity]:
        self._check("list_activities")
        with self._lock:
            return sorted(self._activities, key=lambda a: to_local(a.start_time), reverse=True)

    def get_active_goal(self) -> Optional[Goal]:
        self._check("get_active_goal")
        with self._lock:
            if self._goal is None or not self._goal.is_active:
                return None
            return self._goal

    def get_calendar_week(self, start_date_key: Union[str, date]) -> List[CalendarEntry]:
        self._check("get_calendar_week")
        start = start_date_key if isinstance(start_date_key, date) else parse_date_key(start_date_key)
        end = start + timedelta(days=DAYS_PER_WEEK)
        with self._lock:
            return sorted(
                (e for e in self._entries.values() if start <= e.date < end),
                key=lambda e: e.date,
            )

    def upsert_calendar_entry(self, entry: CalendarEntryUpsert) -> CalendarEntry:
        self._check("upsert_calendar_entry")
        key = date_key(entry.date)
        with self._lock:
            existing = self._entries.get(key)
            fields = entry.model_dump()
            if existing is not None:
                # Row identity survives a conflict; every other field is replaced
                fields["id"] = existing.id
            stored = CalendarEntry(**fields)
            self._entries[key] = stored
        logger.info(f"Upserted calendar entry {stored.id} for {key} ({stored.workout_type.value})")
        return stored

    def delete_calendar_entry(self, entry_id: UUID) -> None:
        self._check("delete_calendar_entry")
        with self._lock:
            entry = self._find(entry_id)
            del self._entries[date_key(entry.date)]
        logger.info(f"Deleted calendar entry {entry_id}")

    def update_calendar_entry_status(self, entry_id: UUID, status: EntryStatus) -> None:
        self._check("update_calendar_entry_status")
        with self._lock:
            entry = self._find(entry_id)
            self._entries[date_key(entry.date)] = entry.model_copy(update={"status": EntryStatus(status)})
        logger.info(f"Calendar entry {entry_id} status -> {EntryStatus(status).value}")
