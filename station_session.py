#!/usr/bin/env python3
"""
Station sessions
One session per mounted station: owns the workcenter context, the session
log and (for pack stations) the pack list, and serialises every operator
command through a single busy flag.
"""

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pack_accumulator import BatchResult, PackAccumulator
from scan_validator import Rejected, ScanOutcome, validate
from session_log import Severity, SessionLog
from station_config import StationProfile
from station_errors import ContextLookupError, StationBusyError, StationError
from workcenter_context import LoadStatus, WorkcenterContext

Listener = Callable[[str, Any], None]


class ScanStatus(Enum):
    IDLE = "Idle"
    LOADING = "Loading"
    READY = "Ready"
    ERROR = "Error"


class StationSession(ABC):
    """Shared scan/refresh plumbing for all station kinds"""

    def __init__(self, profile: StationProfile, plex):
        self.profile = profile
        self.plex = plex
        self.log = SessionLog()
        self.context = WorkcenterContext(
            profile.workcenter_key,
            needs_std_pack_qty=profile.accumulates,
            on_status=lambda status: self._emit("context_status", status.value),
        )
        self.scan_status = ScanStatus.IDLE
        self.closed = False
        self._lock = threading.Lock()
        self._listeners: List[Listener] = []
        self.log.subscribe(lambda entry: self._emit("log", entry.to_dict()))

    @property
    def name(self) -> str:
        return self.profile.name

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _emit(self, event: str, payload: Any) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, payload)
            except Exception as e:
                logging.warning(f"Station {self.name} listener failed on {event}: {e}")

    def _set_scan_status(self, status: ScanStatus) -> None:
        if status != self.scan_status:
            self.scan_status = status
            self._emit("scan_status", status.value)

    # ------------------------------------------------------------------
    # Busy flag
    # ------------------------------------------------------------------

    @contextmanager
    def _busy(self):
        """Claim the station for one command; refuse if another is in flight."""
        with self._lock:
            if self.closed:
                raise StationError(f"Station {self.name} is closed.")
            if self.scan_status == ScanStatus.LOADING:
                raise StationBusyError("Station is busy, please wait.")
            self._set_scan_status(ScanStatus.LOADING)
        try:
            yield
        finally:
            self._set_scan_status(self._settled_status())

    def _settled_status(self) -> ScanStatus:
        if self.context.is_loaded:
            return ScanStatus.READY
        if self.context.load_status == LoadStatus.ERROR:
            return ScanStatus.ERROR
        return ScanStatus.IDLE

    @property
    def scan_enabled(self) -> bool:
        return self.context.is_loaded and self.scan_status == ScanStatus.READY

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def refresh(self) -> bool:
        """Reload the workcenter context. Returns True when it loaded."""
        try:
            with self._busy():
                return self._refresh_context()
        except StationError as e:
            logging.warning(f"Refresh of {self.name} refused: {e.message}")
            return False

    def _refresh_context(self) -> bool:
        try:
            self.context.refresh(self.plex)
        except ContextLookupError as e:
            logging.error(f"Station {self.name}: workcenter refresh failed: {e.message}")
            return False
        self._on_context_loaded()
        return True

    def _on_context_loaded(self) -> None:
        pass

    def handle_scan(self, serial_no: str) -> ScanOutcome:
        """Run one scan through validation and commit; never raises.

        Every outcome leaves exactly one terminal entry in the session log,
        refusals included.
        """
        if not self.context.is_loaded:
            return self._refuse_scan(serial_no, "Workcenter info is not loaded.")
        try:
            with self._busy():
                return self._process_scan((serial_no or "").strip())
        except StationError as e:
            return self._refuse_scan(serial_no, e.message)

    def _refuse_scan(self, serial_no: str, reason: str) -> Rejected:
        logging.warning(f"Scan {serial_no} refused at {self.name}: {reason}")
        self.log.error(reason)
        return Rejected(reason)

    @abstractmethod
    def _process_scan(self, serial_no: str) -> ScanOutcome:
        """Validate and commit one trimmed serial; runs with the station busy."""

    def _validate(self, serial_no: str, progress=None) -> ScanOutcome:
        return validate(serial_no, self.context, self.plex, self.profile, progress=progress)

    def close(self, force: bool = False) -> None:
        self.closed = True
        self._listeners.clear()
        logging.info(f"Station {self.name} session closed")

    def state(self) -> Dict[str, Any]:
        return {
            "station": self.name,
            "display_name": self.profile.display_name,
            "workcenter": self.context.to_dict(),
            "scan_status": self.scan_status.value,
            "scan_enabled": self.scan_enabled,
            "log": [e.to_dict() for e in self.log.entries],
            "background": self.log.background,
        }


class EdgefoldStation(StationSession):
    """Single-unit station: each accepted scan records production for that unit."""

    def _process_scan(self, serial_no: str) -> ScanOutcome:
        self.log.clear()
        outcome = self._validate(serial_no, progress=self.log.record)
        if outcome.accepted:
            self.log.success(outcome.message)
            # Context quantities are stale after a production record
            self._refresh_context()
        else:
            self.log.error(outcome.reason)
        return outcome


class PackStation(StationSession):
    """Batch station: accepted scans fill a pack list that is recorded as one container."""

    def __init__(self, profile: StationProfile, plex):
        super().__init__(profile, plex)
        self.accumulator = PackAccumulator(on_change=lambda members: self._emit("members", members))

    def _on_context_loaded(self) -> None:
        self._sync_target_quantity()

    def _sync_target_quantity(self) -> None:
        """Adopt the loaded std pack qty, but only between pack cycles.

        The list in progress keeps the target it was started with so it can
        never hold more units than its target.
        """
        qty = self.context.std_pack_qty
        if qty is None or qty == self.accumulator.target_quantity:
            return
        if len(self.accumulator) or self.accumulator.pending_serial_no:
            logging.warning(
                f"Station {self.name}: std pack qty is now {qty}, keeping "
                f"{self.accumulator.target_quantity} until the current pack list is packed"
            )
            return
        self.accumulator.target_quantity = qty

    def _start_cycle_if_empty(self) -> None:
        if len(self.accumulator) == 0:
            self.log.clear()
            self._sync_target_quantity()

    @property
    def scan_enabled(self) -> bool:
        return super().scan_enabled and not self.accumulator.is_full

    def _process_scan(self, serial_no: str) -> ScanOutcome:
        self._start_cycle_if_empty()

        # Refuse before touching Plex so a refused scan has no side effects
        if serial_no in self.accumulator:
            reason = "This serial number is already in the pack list."
            self.log.record(reason, Severity.ERROR)
            return Rejected(reason)
        if self.accumulator.is_full:
            reason = "Pack list is full. Pack it before scanning more units."
            self.log.error(reason)
            return Rejected(reason)

        outcome = self._validate(serial_no)
        if outcome.accepted:
            self.log.success(outcome.message)
            self.accumulator.add(serial_no)
        else:
            self.log.error(outcome.reason)
        return outcome

    def unload(self, serial_no: str) -> bool:
        """Take a unit off the pack list and move it back to assembly."""
        serial_no = (serial_no or "").strip()
        try:
            with self._busy():
                self._start_cycle_if_empty()
                try:
                    message = self.accumulator.remove(serial_no, self.plex, self.profile.return_location)
                except StationError as e:
                    self.log.error(e.message)
                    return False
                self.log.success(message)
                return True
        except StationError as e:
            logging.warning(f"Unload of {serial_no} refused at {self.name}: {e.message}")
            return False

    def pack(self, allow_partial: bool = False) -> Optional[BatchResult]:
        """Record the pack list as one container and print its label."""
        try:
            with self._busy():
                try:
                    result = self.accumulator.complete(
                        self.plex,
                        self.profile,
                        progress=self.log.record,
                        refresh=self._refresh_context,
                        allow_partial=allow_partial,
                    )
                except StationError as e:
                    self.log.error(e.message)
                    return None
                self._sync_target_quantity()
                self.log.success(result.messages[-1])
                return result
        except StationError as e:
            logging.warning(f"Pack at {self.name} refused: {e.message}")
            return None

    def close(self, force: bool = False) -> None:
        if len(self.accumulator) and not force:
            raise StationError(
                f"Pack list still holds {len(self.accumulator)} unit(s). Pack or unload them before leaving."
            )
        super().close(force=force)

    def state(self) -> Dict[str, Any]:
        state = super().state()
        state["pack_list"] = {
            "members": self.accumulator.members,
            "target_quantity": self.accumulator.target_quantity,
            "remaining": self.accumulator.remaining,
            "is_full": self.accumulator.is_full,
            "pending_serial_no": self.accumulator.pending_serial_no,
        }
        return state


def create_station(profile: StationProfile, plex) -> StationSession:
    if profile.accumulates:
        return PackStation(profile, plex)
    return EdgefoldStation(profile, plex)
