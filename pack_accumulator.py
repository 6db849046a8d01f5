"""
Pack list accumulation for batch stations.

Validated serials are collected in scan order until the standard pack
quantity is reached, then recorded as one production batch and labelled.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from plex_api.plex_client import PlexApiError
from station_config import StationProfile
from station_errors import CapacityError, CommitError, DuplicateError, ValidationError


@dataclass
class BatchResult:
    new_serial_no: str
    quantity: int
    members: List[str]
    messages: List[str] = field(default_factory=list)

    def to_dict(self):
        return {
            "new_serial_no": self.new_serial_no,
            "quantity": self.quantity,
            "members": list(self.members),
            "messages": list(self.messages),
        }


class PackAccumulator:
    """Ordered, duplicate-free pack list capped at the target quantity."""

    def __init__(self, target_quantity: Optional[int] = None,
                 on_change: Optional[Callable[[List[str]], None]] = None):
        self.target_quantity = target_quantity
        self._members: List[str] = []
        # New container serial whose production is recorded but whose label is not printed yet
        self.pending_serial_no: Optional[str] = None
        self._on_change = on_change

    @property
    def members(self) -> List[str]:
        return list(self._members)

    def __len__(self):
        return len(self._members)

    def __contains__(self, serial_no):
        return serial_no in self._members

    @property
    def is_full(self) -> bool:
        return bool(self.target_quantity) and len(self._members) >= self.target_quantity

    @property
    def remaining(self) -> int:
        if not self.target_quantity:
            return 0
        return max(0, self.target_quantity - len(self._members))

    def _changed(self):
        if self._on_change:
            self._on_change(self.members)

    def add(self, serial_no: str) -> bool:
        """Append a validated serial. Returns False when the list is already full."""
        if serial_no in self._members:
            raise DuplicateError("This serial number is already in the pack list.")
        if not self.target_quantity or self.is_full:
            logging.info(f"Pack list full ({len(self._members)}/{self.target_quantity}); {serial_no} ignored")
            return False
        self._members.append(serial_no)
        self._changed()
        return True

    def remove(self, serial_no: str, plex, return_location: str) -> str:
        """Move a unit back to the previous location and drop it from the list.

        The unit leaves the list even if the move fails; the move error is
        raised afterwards so the caller can log it.
        """
        if self.pending_serial_no:
            raise ValidationError(
                f"Production for pack {self.pending_serial_no} is already recorded. Print the label before unloading."
            )

        move_error = None
        try:
            plex.move_container(serial_no, return_location)
        except PlexApiError as e:
            move_error = e

        if serial_no in self._members:
            self._members.remove(serial_no)
            self._changed()

        if move_error is not None:
            logging.error(f"Failed to move {serial_no} back to {return_location}: {move_error}")
            raise CommitError(str(move_error)) from move_error
        return f"Container {serial_no} is unloaded ✔️"

    def clear(self) -> None:
        self._members.clear()
        self.pending_serial_no = None
        self._changed()

    def complete(self, plex, profile: StationProfile, progress: Optional[Callable[[str], None]] = None,
                 refresh: Optional[Callable[[], None]] = None, allow_partial: bool = False) -> BatchResult:
        """Record the batch, print its label, refresh the context and clear the list.

        Members are left untouched if any Plex call fails, so the operator can
        retry without re-scanning. A retry after a failed label print only
        reprints the label.
        """
        def _progress(text):
            if progress:
                progress(text)

        if not self._members:
            raise CapacityError("Pack list is empty.")
        if not self.is_full and not allow_partial:
            raise CapacityError(
                f"Pack list is not full yet ({len(self._members)}/{self.target_quantity})."
            )

        messages = []
        if not self.pending_serial_no:
            _progress("Recording production, please wait... ⏳")
            try:
                response = plex.record_production(profile.workcenter_key, len(self._members))
            except PlexApiError as e:
                raise CommitError(str(e)) from e
            self.pending_serial_no = str(response["newSerialNo"])
            recorded_message = response.get("message") or f"Production recorded as {self.pending_serial_no}"
            messages.append(recorded_message)
            _progress(recorded_message)
        else:
            logging.info(f"Reprinting label for already recorded pack {self.pending_serial_no}")

        try:
            label_message = plex.print_label(self.pending_serial_no, profile.label_printer)
        except PlexApiError as e:
            raise CommitError(str(e)) from e
        messages.append(label_message)

        result = BatchResult(
            new_serial_no=self.pending_serial_no,
            quantity=len(self._members),
            members=self.members,
            messages=messages,
        )
        if refresh:
            refresh()
        self.clear()
        logging.info(f"📦 Packed {result.quantity} unit(s) into {result.new_serial_no}")
        return result
