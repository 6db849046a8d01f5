"""
Scan validation and commit.

Checks run in a fixed order and stop at the first failure:
lookup -> active quantity -> part number -> operation -> commit.
Nothing is written to Plex unless every check passed.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple, Union

from plex_api.plex_client import PlexApiError
from station_config import StationProfile
from station_errors import CommitError, ContextLookupError, StationError, ValidationError

ProgressCallback = Callable[[str], None]


@dataclass(frozen=True)
class ContainerRecord:
    """Snapshot of a Plex container at scan time."""
    serial_number: str
    part_number: str
    operation_name: str
    quantity: int

    @classmethod
    def from_plex(cls, serial_no: str, info: Dict[str, Any]) -> "ContainerRecord":
        serial_no = str(info.get("Serial No") or serial_no)
        return cls(
            serial_number=serial_no,
            part_number=str(info.get("Part Number") or ""),
            operation_name=str(info.get("Operation") or ""),
            quantity=_parse_quantity(serial_no, info.get("Quantity")),
        )


def _parse_quantity(serial_no: str, raw: Any) -> int:
    """Whole-number quantity from Plex; anything else is a data problem, not an inactive container."""
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    if isinstance(raw, str):
        try:
            return int(raw.strip())
        except ValueError:
            pass
    raise ValidationError(f"Container {serial_no} has an invalid quantity on Plex: {raw!r}")


@dataclass(frozen=True)
class Accepted:
    message: str
    accepted = True

    @property
    def text(self) -> str:
        return self.message


@dataclass(frozen=True)
class Rejected:
    reason: str
    accepted = False

    @property
    def text(self) -> str:
        return self.reason


ScanOutcome = Union[Accepted, Rejected]


def lookup_record(serial_no: str, plex) -> Tuple[ContainerRecord, str]:
    try:
        response = plex.lookup_container(serial_no)
    except PlexApiError as e:
        raise ContextLookupError(str(e)) from e
    record = ContainerRecord.from_plex(serial_no, response.get("containerInfo") or {})
    return record, response.get("message") or f"Container {serial_no} found."


def check_active(record: ContainerRecord) -> None:
    if record.quantity == 0:
        raise ValidationError("Container is inactive.")


def check_part_number(record: ContainerRecord, expected_part_number: str) -> None:
    if record.part_number != str(expected_part_number):
        raise ValidationError(
            "Scanned part number does not match, please check workcenter configuration on Plex. "
            f"Expected: {expected_part_number}, Scanned: {record.part_number}"
        )


def check_operation(record: ContainerRecord, profile: StationProfile) -> None:
    """Station-specific readiness check."""
    operation = record.operation_name
    if operation == profile.required_operation:
        return

    if profile.completed_operation:
        # Single-unit stations: tell re-scans of finished units apart from units that are not ready
        action = profile.completed_operation.lower()
        if operation == profile.completed_operation:
            raise ValidationError(f"Serial No {record.serial_number} was already {action}ed.")
        raise ValidationError(f"Serial No {record.serial_number} is not ready for {action}ing.")

    raise ValidationError(
        f"This container is not in {profile.required_operation} operation. Current operation: {operation}"
    )


def commit(record: ContainerRecord, profile: StationProfile, plex) -> str:
    """Run the station's commit action and return its confirmation message."""
    serial_no = record.serial_number
    try:
        if profile.accumulates:
            plex_message = plex.move_container(serial_no, profile.commit_location)
            logging.info(f"Moved {serial_no} to {profile.commit_location}: {plex_message}")
            return f"{serial_no} is packed ✔️"
        response = plex.record_production_bfb(profile.workcenter_key, serial_no)
        return response.get("message") or f"Production recorded for {serial_no} ✔️"
    except PlexApiError as e:
        raise CommitError(str(e)) from e


def validate(serial_no: str, context, plex, profile: StationProfile,
             progress: Optional[ProgressCallback] = None) -> ScanOutcome:
    """Validate a scanned serial against the workcenter context and commit it.

    Returns Accepted with the commit confirmation, or Rejected with the first
    failing check's message. Errors never escape.
    """
    def _progress(text):
        if progress:
            progress(text)

    serial_no = (serial_no or "").strip()
    if not serial_no:
        return Rejected("Scanned serial number is empty.")

    try:
        record, lookup_message = lookup_record(serial_no, plex)
        check_active(record)
        _progress(lookup_message)

        check_part_number(record, context.expected_part_number)
        _progress(f"{profile.part_label} matched ✔️")

        check_operation(record, profile)

        if not profile.accumulates:
            _progress("Recording production, please wait... ⏳")
        return Accepted(commit(record, profile, plex))
    except StationError as e:
        logging.warning(f"Scan {serial_no} rejected at {profile.name}: {e.message}")
        return Rejected(e.message)
