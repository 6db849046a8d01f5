"""
Workcenter context
Expected part number and standard pack quantity of the station's workcenter,
loaded from Plex. Scanning is only allowed while the context is Loaded.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional

from plex_api.plex_client import PlexApiError
from station_errors import ContextLookupError


class LoadStatus(Enum):
    IDLE = "Idle"
    LOADING = "Loading"
    LOADED = "Loaded"
    ERROR = "Error"


class WorkcenterContext:
    """Last successfully loaded workcenter setup plus its load status.

    A failed refresh flips the status to Error but keeps the previous values,
    so the UI can still show what the station was set up for.
    """

    def __init__(self, workcenter_key: str, needs_std_pack_qty: bool = False,
                 on_status: Optional[Callable[[LoadStatus], None]] = None):
        self.workcenter_key = str(workcenter_key)
        self.needs_std_pack_qty = needs_std_pack_qty
        self.expected_part_number: str = ""
        self.std_pack_qty: Optional[int] = None
        self.info: Dict[str, Any] = {}
        self.plex_server: Optional[str] = None
        self.load_status = LoadStatus.IDLE
        self.last_error: Optional[str] = None
        self._on_status = on_status

    @property
    def is_loaded(self) -> bool:
        return self.load_status == LoadStatus.LOADED

    def _set_status(self, status: LoadStatus) -> None:
        self.load_status = status
        if self._on_status:
            self._on_status(status)

    def refresh(self, plex) -> "WorkcenterContext":
        """Reload workcenter info (and std pack qty when needed) from Plex."""
        self._set_status(LoadStatus.LOADING)
        try:
            info = plex.get_workcenter_info(self.workcenter_key) or {}
            part_number = str(info.get("Part Number") or "").strip()
            if not part_number:
                raise ContextLookupError(
                    f"Workcenter {self.workcenter_key} has no part number set up on Plex."
                )

            std_pack_qty = None
            if self.needs_std_pack_qty:
                std_pack_qty = plex.get_std_pack_qty(part_number)
                if not std_pack_qty or std_pack_qty < 1:
                    raise ContextLookupError(f"No standard pack quantity found for part {part_number}.")

            plex_server = plex.get_server()
        except (PlexApiError, ContextLookupError) as e:
            logging.error(f"Failed to load workcenter {self.workcenter_key}: {e}")
            self.last_error = str(e)
            self._set_status(LoadStatus.ERROR)
            if isinstance(e, ContextLookupError):
                raise
            raise ContextLookupError(str(e)) from e

        self.info = dict(info)
        self.expected_part_number = part_number
        self.std_pack_qty = std_pack_qty
        self.plex_server = plex_server
        self.last_error = None
        self._set_status(LoadStatus.LOADED)
        logging.info(
            f"✅ Workcenter {self.workcenter_key} loaded: part {part_number}"
            + (f", std pack qty {std_pack_qty}" if std_pack_qty else "")
        )
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workcenter_key": self.workcenter_key,
            "status": self.load_status.value,
            "part_number": self.expected_part_number or None,
            "std_pack_qty": self.std_pack_qty,
            "plex_server": self.plex_server,
            "info": self.info,
            "error": self.last_error,
        }
