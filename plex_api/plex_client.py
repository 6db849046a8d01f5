from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests


class PlexApiError(Exception):
    """Plex call failed; the message is shown to operators as-is."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ContainerNotFound(PlexApiError):
    pass


@dataclass
class PlexConfig:
    base_url: str
    api_token: str = ""
    server: str = ""
    timeout_seconds: int = 15

    @classmethod
    def from_station_config(cls, config) -> "PlexConfig":
        try:
            timeout_s = int(config.get("plex.timeout_seconds", 15))
        except (TypeError, ValueError):
            timeout_s = 15
        return cls(
            base_url=(config.get("plex.base_url", "") or "").strip(),
            api_token=(config.get("plex.api_token", "") or "").strip(),
            server=(config.get("plex.server", "") or "").strip(),
            timeout_seconds=timeout_s,
        )


class PlexClient:
    """
    Thin client for the Plex gateway used by the stations.
    - Every call is synchronous with a timeout.
    - Non-2xx responses and transport errors raise PlexApiError.
    - No retries: the operator re-scans or presses the button again.
    """

    def __init__(self, cfg: PlexConfig, session: Optional[requests.Session] = None):
        if not cfg.base_url:
            raise ValueError("plex.base_url is not configured")
        self.cfg = cfg
        self.base_url = cfg.base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = max(1, int(cfg.timeout_seconds or 15))

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.cfg.api_token:
            headers["Authorization"] = f"Bearer {self.cfg.api_token}"
        return headers

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(method, url, headers=self._headers(), json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logging.warning("Plex %s %s failed: %s", method, path, e)
            raise PlexApiError(f"Unable to reach Plex: {e}") from e

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {"data": body}

        if 200 <= resp.status_code < 300:
            return body

        message = body.get("error") or body.get("message") or f"Plex returned HTTP {resp.status_code}"
        logging.warning("Plex %s %s rejected: HTTP %s %s", method, path, resp.status_code, message)
        if resp.status_code == 404:
            raise ContainerNotFound(message, resp.status_code)
        raise PlexApiError(message, resp.status_code)

    # ------------------------------------------------------------------
    # Containers
    # ------------------------------------------------------------------

    def lookup_container(self, serial_no: str) -> Dict[str, Any]:
        """Return {"containerInfo": {...}, "message": "..."} for a serial."""
        body = self._request("GET", f"/api/containers/{quote(serial_no, safe='')}")
        if not isinstance(body.get("containerInfo"), dict):
            raise PlexApiError(f"Plex returned no container info for {serial_no}")
        return body

    def move_container(self, serial_no: str, location: str) -> str:
        body = self._request(
            "POST",
            f"/api/containers/{quote(serial_no, safe='')}/move",
            {"location": location},
        )
        return body.get("message") or f"Container {serial_no} moved to {location}"

    # ------------------------------------------------------------------
    # Production
    # ------------------------------------------------------------------

    def record_production(self, workcenter_key: str, quantity: int) -> Dict[str, Any]:
        """Record a batch; returns {"newSerialNo": ..., "message": ...}."""
        body = self._request(
            "POST",
            f"/api/workcenters/{quote(str(workcenter_key), safe='')}/production",
            {"quantity": int(quantity)},
        )
        if not body.get("newSerialNo"):
            raise PlexApiError("Plex did not return a serial number for the recorded production")
        return body

    def record_production_bfb(self, workcenter_key: str, serial_no: str) -> Dict[str, Any]:
        """Backflush production for a single serial at the workcenter."""
        return self._request(
            "POST",
            f"/api/workcenters/{quote(str(workcenter_key), safe='')}/production/bfb",
            {"serialNo": serial_no},
        )

    def print_label(self, serial_no: str, printer: str) -> str:
        body = self._request("POST", "/api/labels", {"serialNo": serial_no, "printer": printer})
        return body.get("message") or f"Label for {serial_no} sent to {printer}"

    # ------------------------------------------------------------------
    # Workcenter / part info
    # ------------------------------------------------------------------

    def get_workcenter_info(self, workcenter_key: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/workcenters/{quote(str(workcenter_key), safe='')}")

    def get_std_pack_qty(self, part_number: str) -> int:
        body = self._request("GET", f"/api/parts/{quote(str(part_number), safe='')}/std-pack-qty")
        try:
            return int(body.get("stdPackQty"))
        except (TypeError, ValueError):
            raise PlexApiError(f"Plex returned no standard pack quantity for {part_number}")

    def get_server(self) -> str:
        return self.cfg.server
