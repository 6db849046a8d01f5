#!/usr/bin/env python3
"""
Station Dashboard API
JSON endpoints the station screens call: mount a station, refresh its
workcenter, scan, unload and pack.
"""

import logging
import threading
from datetime import datetime
from typing import Dict, Optional

from flask import Flask, jsonify, request

from plex_api.plex_client import PlexClient, PlexConfig
from station_config import StationConfig
from station_errors import StationError
from station_session import PackStation, StationSession, create_station


class StationRegistry:
    """Live station sessions, at most one per configured station."""

    def __init__(self, config: StationConfig, plex):
        self.config = config
        self.plex = plex
        self._sessions: Dict[str, StationSession] = {}
        self._lock = threading.Lock()

    def station_names(self):
        return self.config.station_names()

    def get(self, name: str) -> Optional[StationSession]:
        return self._sessions.get(name)

    def mount(self, name: str) -> StationSession:
        """Create the session for a station (or return the live one)."""
        with self._lock:
            session = self._sessions.get(name)
            if session is None:
                profile = self.config.station_profile(name)
                session = create_station(profile, self.plex)
                self._sessions[name] = session
                logging.info(f"➕ Station session created: {name}")
                created = True
            else:
                created = False
        if created:
            session.refresh()
        return session

    def unmount(self, name: str, force: bool = False) -> bool:
        with self._lock:
            session = self._sessions.get(name)
            if session is None:
                return False
            session.close(force=force)
            del self._sessions[name]
        logging.info(f"🛑 Station session removed: {name}")
        return True


def _json_body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _serial_from_request() -> str:
    return str(_json_body().get("serial_no") or request.form.get("serial_no") or "").strip()


def _flag(name: str) -> bool:
    raw = request.args.get(name)
    if raw is None:
        raw = _json_body().get(name)
    return str(raw).strip().lower() in ("1", "true", "yes", "on")


def create_app(config: Optional[StationConfig] = None, plex=None) -> Flask:
    config = config or StationConfig()
    if plex is None:
        plex = PlexClient(PlexConfig.from_station_config(config))

    app = Flask(__name__)
    app.station_registry = StationRegistry(config, plex)

    def _mounted(name):
        session = app.station_registry.get(name)
        if session is None:
            return None, (jsonify({"error": f"Station {name} is not mounted"}), 404)
        return session, None

    def _pack_station(name):
        session, err = _mounted(name)
        if err:
            return None, err
        if not isinstance(session, PackStation):
            return None, (jsonify({"error": f"Station {name} does not keep a pack list"}), 400)
        return session, None

    @app.route('/api/status')
    def api_status():
        registry = app.station_registry
        return jsonify({
            "timestamp": datetime.now().isoformat(timespec="seconds"),
            "plex_server": plex.get_server(),
            "stations": {
                name: (registry.get(name).scan_status.value if registry.get(name) else None)
                for name in registry.station_names()
            },
        })

    @app.route('/api/stations', methods=['GET'])
    def list_stations():
        stations = []
        for name in app.station_registry.station_names():
            profile = config.station_profile(name)
            stations.append({
                "name": name,
                "display_name": profile.display_name,
                "workcenter_key": profile.workcenter_key,
                "accumulates": profile.accumulates,
                "mounted": app.station_registry.get(name) is not None,
            })
        return jsonify({"stations": stations})

    @app.route('/api/stations/<name>/session', methods=['POST'])
    def mount_station(name):
        if name not in app.station_registry.station_names():
            return jsonify({"error": f"Unknown station: {name}"}), 404
        try:
            session = app.station_registry.mount(name)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        return jsonify(session.state())

    @app.route('/api/stations/<name>/session', methods=['DELETE'])
    def unmount_station(name):
        try:
            removed = app.station_registry.unmount(name, force=_flag("force"))
        except StationError as e:
            return jsonify({"error": e.message}), 409
        if not removed:
            return jsonify({"error": f"Station {name} is not mounted"}), 404
        return jsonify({"success": True})

    @app.route('/api/stations/<name>/state', methods=['GET'])
    def station_state(name):
        session, err = _mounted(name)
        if err:
            return err
        return jsonify(session.state())

    @app.route('/api/stations/<name>/refresh', methods=['POST'])
    def refresh_station(name):
        session, err = _mounted(name)
        if err:
            return err
        ok = session.refresh()
        return jsonify({"success": ok, "state": session.state()})

    @app.route('/api/stations/<name>/scan', methods=['POST'])
    def scan(name):
        session, err = _mounted(name)
        if err:
            return err
        serial_no = _serial_from_request()
        if not serial_no:
            return jsonify({"error": "serial_no is required"}), 400
        outcome = session.handle_scan(serial_no)
        return jsonify({
            "accepted": outcome.accepted,
            "message": outcome.text,
            "state": session.state(),
        })

    @app.route('/api/stations/<name>/unload', methods=['POST'])
    def unload(name):
        session, err = _pack_station(name)
        if err:
            return err
        serial_no = _serial_from_request()
        if not serial_no:
            return jsonify({"error": "serial_no is required"}), 400
        ok = session.unload(serial_no)
        return jsonify({"success": ok, "state": session.state()})

    @app.route('/api/stations/<name>/pack', methods=['POST'])
    def pack(name):
        session, err = _pack_station(name)
        if err:
            return err
        result = session.pack(allow_partial=_flag("allow_partial"))
        return jsonify({
            "success": result is not None,
            "result": result.to_dict() if result else None,
            "state": session.state(),
        })

    return app
