#!/usr/bin/env python3
"""
Station runtime

- Dashboard mode (default): serves the station JSON API for the station screens.
- Console mode (--console --station NAME): reads keyboard-wedge scanner input
  from stdin, one serial per line. Lines starting with "/" are commands:
  /refresh, /pack, /pack-partial, /unload SERIAL, /state, /quit.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys

from log_setup import configure_logging
from plex_api.plex_client import PlexClient, PlexConfig
from station_config import StationConfig
from station_errors import StationError
from station_session import PackStation, create_station


def _env_int(name: str, default: int) -> int:
    try:
        return int((os.environ.get(name) or "").strip() or default)
    except ValueError:
        return default


def _print_event(event, payload):
    if event == "log":
        print(payload["text"], flush=True)
    elif event in ("context_status", "members"):
        print(f"[{event}] {payload}", flush=True)


def _run_command(station, line: str) -> bool:
    """Handle one console command. Returns False when the loop should stop."""
    command, _, arg = line[1:].partition(" ")
    command = command.strip().lower()
    arg = arg.strip()

    if command == "quit":
        return False
    if command == "refresh":
        station.refresh()
    elif command == "state":
        print(json.dumps(station.state(), indent=2), flush=True)
    elif command in ("pack", "pack-partial") and isinstance(station, PackStation):
        station.pack(allow_partial=(command == "pack-partial"))
    elif command == "unload" and isinstance(station, PackStation) and arg:
        station.unload(arg)
    else:
        print(f"Unknown command: {line}", flush=True)
    return True


def run_console(station, stream=None) -> int:
    stream = stream or sys.stdin
    station.subscribe(_print_event)
    if not station.refresh():
        print(f"Workcenter info could not be loaded: {station.context.last_error}", flush=True)

    for raw in stream:
        line = raw.strip()
        if not line:
            continue
        if line.startswith("/"):
            if not _run_command(station, line):
                break
            continue
        station.handle_scan(line)

    try:
        station.close()
    except StationError as e:
        logging.warning(f"Leaving {station.name} with an open pack list: {e.message}")
        station.close(force=True)
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Shop-floor station scanner')
    parser.add_argument('--config', default=os.environ.get("STATION_CONFIG_PATH", "config.json"),
                        help='Configuration file path')
    parser.add_argument('--station', help='Station name for console mode (e.g. edgefold, pack)')
    parser.add_argument('--console', action='store_true',
                        help='Read scans from stdin instead of serving the dashboard')
    parser.add_argument('--host', default=None)
    parser.add_argument('--port', type=int, default=None)
    args = parser.parse_args(argv)

    configure_logging()

    try:
        config = StationConfig(args.config)
        plex = PlexClient(PlexConfig.from_station_config(config))
    except (OSError, ValueError) as e:
        logging.error(f"Failed to start station runtime: {e}")
        return 1

    if args.console:
        if not args.station:
            parser.error("--console needs --station")
        try:
            profile = config.station_profile(args.station)
        except (KeyError, ValueError) as e:
            logging.error(f"Failed to start station {args.station}: {e}")
            return 1
        return run_console(create_station(profile, plex))

    from station_dashboard import create_app

    app = create_app(config, plex)
    host = args.host or os.environ.get("STATION_DASHBOARD_HOST") or config.get("dashboard.host", "0.0.0.0")
    port = args.port or _env_int("STATION_DASHBOARD_PORT", int(config.get("dashboard.port", 5006)))
    # Single process so every request sees the same station sessions
    app.run(host=host, port=port, debug=False, threaded=True)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
