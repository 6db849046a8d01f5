#!/usr/bin/env python3
"""
Station configuration
JSON config file with built-in defaults, dotted-path lookup and env overrides.
"""

import copy
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional


DEFAULT_CONFIG: Dict[str, Any] = {
    "plex": {
        "base_url": "http://localhost:5000",
        "api_token": "",
        # Shown next to the workcenter info so operators know which Plex they hit
        "server": "test",
        "timeout_seconds": 15,
    },
    "dashboard": {
        "host": "0.0.0.0",
        "port": 5006,
    },
    "stations": {
        "edgefold": {
            "display_name": "RIVIAN Edgefold Station",
            "workcenter_key": "74883",
            "required_operation": "Waterjet",
            "completed_operation": "Edgefold",
            "part_label": "Substrate part number",
            "accumulates": False,
        },
        "pack": {
            "display_name": "RIVIAN Pack Station",
            "workcenter_key": "74895",
            "required_operation": "Assembly",
            "commit_location": "Pack-Rivian",
            "return_location": "RIVIAN",
            "label_printer": "Pack-Rivian",
            "accumulates": True,
        },
    },
}

# env var -> dotted config key
ENV_OVERRIDES = {
    "PLEX_API_BASE_URL": "plex.base_url",
    "PLEX_API_TOKEN": "plex.api_token",
    "PLEX_SERVER": "plex.server",
}


def station_home() -> Path:
    """Directory holding config.json and logs/. STATION_SCANNER_HOME overrides it."""
    env_path = (os.environ.get("STATION_SCANNER_HOME") or "").strip()
    if env_path:
        return Path(os.path.expandvars(env_path)).expanduser().resolve()
    return Path(__file__).resolve().parent


def config_path(config_file) -> Path:
    path = Path(os.path.expandvars(str(config_file))).expanduser()
    return path if path.is_absolute() else station_home() / path


@dataclass(frozen=True)
class StationProfile:
    """Static per-station settings."""
    name: str
    display_name: str
    workcenter_key: str
    required_operation: str
    completed_operation: Optional[str] = None
    commit_location: Optional[str] = None
    return_location: Optional[str] = None
    label_printer: Optional[str] = None
    accumulates: bool = False
    # Prefix of the "... matched" progress message
    part_label: str = "Part number"

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "StationProfile":
        workcenter_key = str(data.get("workcenter_key") or "").strip()
        required_operation = str(data.get("required_operation") or "").strip()
        if not workcenter_key or not required_operation:
            raise ValueError(f"Station '{name}' needs workcenter_key and required_operation")
        if data.get("accumulates"):
            missing = [k for k in ("commit_location", "return_location", "label_printer") if not data.get(k)]
            if missing:
                raise ValueError(f"Pack station '{name}' is missing {', '.join(missing)}")
        return cls(
            name=name,
            display_name=data.get("display_name") or name,
            workcenter_key=workcenter_key,
            required_operation=required_operation,
            completed_operation=data.get("completed_operation") or None,
            commit_location=data.get("commit_location") or None,
            return_location=data.get("return_location") or None,
            label_printer=data.get("label_printer") or None,
            accumulates=bool(data.get("accumulates", False)),
            part_label=data.get("part_label") or "Part number",
        )


class StationConfig:
    """Configuration management for station scanners"""

    def __init__(self, config_file='config.json'):
        self.config_file = config_path(config_file)
        self.default_config = copy.deepcopy(DEFAULT_CONFIG)
        self.load_config()

    def load_config(self):
        """Load configuration from file or create default"""
        if self.config_file.exists():
            with open(self.config_file, 'r') as f:
                self.config = json.load(f)
        else:
            self.config = copy.deepcopy(self.default_config)
            self.save_config()
        self._apply_env_overrides()

    def save_config(self):
        """Save current configuration to file"""
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, 'w') as f:
            json.dump(self.config, f, indent=2)

    def _apply_env_overrides(self):
        for env_name, key_path in ENV_OVERRIDES.items():
            value = (os.environ.get(env_name) or "").strip()
            if value:
                self.set(key_path, value)
                logging.debug(f"Config {key_path} overridden by {env_name}")

    def get(self, key_path, default=None):
        """Get nested configuration value"""
        value = self.config
        for key in key_path.split('.'):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def set(self, key_path, value):
        keys = key_path.split('.')
        node = self.config
        for key in keys[:-1]:
            node = node.setdefault(key, {})
        node[keys[-1]] = value

    def station_names(self) -> List[str]:
        stations = self.get("stations", {})
        return list(stations.keys()) if isinstance(stations, dict) else []

    def station_profile(self, name: str) -> StationProfile:
        data = self.get(f"stations.{name}")
        if not isinstance(data, dict):
            raise KeyError(f"Unknown station: {name}")
        return StationProfile.from_dict(name, data)
