"""
Logging setup for station processes.
Rotating file log under <station home>/logs plus console output.
"""

import logging
import logging.handlers
import os
from datetime import datetime

from station_config import station_home

LOG_FILE_NAME = 'station_scanner.log'


def _env_int(name: str, default: int, minimum: int) -> int:
    try:
        value = int((os.environ.get(name) or str(default)).strip())
    except ValueError:
        value = default
    return value if value >= minimum else default


def _log_dir():
    log_dir = station_home() / 'logs'
    if log_dir.exists() and log_dir.is_file():
        # A stray file named "logs" blocks directory creation
        log_dir.rename(station_home() / f"logs.bak_{datetime.now().strftime('%Y%m%d_%H%M%S')}")
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def _build_log_handlers():
    max_mb = _env_int('STATION_LOG_MAX_MB', 50, 1)
    backups = _env_int('STATION_LOG_BACKUPS', 3, 0)

    rotating = logging.handlers.RotatingFileHandler(
        _log_dir() / LOG_FILE_NAME,
        maxBytes=max_mb * 1024 * 1024,
        backupCount=backups,
    )
    stream = logging.StreamHandler()
    return [rotating, stream]


def configure_logging(level=logging.INFO, to_file=True):
    """Configure root logging once per process."""
    handlers = _build_log_handlers() if to_file else [logging.StreamHandler()]
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True,
    )
