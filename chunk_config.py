# -----------------------------------------------------------------------------
#  Chunk Config - connection settings for the serial chunk sender
#
#  Copyright (c) 2025 Nitish. All Rights Reserved.
# -----------------------------------------------------------------------------
"""
chunk_config.py
Loads the JSON connection file (.sender_config.json):

    {
        "tty": "/dev/ttyACM0",
        "baudrate": 115200,
        "databits": 8,
        "parity": "none",
        "stopbits": 1,
        "start_timeout": 2000,
        "byte_timeout": 0,
        "chunk_timeout": 0
    }

Timing keys are milliseconds and optional.
"""

import json
import logging
import os
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

import serial

log = logging.getLogger(__name__)

# ---------- Defaults ----------
CONFIG_FILE_NAME = '.sender_config.json'
BAUD = 115200
DATABITS = 8
PARITY = 'none'
STOPBITS = 1
START_TIMEOUT_MS = 2000  # settle time after opening the port
BYTE_TIMEOUT_MS = 0      # link is stable without byte pacing
CHUNK_TIMEOUT_MS = 0     # peer acks every chunk anyway
# ------------------------------

PARITY_MAP = {
    'none': serial.PARITY_NONE,
    'even': serial.PARITY_EVEN,
    'odd': serial.PARITY_ODD,
    'mark': serial.PARITY_MARK,
    'space': serial.PARITY_SPACE,
}
BYTESIZE_MAP = {
    5: serial.FIVEBITS,
    6: serial.SIXBITS,
    7: serial.SEVENBITS,
    8: serial.EIGHTBITS,
}
STOPBITS_MAP = {
    1: serial.STOPBITS_ONE,
    1.5: serial.STOPBITS_ONE_POINT_FIVE,
    2: serial.STOPBITS_TWO,
}


class SetupError(Exception):
    """Fatal problem before a transfer session can start."""


class ConfigError(SetupError):
    pass


@dataclass(frozen=True)
class SenderConfig:
    tty: Optional[str] = None
    baudrate: int = BAUD
    databits: int = DATABITS
    parity: str = PARITY
    stopbits: float = STOPBITS
    start_timeout: int = START_TIMEOUT_MS
    byte_timeout: int = BYTE_TIMEOUT_MS
    chunk_timeout: int = CHUNK_TIMEOUT_MS

    @property
    def bytesize(self):
        return BYTESIZE_MAP[self.databits]

    @property
    def serial_parity(self):
        return PARITY_MAP[self.parity]

    @property
    def serial_stopbits(self):
        return STOPBITS_MAP[self.stopbits]

    @property
    def start_delay(self) -> float:
        return self.start_timeout / 1000.0

    @property
    def byte_interval(self) -> float:
        return self.byte_timeout / 1000.0

    @property
    def chunk_delay(self) -> float:
        return self.chunk_timeout / 1000.0

    def with_overrides(self, **changes: Any) -> 'SenderConfig':
        changes = {k: v for k, v in changes.items() if v is not None}
        return validate(replace(self, **changes))


def _number(raw: Dict[str, Any], key: str, default):
    value = raw.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"'{key}' must be a number, got {value!r}")
    return value


def _integer(raw: Dict[str, Any], key: str, default) -> int:
    value = _number(raw, key, default)
    if value != int(value):
        raise ConfigError(f"'{key}' must be a whole number, got {value!r}")
    return int(value)


def validate(cfg: SenderConfig) -> SenderConfig:
    if cfg.baudrate <= 0:
        raise ConfigError(f"baudrate must be positive, got {cfg.baudrate}")
    if cfg.databits not in BYTESIZE_MAP:
        raise ConfigError(f"databits must be one of {sorted(BYTESIZE_MAP)}, got {cfg.databits}")
    if cfg.parity not in PARITY_MAP:
        raise ConfigError(f"parity must be one of {sorted(PARITY_MAP)}, got {cfg.parity!r}")
    if cfg.stopbits not in STOPBITS_MAP:
        raise ConfigError(f"stopbits must be one of {sorted(STOPBITS_MAP)}, got {cfg.stopbits}")
    for key in ('start_timeout', 'byte_timeout', 'chunk_timeout'):
        if getattr(cfg, key) < 0:
            raise ConfigError(f"'{key}' must not be negative")
    return cfg


def from_dict(raw: Dict[str, Any]) -> SenderConfig:
    if not isinstance(raw, dict):
        raise ConfigError("config must be a JSON object")
    tty = raw.get('tty')
    if tty is not None and not isinstance(tty, str):
        raise ConfigError(f"'tty' must be a string, got {tty!r}")
    parity = raw.get('parity', PARITY)
    if not isinstance(parity, str):
        raise ConfigError(f"'parity' must be a string, got {parity!r}")
    cfg = SenderConfig(
        tty=tty or None,
        baudrate=_integer(raw, 'baudrate', BAUD),
        databits=_integer(raw, 'databits', DATABITS),
        parity=parity.lower(),
        stopbits=_number(raw, 'stopbits', STOPBITS),
        start_timeout=_number(raw, 'start_timeout', START_TIMEOUT_MS),
        byte_timeout=_number(raw, 'byte_timeout', BYTE_TIMEOUT_MS),
        chunk_timeout=_number(raw, 'chunk_timeout', CHUNK_TIMEOUT_MS),
    )
    return validate(cfg)


def load_config(path: str = CONFIG_FILE_NAME, required: bool = False) -> SenderConfig:
    """Read the connection config.

    A missing file is only an error when the caller asked for it explicitly;
    otherwise the built-in 115200 8N1 defaults apply.
    """
    if not os.path.isfile(path):
        if required:
            raise ConfigError(f"Config file not found: {path}")
        log.debug("No config file at %s, using defaults", path)
        return SenderConfig()
    try:
        with open(path, 'r', encoding='utf-8') as f:
            raw = json.load(f)
    except OSError as e:
        raise ConfigError(f"Error while reading config file: {path} ({e})") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Malformed config file {path}: {e}") from e
    return from_dict(raw)
