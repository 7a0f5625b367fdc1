# -----------------------------------------------------------------------------
#  Chunk Link - pyserial transport for the serial chunk sender
#
#  Copyright (c) 2025 Nitish. All Rights Reserved.
# -----------------------------------------------------------------------------
"""
chunk_link.py
Thin wrapper around a pyserial port: byte-paced writes, line reads.
Requires: pyserial
"""

import logging
import threading
import time
from typing import Iterator, List, Optional

import serial
import serial.tools.list_ports

from chunk_config import SenderConfig, SetupError

log = logging.getLogger(__name__)

READ_POLL = 0.5  # seconds; an empty poll just means "keep waiting"


class LinkError(Exception):
    pass


class LinkOpenError(SetupError):
    pass


def list_serial_ports() -> List[str]:
    ports = serial.tools.list_ports.comports()
    return [p.device for p in ports]


class SerialLink:
    def __init__(self, ser, byte_interval: float = 0.0):
        self.ser = ser
        self.byte_interval = byte_interval
        self._stop = threading.Event()
        self._closed = False

    @classmethod
    def open(cls, port: str, config: SenderConfig) -> 'SerialLink':
        if not port:
            raise LinkOpenError("No serial port given (pass TTY or set 'tty' in the config file)")
        log.info("Establishing connection to %s (%d %d%s%s)...", port, config.baudrate,
                 config.databits, config.serial_parity, config.stopbits)
        try:
            ser = serial.serial_for_url(
                port,
                baudrate=config.baudrate,
                bytesize=config.bytesize,
                parity=config.serial_parity,
                stopbits=config.serial_stopbits,
                timeout=READ_POLL,
            )
        except (serial.SerialException, ValueError) as e:
            raise LinkOpenError(f"Failed to open serial port {port}: {e}") from e
        # flush stale bytes
        try:
            ser.reset_input_buffer()
            ser.reset_output_buffer()
        except serial.SerialException as e:
            ser.close()
            raise LinkOpenError(f"Failed to flush serial port {port}: {e}") from e
        return cls(ser, byte_interval=config.byte_interval)

    @property
    def is_open(self) -> bool:
        return not self._closed and self.ser.is_open

    def settle(self, delay: float) -> bool:
        """Give the peer time to boot after the port opened (boards reset on open).

        Returns False if stop() was called while waiting.
        """
        if delay > 0:
            log.debug("Settling for %.2fs", delay)
            self._stop.wait(delay)
        return not self._stop.is_set()

    # ---- Writing ----
    def send(self, data: bytes) -> int:
        """Write data one byte at a time. Returns the number of failed byte writes."""
        errors = 0
        for i in range(len(data)):
            try:
                self.ser.write(data[i:i + 1])
            except serial.SerialException as e:
                errors += 1
                log.error("Error on write: %s", e)
            if self.byte_interval > 0:
                time.sleep(self.byte_interval)
        return errors

    # ---- Reading ----
    def read_line(self) -> Optional[str]:
        try:
            raw = self.ser.readline()
        except serial.SerialException as e:
            raise LinkError(f"Error on read: {e}") from e
        if not raw:
            return None
        if not raw.endswith(b'\n'):
            # poll elapsed mid-line; finish it
            raw += self._finish_line()
        return raw.decode('ascii', errors='replace')

    def _finish_line(self) -> bytes:
        rest = b''
        while not self._stop.is_set() and not rest.endswith(b'\n'):
            try:
                part = self.ser.readline()
            except serial.SerialException as e:
                raise LinkError(f"Error on read: {e}") from e
            rest += part
        return rest

    def lines(self) -> Iterator[str]:
        while not self._stop.is_set():
            try:
                line = self.read_line()
            except LinkError:
                if self._stop.is_set():
                    return
                raise
            if line is not None:
                yield line

    def stop(self) -> None:
        self._stop.set()

    def close(self) -> None:
        self._stop.set()
        if self._closed:
            return
        self._closed = True
        try:
            self.ser.close()
        except serial.SerialException as e:
            log.warning("Error on close: %s", e)
