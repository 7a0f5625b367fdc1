#!/usr/bin/env python3
# -----------------------------------------------------------------------------
#  Chunk Sender - send a file to a serial peer in acked 8-byte chunks
#
#  Copyright (c) 2025 Nitish. All Rights Reserved.
# -----------------------------------------------------------------------------
"""
chunk_sender.py
Usage: chunk-sender FILE [TTY] [--config .sender_config.json]
Requires: pyserial

Exit status 0 once the peer acked the last chunk, 1 on any setup error or
aborted transfer.
"""

import argparse
import logging
import sys
from typing import List, Optional

from chunk_config import CONFIG_FILE_NAME, SetupError, load_config
from chunk_controller import TransferAborted, TransferController
from chunk_frame import split_chunks
from chunk_link import LinkError, SerialLink, list_serial_ports

log = logging.getLogger('chunk_sender')


class PayloadError(SetupError):
    pass


def progress_bar(sent, total, width=34):
    pct = sent/total if total else 1.0
    filled = int(width*pct)
    bar = '[' + '#' * filled + '-'*(width-filled) + ']'
    print(f"\r{bar} {pct*100:6.2f}% {sent}/{total} chunks", end='', flush=True)


def read_payload(path: str) -> bytes:
    try:
        with open(path, 'rb') as f:
            return f.read()
    except OSError as e:
        raise PayloadError(f"Error while reading file: {path} ({e.strerror or e})") from e


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog='chunk-sender',
                                description="Send a file over a serial link in acked 8-byte chunks.")
    p.add_argument('file', nargs='?', help="file to send")
    p.add_argument('tty', nargs='?', help="serial port, overrides 'tty' from the config file")
    p.add_argument('--config', default=None,
                   help=f"JSON connection config (default: ./{CONFIG_FILE_NAME} if present)")
    p.add_argument('--baudrate', type=int, default=None, help="override the configured baud rate")
    p.add_argument('--list-ports', action='store_true', help="list serial ports and exit")
    p.add_argument('-q', '--quiet', action='store_true', help="no progress bar")
    p.add_argument('-v', '--verbose', action='store_true', help="debug logging")
    return p


def send_file(path: str, tty: Optional[str] = None, config_path: Optional[str] = None,
              baudrate: Optional[int] = None, show_progress: bool = True):
    """Load, connect, transfer. Raises SetupError / TransferAborted / LinkError."""
    log.info("Reading input file: %s", path)
    payload = read_payload(path)
    chunks = split_chunks(payload)
    log.info("Done. %d bytes -> %d chunks", len(payload), len(chunks))

    log.info("Loading config file...")
    config = load_config(config_path or CONFIG_FILE_NAME, required=config_path is not None)
    config = config.with_overrides(tty=tty, baudrate=baudrate)

    link = SerialLink.open(config.tty, config)
    # keep per-chunk INFO lines off the \r progress bar
    chunk_log = logging.getLogger('chunk_controller')
    old_level = chunk_log.level
    if show_progress and not log.isEnabledFor(logging.DEBUG):
        chunk_log.setLevel(logging.WARNING)
    try:
        link.settle(config.start_delay)
        log.info("Connected. Ready to send data.")
        controller = TransferController(
            link, chunks,
            chunk_delay=config.chunk_delay,
            on_progress=progress_bar if show_progress else None,
        )
        stats = controller.run()
    finally:
        chunk_log.setLevel(old_level)
        link.close()
        if show_progress:
            print()
    return stats


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    if args.list_ports:
        for port in list_serial_ports():
            print(port)
        return 0

    if not args.file:
        log.error("No input file given!")
        return 1

    try:
        stats = send_file(args.file, args.tty, args.config, args.baudrate,
                          show_progress=not args.quiet)
    except SetupError as e:
        log.error("%s", e)
        return 1
    except (TransferAborted, LinkError) as e:
        log.error("Transfer aborted: %s", e)
        return 1
    except KeyboardInterrupt:
        log.error("Aborted by user (Ctrl+C).")
        return 1

    log.info("Sent %s: %d chunks, %d retransmits, %d write errors, %.2fs",
             args.file, stats.chunks, stats.retransmits, stats.write_errors, stats.duration_s)
    return 0


if __name__ == '__main__':
    sys.exit(main())
