# -----------------------------------------------------------------------------
#  Chunk Controller - stop-and-wait session for the serial chunk sender
#
#  Copyright (c) 2025 Nitish. All Rights Reserved.
# -----------------------------------------------------------------------------
"""
chunk_controller.py
Stop-and-wait ARQ driver. One chunk in flight; 'k' advances, 'f' repeats
the same chunk, 'k' on the last chunk ends the session and closes the link.

    IDLE -> SENDING -> AWAITING_RESPONSE -> SENDING | TERMINATED
                                          (ABORTED on external failure)

There is no retry ceiling and no read timeout: a silent peer stalls the
session until the operator aborts it.
"""

import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, NamedTuple, Optional, Sequence

from chunk_frame import encode_chunk
from chunk_response import Response, classify

log = logging.getLogger(__name__)


class State(enum.Enum):
    IDLE = 'idle'
    SENDING = 'sending'
    AWAITING_RESPONSE = 'awaiting_response'
    TERMINATED = 'terminated'
    ABORTED = 'aborted'


class Event(enum.Enum):
    START = 'start'
    SUCCESS = 'success'
    FAILURE = 'failure'


class Action(enum.Enum):
    SEND = 'send'
    CLOSE = 'close'


class Step(NamedTuple):
    state: State
    index: int
    action: Action


EVENT_FOR_RESPONSE = {
    Response.SUCCESS: Event.SUCCESS,
    Response.FAILURE: Event.FAILURE,
}


class InvalidTransition(ValueError):
    pass


class TransferAborted(Exception):
    pass


def transition(state: State, index: int, count: int, event: Event) -> Step:
    """Next (state, index, action) for an event; pure, no I/O."""
    if state is State.IDLE and event is Event.START:
        return Step(State.SENDING, 0, Action.SEND)
    if state is State.AWAITING_RESPONSE:
        if event is Event.SUCCESS:
            if index >= count - 1:
                return Step(State.TERMINATED, index, Action.CLOSE)
            return Step(State.SENDING, index + 1, Action.SEND)
        if event is Event.FAILURE:
            return Step(State.SENDING, index, Action.SEND)
    raise InvalidTransition(f"{event.name} is not valid in state {state.name}")


@dataclass
class TransferStats:
    chunks: int = 0
    chunks_sent: int = 0
    retransmits: int = 0
    unrecognized: int = 0
    bytes_written: int = 0
    write_errors: int = 0
    start_ts: float = field(default_factory=time.monotonic)
    end_ts: Optional[float] = None

    @property
    def duration_s(self) -> float:
        if self.end_ts is None:
            return 0.0
        return max(0.0, self.end_ts - self.start_ts)


class TransferController:
    def __init__(self, link, chunks: Sequence[bytes], *, chunk_delay: float = 0.0,
                 on_progress: Optional[Callable[[int, int], None]] = None):
        if not chunks:
            raise ValueError("need at least one chunk (an empty payload is one empty chunk)")
        self.link = link
        self.chunks: List[bytes] = list(chunks)
        self.count = len(self.chunks)
        self.chunk_delay = chunk_delay
        self.on_progress = on_progress
        self.index = 0
        self.state = State.IDLE
        self.stats = TransferStats(chunks=self.count)
        self._last_sent = -1

    @property
    def done(self) -> bool:
        return self.state in (State.TERMINATED, State.ABORTED)

    def start(self) -> State:
        return self._apply(Event.START)

    def handle(self, response: Response) -> State:
        if response is Response.UNRECOGNIZED:
            self.stats.unrecognized += 1
            return self.state
        acked = self.index + 1
        state = self._apply(EVENT_FOR_RESPONSE[response])
        if response is Response.SUCCESS and self.on_progress:
            self.on_progress(acked, self.count)
        return state

    def run(self, lines: Optional[Iterable[str]] = None) -> TransferStats:
        """Drive a whole session; returns stats once the last chunk is acked."""
        try:
            self.start()
            for line in (self.link.lines() if lines is None else lines):
                self.handle(classify(line))
                if self.state is State.TERMINATED:
                    return self.stats
        except BaseException:
            self._abort()
            raise
        self._abort()
        raise TransferAborted(
            f"Link closed while waiting for a response to chunk {self.index}/{self.count - 1}")

    # ---- internals ----
    def _apply(self, event: Event) -> State:
        step = transition(self.state, self.index, self.count, event)
        self.state, self.index = step.state, step.index
        if step.action is Action.SEND:
            self._send()
            self.state = State.AWAITING_RESPONSE
        elif step.action is Action.CLOSE:
            self._finish()
        return self.state

    def _send(self) -> None:
        idx = self.index
        if idx == self._last_sent:
            log.info("Repeating chunk: %d", idx)
            self.stats.retransmits += 1
        else:
            log.info("Sending chunk: %d", idx)
            self._last_sent = idx
        if self.chunk_delay > 0:
            time.sleep(self.chunk_delay)
        data = encode_chunk(self.chunks[idx])
        self.stats.write_errors += self.link.send(data)
        self.stats.chunks_sent += 1
        self.stats.bytes_written += len(data)

    def _finish(self) -> None:
        log.info("No chunk left!")
        self.link.close()
        self.stats.end_ts = time.monotonic()
        log.info("Data transferred successfully! %d chunks, %d retransmits, %.2fs",
                 self.count, self.stats.retransmits, self.stats.duration_s)

    def _abort(self) -> None:
        if self.state is State.TERMINATED:
            return
        self.state = State.ABORTED
        self.stats.end_ts = time.monotonic()
