from __future__ import annotations

import threading
from collections import deque
from typing import Deque, List, NamedTuple, Optional


class ChannelProtocolError(RuntimeError):
    """Per-step record count mismatch, stalled producer/consumer, or use after close."""


class ExtremumRecord(NamedTuple):
    value: float
    flag: bool


class ExtremaChannel:
    """Bounded FIFO from the force work items to the host.

    Producers block while the channel is full (backpressure). The host drains
    exactly the number of records produced in a step; ``end_step`` enforces it.
    A producer that fails calls ``abort`` so a blocked consumer wakes up
    instead of waiting out the timeout.
    """

    def __init__(self, capacity: int = 512, timeout: float = 60.0):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = int(capacity)
        self.timeout = float(timeout)
        self._buf: Deque[ExtremumRecord] = deque()
        self._cond = threading.Condition()
        self._produced = 0
        self._consumed = 0
        self._closed = False
        self._error: Optional[BaseException] = None

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        with self._cond:
            return len(self._buf)

    def _check_usable(self, op: str) -> None:
        if self._closed:
            raise ChannelProtocolError(f"{op} on a closed channel")
        if self._error is not None:
            raise ChannelProtocolError(f"{op} on an aborted channel") from self._error

    def write(self, value: float, flag: bool = True) -> None:
        with self._cond:
            self._check_usable("write")
            ok = self._cond.wait_for(
                lambda: len(self._buf) < self.capacity or self._error is not None or self._closed,
                timeout=self.timeout,
            )
            if not ok:
                raise ChannelProtocolError(
                    f"producer stalled for {self.timeout}s on a full channel (capacity={self.capacity})"
                )
            self._check_usable("write")
            self._buf.append(ExtremumRecord(float(value), bool(flag)))
            self._produced += 1
            self._cond.notify_all()

    def read(self) -> ExtremumRecord:
        with self._cond:
            self._check_usable("read")
            ok = self._cond.wait_for(
                lambda: len(self._buf) > 0 or self._error is not None or self._closed,
                timeout=self.timeout,
            )
            if not ok:
                raise ChannelProtocolError(
                    f"consumer waited {self.timeout}s on an empty channel"
                    f" (produced={self._produced}, consumed={self._consumed})"
                )
            self._check_usable("read")
            rec = self._buf.popleft()
            self._consumed += 1
            self._cond.notify_all()
            return rec

    def drain(self, n: int) -> List[ExtremumRecord]:
        return [self.read() for _ in range(n)]

    def begin_step(self) -> None:
        with self._cond:
            self._check_usable("begin_step")
            if self._buf:
                raise ChannelProtocolError(f"{len(self._buf)} records left over from the previous step")
            self._produced = 0
            self._consumed = 0

    def end_step(self, expected: int) -> None:
        with self._cond:
            produced, consumed, pending = self._produced, self._consumed, len(self._buf)
        if produced != expected or consumed != expected or pending:
            raise ChannelProtocolError(
                f"step expected {expected} records, produced={produced}"
                f" consumed={consumed} pending={pending}"
            )

    def abort(self, exc: BaseException) -> None:
        with self._cond:
            if self._error is None:
                self._error = exc
            self._cond.notify_all()

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._buf.clear()
            self._cond.notify_all()
