from __future__ import annotations

import logging
import time
from typing import Any, Iterable

from .encoder import Clock, encode_bytes
from .errors import SendError
from .metric import Metric
from .transport import Datagram, Mode, Stream

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 4096
# Free space below which the stream buffer is flushed before the next line.
FLUSH_THRESHOLD = 512


class StreamBuffer:
    """Fixed-capacity write buffer in front of a stream socket.

    Anything that has ``sendall(bytes)`` works as the sink.
    """

    def __init__(self, sink: Any, size: int = DEFAULT_BUFFER_SIZE):
        if size <= 0:
            raise ValueError("buffer size must be > 0")
        self.sink = sink
        self.size = int(size)
        self._buf = bytearray()

    def buffered(self) -> int:
        return len(self._buf)

    def available(self) -> int:
        return self.size - len(self._buf)

    def write(self, data: bytes) -> None:
        if len(data) > self.available():
            self.flush()
        if len(data) >= self.size:
            self.sink.sendall(data)
            return
        self._buf += data

    def flush(self) -> None:
        if not self._buf:
            return
        data = bytes(self._buf)
        self.sink.sendall(data)
        self._buf.clear()


def _send_datagrams(metrics: Iterable[Metric], handle: Any, prefix: str, clock: Clock) -> int:
    n = 0
    for m in metrics:
        if m.is_unset():
            continue
        handle.send(encode_bytes(m, prefix, clock))
        n += 1
    return n


def _send_stream(metrics: Iterable[Metric], handle: Any, prefix: str, clock: Clock) -> int:
    buf = StreamBuffer(handle)
    n = 0
    for m in metrics:
        if m.is_unset():
            continue
        if buf.available() < FLUSH_THRESHOLD:
            buf.flush()
        buf.write(encode_bytes(m, prefix, clock))
        n += 1
    buf.flush()
    return n


def send_batch(
    metrics: Iterable[Metric],
    handle: Any,
    mode: Mode,
    prefix: str = "",
    clock: Clock = time.time,
) -> int:
    """Write every metric's line to ``handle`` in order and return how many were written.

    Unset (all-default) metrics are skipped. The first I/O error stops the batch and is
    raised as SendError; nothing after the failing metric is attempted.
    """

    if isinstance(mode, Datagram):
        sender = _send_datagrams
    elif isinstance(mode, Stream):
        sender = _send_stream
    else:
        raise ValueError(f"send_batch needs a network transport, got {mode!r}")

    try:
        n = sender(metrics, handle, prefix, clock)
    except OSError as e:
        raise SendError(f"write failed: {e!r}") from e

    logger.debug("Sent %d metric line(s)", n)
    return n
