from __future__ import annotations

import logging
import socket
import threading
import time
from dataclasses import replace
from typing import Callable, Iterable, Optional, Union

from .batch_sender import send_batch
from .config_loader import GraphiteCfg
from .encoder import Clock
from .errors import NotConnectedError
from .metric import Metric, new_metric
from .transport import Disabled, Mode, Stream, close_transport, open_transport, parse_mode

logger = logging.getLogger(__name__)

LogFn = Callable[[str], None]


class Graphite:
    """Client for a Graphite/Carbon plaintext endpoint.

    A client owns its socket exclusively and does no locking: share one instance
    across threads only behind an external lock (or use LockedGraphite).
    """

    def __init__(
        self,
        host: str,
        port: int,
        mode: Mode,
        prefix: str = "",
        clock: Clock = time.time,
        log: Optional[LogFn] = None,
    ):
        self.host = host
        self.port = int(port)
        self.mode = mode
        self.prefix = prefix
        self.clock = clock
        self.log = log or logger.info
        self._conn: Optional[socket.socket] = None

    @property
    def is_nop(self) -> bool:
        return isinstance(self.mode, Disabled)

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    @property
    def disable_log(self) -> bool:
        return isinstance(self.mode, Disabled) and self.mode.disable_log

    @disable_log.setter
    def disable_log(self, value: bool) -> None:
        if not isinstance(self.mode, Disabled):
            raise ValueError("disable_log only applies to a nop client")
        self.mode = Disabled(disable_log=bool(value))

    def connect(self) -> None:
        """(Re)open the connection. A previously held socket is closed first."""

        if self.is_nop:
            return

        if self._conn is not None:
            try:
                self._conn.close()
            except OSError:
                pass
            self._conn = None

        if isinstance(self.mode, Stream) and self.mode.timeout_s <= 0:
            self.mode = replace(self.mode, timeout_s=self.mode.effective_timeout())

        self._conn = open_transport(self.mode, self.host, self.port)
        logger.debug("Connected to %s:%s", self.host, self.port)

    def disconnect(self) -> None:
        if self.is_nop:
            return
        try:
            close_transport(self._conn)
        finally:
            self._conn = None
        logger.debug("Disconnected from %s:%s", self.host, self.port)

    def send_metric(self, metric: Metric) -> None:
        self._send([metric])

    def send_metrics(self, metrics: Iterable[Metric]) -> None:
        self._send(metrics)

    def simple_send(self, name: str, value: Union[str, int, float]) -> None:
        self._send([new_metric(name, value, int(self.clock()))])

    def _send(self, metrics: Iterable[Metric]) -> None:
        if isinstance(self.mode, Disabled):
            if not self.mode.disable_log:
                for m in metrics:
                    self.log(f"Graphite: {m}")
            return

        if self._conn is None:
            raise NotConnectedError(f"not connected to {self.host}:{self.port}; call connect() first")
        send_batch(metrics, self._conn, self.mode, self.prefix, self.clock)

    def __enter__(self) -> "Graphite":
        if not self.is_connected:
            self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self.is_connected:
            self.disconnect()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(host={self.host!r}, port={self.port}, "
            f"mode={self.mode!r}, prefix={self.prefix!r}, connected={self.is_connected})"
        )


class LockedGraphite(Graphite):
    """Graphite with connect/disconnect/send serialized by a lock."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._lock = threading.Lock()

    def connect(self) -> None:
        with self._lock:
            super().connect()

    def disconnect(self) -> None:
        with self._lock:
            super().disconnect()

    def _send(self, metrics: Iterable[Metric]) -> None:
        with self._lock:
            super()._send(metrics)


def graphite_factory(
    protocol: str,
    host: str,
    port: int,
    prefix: str = "",
    timeout_s: float = 0.0,
    log: Optional[LogFn] = None,
) -> Graphite:
    """Build a client for ``protocol`` ('tcp', 'udp' or 'nop') and connect it."""

    mode = parse_mode(protocol, timeout_s)
    if isinstance(mode, Disabled):
        prefix = ""
    g = Graphite(host, port, mode, prefix=prefix, log=log)
    g.connect()
    return g


def new_graphite(host: str, port: int) -> Graphite:
    return graphite_factory("tcp", host, port)


def new_graphite_with_metric_prefix(host: str, port: int, prefix: str) -> Graphite:
    return graphite_factory("tcp", host, port, prefix)


def new_graphite_udp(host: str, port: int) -> Graphite:
    return graphite_factory("udp", host, port)


def new_graphite_nop(host: str, port: int, disable_log: bool = False, log: Optional[LogFn] = None) -> Graphite:
    # Never touches the network, so this cannot fail.
    g = Graphite(host, port, Disabled(disable_log=disable_log), log=log)
    g.connect()
    return g


def client_from_config(cfg: GraphiteCfg, log: Optional[LogFn] = None) -> Graphite:
    g = Graphite(cfg.host, cfg.port, cfg.mode(), prefix=cfg.prefix, log=log)
    g.connect()
    return g
