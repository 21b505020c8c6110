from __future__ import annotations

import logging
import socket
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple, Union

from .errors import ConnectError, NotConnectedError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 5.0


@dataclass(frozen=True)
class Stream:
    """Connection-oriented (TCP) transport. 0 means use DEFAULT_TIMEOUT_S."""

    timeout_s: float = 0.0

    def effective_timeout(self) -> float:
        return self.timeout_s if self.timeout_s > 0 else DEFAULT_TIMEOUT_S


@dataclass(frozen=True)
class Datagram:
    """Connectionless (UDP) transport, one packet per line."""


@dataclass(frozen=True)
class Disabled:
    """No network I/O; sends are logged unless disable_log is set."""

    disable_log: bool = False


Mode = Union[Stream, Datagram, Disabled]

PROTOCOLS = ("tcp", "udp", "nop")


def parse_mode(protocol: str, timeout_s: float = 0.0, disable_log: bool = False) -> Mode:
    p = str(protocol).strip().lower()
    if p == "tcp":
        return Stream(timeout_s=float(timeout_s))
    if p == "udp":
        return Datagram()
    if p == "nop":
        return Disabled(disable_log=bool(disable_log))
    raise ValueError(f"Unknown protocol {protocol!r}; expected one of {', '.join(PROTOCOLS)}")


def protocol_name(mode: Mode) -> str:
    if isinstance(mode, Stream):
        return "tcp"
    if isinstance(mode, Datagram):
        return "udp"
    return "nop"


def pick_address(infos: List[Tuple[Any, ...]]) -> Tuple[Any, ...]:
    """First IPv4 entry from getaddrinfo() output, else the first entry."""

    for info in infos:
        if info[0] == socket.AF_INET:
            return info
    return infos[0]


def _open_datagram(host: str, port: int) -> socket.socket:
    try:
        infos = socket.getaddrinfo(host, port, type=socket.SOCK_DGRAM)
    except socket.gaierror as e:
        raise ConnectError(f"cannot resolve {host}:{port}: {e}") from e
    if not infos:
        raise ConnectError(f"cannot resolve {host}:{port}: no addresses")

    family, type_, proto, _, addr = pick_address(infos)
    s = socket.socket(family, type_, proto)
    try:
        s.connect(addr)
    except OSError as e:
        s.close()
        raise ConnectError(f"cannot open udp socket to {host}:{port}: {e}") from e
    return s


def _open_stream(host: str, port: int, timeout_s: float) -> socket.socket:
    try:
        s = socket.create_connection((host, port), timeout=timeout_s)
    except OSError as e:
        raise ConnectError(f"cannot connect to {host}:{port}: {e!r}") from e
    # The timeout bounds connection establishment only; writes block.
    s.settimeout(None)
    return s


def open_transport(mode: Mode, host: str, port: int) -> Optional[socket.socket]:
    """Establish the socket for ``mode``. Disabled mode gets no handle."""

    if isinstance(mode, Disabled):
        return None
    if isinstance(mode, Datagram):
        handle = _open_datagram(host, int(port))
    elif isinstance(mode, Stream):
        handle = _open_stream(host, int(port), mode.effective_timeout())
    else:
        raise ValueError(f"Unsupported transport mode: {mode!r}")
    logger.debug("Opened %s transport to %s:%s", protocol_name(mode), host, port)
    return handle


def close_transport(handle: Optional[socket.socket]) -> None:
    if handle is None:
        raise NotConnectedError("no connection to close")
    handle.close()
