from __future__ import annotations

import time
from typing import Callable

from .metric import Metric

Clock = Callable[[], float]


def format_prefix(prefix: str) -> str:
    return f"{prefix}." if prefix else ""


def encode_line(metric: Metric, prefix: str = "", clock: Clock = time.time) -> str:
    """Render one plaintext protocol line: ``[prefix.]name value timestamp\\n``."""

    ts = metric.timestamp or int(clock())
    return f"{format_prefix(prefix)}{metric.name} {metric.value} {ts}\n"


def encode_bytes(metric: Metric, prefix: str = "", clock: Clock = time.time) -> bytes:
    return encode_line(metric, prefix, clock).encode("utf-8", errors="replace")
