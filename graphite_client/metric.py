from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Union


@dataclass(frozen=True)
class Metric:
    """One data point: name, value and Unix timestamp in seconds.

    The value is kept as a string so it reaches the wire exactly as given.
    A timestamp of 0 means "fill in the current time when the line is encoded".
    """

    name: str = ""
    value: str = ""
    timestamp: int = 0

    def is_unset(self) -> bool:
        # All fields at their defaults: a placeholder slot, skipped by batch sends.
        return self == _UNSET

    def __str__(self) -> str:
        try:
            when = datetime.fromtimestamp(self.timestamp).strftime("%Y-%m-%d %H:%M:%S")
        except (OverflowError, OSError, ValueError):
            # Outside the platform time_t range.
            when = str(self.timestamp)
        return f"{self.name} {self.value} {when}"


_UNSET = Metric()


def new_metric(name: str, value: Union[str, int, float], timestamp: Union[int, float] = 0) -> Metric:
    return Metric(name=name, value=value if isinstance(value, str) else str(value), timestamp=int(timestamp))
