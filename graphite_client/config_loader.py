from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import yaml

from .transport import Mode, parse_mode


def load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config must be a mapping/dict. Got: {type(data)}")
    return data


@dataclass(frozen=True)
class GraphiteCfg:
    protocol: str = "tcp"  # 'tcp', 'udp' or 'nop'
    host: str = "127.0.0.1"
    port: int = 2003
    prefix: str = ""
    timeout_seconds: float = 0.0  # 0 -> transport default
    disable_log: bool = False

    def mode(self) -> Mode:
        return parse_mode(self.protocol, self.timeout_seconds, self.disable_log)


def parse_config(raw: Dict[str, Any]) -> GraphiteCfg:
    g = raw.get("graphite") or {}
    if not isinstance(g, dict):
        raise ValueError("Config 'graphite:' must be a mapping")

    try:
        port = int(g.get("port", 2003))
    except (TypeError, ValueError) as e:
        raise ValueError(f"graphite.port must be an integer, got {g.get('port')!r}") from e
    if not 0 < port < 65536:
        raise ValueError(f"graphite.port out of range: {port}")

    timeout = float(g.get("timeout_seconds") or 0.0)
    if timeout < 0:
        raise ValueError("graphite.timeout_seconds must be >= 0")

    cfg = GraphiteCfg(
        protocol=str(g.get("protocol", "tcp")).lower(),
        host=str(g.get("host", "127.0.0.1")),
        port=port,
        prefix=str(g.get("prefix") or ""),
        timeout_seconds=timeout,
        disable_log=bool(g.get("disable_log", False)),
    )
    # Fail early on an unknown protocol tag.
    cfg.mode()
    return cfg
