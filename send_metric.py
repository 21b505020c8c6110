from __future__ import annotations

import argparse
import logging
from pathlib import Path

import yaml

from graphite_client.client import client_from_config
from graphite_client.config_loader import GraphiteCfg, load_yaml, parse_config
from graphite_client.errors import GraphiteError


def build_cfg(args: argparse.Namespace) -> GraphiteCfg:
    raw = load_yaml(Path(args.config))
    g = dict(raw.get("graphite") or {})
    for key in ("protocol", "host", "port", "prefix"):
        value = getattr(args, key)
        if value is not None:
            g[key] = value
    raw = dict(raw)
    raw["graphite"] = g
    return parse_config(raw)


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Send one metric to a Graphite endpoint")
    ap.add_argument("name", help="Metric name, e.g. servers.web1.cpu")
    ap.add_argument("value", help="Metric value, sent verbatim")
    ap.add_argument(
        "--config",
        default=str(Path("config") / "graphite.yaml"),
        help="Path to YAML config (default: config/graphite.yaml)",
    )
    ap.add_argument("--protocol", choices=["tcp", "udp", "nop"], help="Override graphite.protocol")
    ap.add_argument("--host", help="Override graphite.host")
    ap.add_argument("--port", type=int, help="Override graphite.port")
    ap.add_argument("--prefix", help="Override graphite.prefix")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        cfg = build_cfg(args)
        with client_from_config(cfg) as g:
            g.simple_send(args.name, args.value)
    except (GraphiteError, FileNotFoundError, ValueError, yaml.YAMLError) as e:
        print(f"Failed to send {args.name}: {e}")
        return 1

    print(f"Sent {args.name}={args.value} via {cfg.protocol}://{cfg.host}:{cfg.port}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
