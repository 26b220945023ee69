"""Command-line interface: ``redsentinel [options] <command> [args]``.

Prints command results as JSON on stdout.
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from .client import SentinelClient
from .config import load_config
from .exceptions import SentinelError


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="redsentinel", description="Query a Redis Sentinel.")
    ap.add_argument("--config", help="YAML config file (default: ~/.config/redsentinel/sentinel.yaml)")
    ap.add_argument("--host", help="Sentinel host (overrides config)")
    ap.add_argument("--port", type=int, help="Sentinel port (overrides config)")
    ap.add_argument("--timeout", type=float, help="connect/read timeout in seconds")
    ap.add_argument("-v", "--verbose", action="store_true", help="debug logging")

    sub = ap.add_subparsers(dest="command", required=True)
    sub.add_parser("ping", help="check the sentinel is alive")
    sub.add_parser("masters", help="list monitored masters")
    p = sub.add_parser("slaves", help="list replicas of a master")
    p.add_argument("master")
    p = sub.add_parser("get-master-addr-by-name", help="resolve a master's address")
    p.add_argument("master")
    p = sub.add_parser("is-master-down-by-addr", help="ask if a master is down")
    p.add_argument("ip")
    p.add_argument("port", type=int)
    p = sub.add_parser("reset", help="reset masters matching a glob pattern")
    p.add_argument("pattern")
    return ap


def _run(client: SentinelClient, args: argparse.Namespace):
    if args.command == "masters":
        return client.masters()
    if args.command == "slaves":
        return client.slaves(args.master)
    if args.command == "get-master-addr-by-name":
        return client.get_master_addr_by_name(args.master)
    if args.command == "is-master-down-by-addr":
        return client.is_master_down_by_addr(args.ip, args.port)
    if args.command == "reset":
        return client.reset(args.pattern)
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config)
    except (OSError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    if args.host:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.timeout is not None:
        config.timeout = args.timeout

    # Connects lazily, so a refused connection surfaces from the command itself.
    client = SentinelClient.from_config(config)
    try:
        if args.command == "ping":
            ok = client.ping()
            print(json.dumps(ok))
            return 0 if ok else 1
        try:
            result = _run(client, args)
        except (SentinelError, ValueError, TypeError) as exc:
            logger.debug("%s failed", args.command, exc_info=True)
            print(f"error: {exc}", file=sys.stderr)
            return 1
    finally:
        client.close()
    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
