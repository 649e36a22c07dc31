from __future__ import annotations

import argparse
import math
import shlex
import sys
import time
from typing import IO, Iterable

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import protocol
from .client import ClientConfig, TrapperClient
from .config import AgentConfig, load_config
from .errors import ConfigError, TrapperError
from .log import setup_logging
from .models import MetricBatch, MetricRecord, MetricValue, ServerAddress, ServerResponse

DEFAULT_TIMEOUT_S = 5.0


def coerce_value(text: str) -> MetricValue:
    for kind in (int, float):
        try:
            return kind(text)
        except ValueError:
            pass
    return text


def parse_lines(lines: Iterable[str]) -> list[MetricRecord]:
    """Parse ``host key value [clock]`` lines, split with shell quoting rules."""
    now = int(time.time())
    records = []
    for lineno, line in enumerate(lines, 1):
        try:
            fields = shlex.split(line, comments=True)
        except ValueError as e:
            raise ValueError(f"line {lineno}: {e}") from e
        if not fields:
            continue
        if len(fields) not in (3, 4):
            raise ValueError(f"line {lineno}: expected 'host key value [clock]', got {len(fields)} field(s)")
        host, key, value = fields[:3]
        try:
            clock = int(fields[3]) if len(fields) == 4 else now
            records.append(MetricRecord(host=host, key=key, value=coerce_value(value), clock=clock))
        except ValueError as e:
            raise ValueError(f"line {lineno}: {e}") from e
    return records


def _response_table(r: ServerResponse) -> Table:
    t = Table(title="Server response")
    t.add_column("Key", style="bold")
    t.add_column("Value")

    t.add_row("response", escape(r.response))
    t.add_row("info", escape(r.info))
    t.add_row("processed", str(r.processed))
    t.add_row("failed", str(r.failed))
    t.add_row("total", str(r.total))
    return t


def _add_record_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("-s", "--host-name", required=True, help="Monitored host name")
    p.add_argument("-k", "--key", required=True, help="Item key")
    p.add_argument("-o", "--value", required=True, help="Value to send")
    p.add_argument("--clock", type=int, default=None, help="Unix timestamp (default: now)")


def _record(args: argparse.Namespace) -> MetricRecord:
    clock = args.clock if args.clock is not None else int(time.time())
    return MetricRecord(host=args.host_name, key=args.key, value=coerce_value(args.value), clock=clock)


def _read_batch(path: str) -> list[MetricRecord]:
    if path == "-":
        return parse_lines(sys.stdin)
    with open(path, encoding="utf-8") as f:
        return parse_lines(f)


def _resolve(args: argparse.Namespace) -> tuple[ServerAddress, AgentConfig | None]:
    cfg = None
    if args.config is not None or args.host is None or args.port is None:
        cfg = load_config(args.config)
    host = args.host if args.host is not None else cfg.server.ip
    port = args.port if args.port is not None else cfg.server.port
    try:
        return ServerAddress(host, port), cfg
    except ValueError as e:
        raise ConfigError(str(e)) from e


def main(argv: list[str] | None = None, stdout: IO[str] | None = None) -> int:
    p = argparse.ArgumentParser(prog="trapper-client")
    p.add_argument("--config", default=None, help="TOML config file (default: $TRAPPER_CLIENT_CONFIG or conf/conf.toml)")
    p.add_argument("--host", default=None, help="Server host, overrides the config file")
    p.add_argument("--port", default=None, type=int, help="Server port, overrides the config file")
    p.add_argument("--timeout", default=None, type=float, help="Connect and read timeout in seconds")
    p.add_argument("--log-level", default=None)

    sub = p.add_subparsers(dest="cmd", required=True)
    _add_record_args(sub.add_parser("send", help="Send one value"))

    batch = sub.add_parser("batch", help="Send every 'host key value [clock]' line of a file")
    batch.add_argument("file", help="Input file, '-' for stdin")

    _add_record_args(sub.add_parser("encode", help="Print the encoded frame as hex without sending it"))

    args = p.parse_args(argv)
    console = Console(file=stdout)

    if args.timeout is not None and not 0 < args.timeout < math.inf:
        console.print(f"[red]error:[/red] --timeout must be a positive number, got {args.timeout}")
        return 2

    try:
        records = _read_batch(args.file) if args.cmd == "batch" else [_record(args)]
    except (OSError, ValueError) as e:
        console.print(f"[red]error:[/red] {escape(str(e))}")
        return 2

    try:
        if args.cmd == "encode":
            console.print(protocol.encode(MetricBatch.of(records)).hex(), soft_wrap=True)
            return 0

        address, cfg = _resolve(args)
        level = args.log_level or (cfg.agent.loglevel if cfg else "info")
        setup_logging(level, cfg.agent.logfile if cfg else None)

        if args.timeout is not None:
            timeout = args.timeout
        else:
            timeout = cfg.agent.timeout if cfg else DEFAULT_TIMEOUT_S
        client = TrapperClient(ClientConfig.from_address(address, connect_timeout_s=timeout, read_timeout_s=timeout))
        r = client.send_batch(MetricBatch.of(records))
    except ConfigError as e:
        console.print(f"[red]config error:[/red] {escape(str(e))}")
        return 2
    except TrapperError as e:
        console.print(f"[red]{type(e).__name__}:[/red] {escape(str(e))}")
        return 1

    console.print(_response_table(r))
    return 0 if r.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
