"""
Command-line interface for proxysync.

Payloads are the raw per-instance status dumps already fetched from each
control-plane instance, one JSON file per instance.

Usage (examples):
  - Full report from a directory (instance id = file stem):
      python -m proxysync.cli all --input ./status

  - One proxy, explicit instance files:
      python -m proxysync.cli proxy productpage-v1-abc.default \
        --payload istiod-1=./istiod-1.json --payload istiod-2=./istiod-2.json

  - JSON output:
      python -m proxysync.cli all --input ./status --output json
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Dict, Iterable, Optional

from .core.config import AppConfig, load_config
from .core.decoder import DecodeError
from .core.logging_setup import build_logger, close_logger
from .core.payloads import load_payload_dir, parse_payload_args
from .core.reporter import OUTPUT_FORMATS, StatusWriter

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_DECODE = 2


def _add_common_args(a: argparse.ArgumentParser) -> None:
    # Payload sources
    a.add_argument("--input", default=None, help="Directory holding one payload file per instance")
    a.add_argument("--pattern", default=None, help="Glob for payload files in --input (default *.json)")
    a.add_argument(
        "--payload",
        action="append",
        default=[],
        metavar="ID=PATH",
        help="Explicit instance payload (repeatable)",
    )

    # Output
    a.add_argument("--output", default=None, choices=list(OUTPUT_FORMATS), help="Report format")

    # Logging
    a.add_argument("--logs-dir", default=None, help="Logs base directory")
    a.add_argument("--console-level", default=None, help="Console log level (INFO..CRITICAL)")
    a.add_argument("--file-level", default=None, help="File log level (DEBUG..CRITICAL)")


def _build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="psync", description="Proxy configuration sync status")

    sub = p.add_subparsers(dest="cmd", required=True)

    a = sub.add_parser("all", help="Report sync status for every proxy")
    _add_common_args(a)

    s = sub.add_parser("proxy", help="Report sync status for a single proxy")
    s.add_argument("proxy_id", help="Proxy id, matched exactly")
    _add_common_args(s)

    return p


def _cli_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Only flags the user actually set override lower-precedence sources."""
    pairs = {
        "input": {"dir": args.input, "pattern": args.pattern},
        "output": {"format": args.output},
        "logging": {
            "base_dir": args.logs_dir,
            "console_level": args.console_level,
            "file_level": args.file_level,
        },
    }
    out: Dict[str, Any] = {}
    for section, values in pairs.items():
        kept = {k: v for k, v in values.items() if v is not None}
        if kept:
            out[section] = kept
    return out


def _report_cmd(args: argparse.Namespace) -> int:
    cfg = load_config(_cli_overrides(args))
    proxy_id = getattr(args, "proxy_id", None)

    logger = build_logger(
        run_id=cfg.run_id,
        action=args.cmd,
        base_dir=cfg.logging.base_dir,
        console_level=cfg.logging.console_level,
        file_level=cfg.logging.file_level,
        extra={"proxy": proxy_id},
    )
    try:
        return _run_report(args, cfg, proxy_id, logger)
    finally:
        close_logger(logger)


def _run_report(
    args: argparse.Namespace,
    cfg: AppConfig,
    proxy_id: Optional[str],
    logger: logging.LoggerAdapter,
) -> int:
    logger.info("Starting psync %s (format=%s)", args.cmd, cfg.output.format)

    if not cfg.input.dir and not args.payload:
        logger.error("No payload source: pass --input DIR or --payload ID=PATH")
        return EXIT_USAGE

    try:
        payloads: Dict[str, bytes] = {}
        if cfg.input.dir:
            payloads.update(load_payload_dir(cfg.input.dir, cfg.input.pattern, logger=logger))
        payloads.update(parse_payload_args(args.payload))
    except (FileNotFoundError, ValueError) as e:
        logger.error("Cannot load payloads: %s", e)
        return EXIT_USAGE

    logger.info("Loaded %d instance payloads", len(payloads))

    writer = StatusWriter(sys.stdout, fmt=cfg.output.format, logger=logger)
    try:
        if proxy_id is None:
            rows = writer.print_all(payloads)
        else:
            rows = writer.print_single(payloads, proxy_id)
    except DecodeError as e:
        logger.error("Status report aborted: %s", e)
        return EXIT_DECODE

    logger.info("Report complete: rows=%d", rows)
    return EXIT_OK


def main(argv: Iterable[str] | None = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.cmd in ("all", "proxy"):
        return _report_cmd(args)

    parser.error("Unknown command")  # pragma: no cover
    return 2  # pragma: no cover


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
