"""
Sync status report: one row per proxy, one verdict per resource category.

Two entry points per report kind:
  - StatusWriter.print_all / print_single write to a caller-owned sink and
    raise DecodeError (nothing is written in that case).
  - render_all / render_single return a RenderResult carrying either the
    rendered text or the DecodeError; they never raise it.

Table layout (columns padded to the widest cell + 3 spaces):

    PROXY    VERSION   CLUSTER   LISTENER   ENDPOINT   ROUTE
    proxy1   1.1       SENT      SYNCED     SYNCED     STALE
"""

from __future__ import annotations

import io
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, TextIO

from .decoder import DecodeError, decode
from .status import CATEGORIES, ProxyStatus, display_version

__all__ = [
    "HEADER",
    "OUTPUT_FORMATS",
    "RenderResult",
    "StatusWriter",
    "render_all",
    "render_single",
]

HEADER: List[str] = ["PROXY", "VERSION", "CLUSTER", "LISTENER", "ENDPOINT", "ROUTE"]
OUTPUT_FORMATS = ("table", "json")
_PADDING = 3


@dataclass(frozen=True)
class RenderResult:
    """Rendered report, or the decode error that prevented it."""
    text: str = ""
    rows: int = 0
    error: Optional[DecodeError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _sorted(records: Sequence[ProxyStatus]) -> List[ProxyStatus]:
    # stable: duplicates keep decode order (instance id, then payload order)
    return sorted(records, key=lambda r: r.proxy_id)


def _row(record: ProxyStatus) -> List[str]:
    verdicts = record.verdicts()
    return [record.proxy_id, display_version(record)] + [verdicts[c] for c in CATEGORIES]


def _format_table(rows: List[List[str]]) -> str:
    table = [HEADER] + rows
    widths = [max(len(line[i]) for line in table) for i in range(len(HEADER))]
    last = len(HEADER) - 1
    out = []
    for line in table:
        cells = [cell.ljust(widths[i] + _PADDING) for i, cell in enumerate(line[:last])]
        cells.append(line[last])
        out.append("".join(cells) + "\n")
    return "".join(out)


def _format_json(rows: List[List[str]]) -> str:
    keys = [h.lower() for h in HEADER]
    items: List[Dict[str, Any]] = [dict(zip(keys, r)) for r in rows]
    return json.dumps(items, indent=2) + "\n"


class StatusWriter:
    """Renders proxy sync status from raw control-plane payloads."""

    def __init__(
        self,
        writer: TextIO,
        *,
        fmt: str = "table",
        logger: Optional[logging.LoggerAdapter] = None,
    ) -> None:
        if fmt not in OUTPUT_FORMATS:
            raise ValueError(f"Unknown output format '{fmt}' (expected one of {', '.join(OUTPUT_FORMATS)})")
        self.writer = writer
        self.fmt = fmt
        self.log = logger or logging.getLogger("ps.report")

    # ------------- Public API -------------

    def print_all(self, payloads: Mapping[str, bytes]) -> int:
        """Write the full report. Returns the number of data rows."""
        records = decode(payloads, logger=self.log)
        return self._write(records)

    def print_single(self, payloads: Mapping[str, bytes], proxy_id: str) -> int:
        """Write the report restricted to rows whose proxy id equals `proxy_id`."""
        records = decode(payloads, logger=self.log)
        matched = [r for r in records if r.proxy_id == proxy_id]
        if not matched:
            self.log.info("No status reported for proxy=%s", proxy_id)
        return self._write(matched)

    def render(self, records: Sequence[ProxyStatus]) -> str:
        rows = [_row(r) for r in _sorted(records)]
        if self.fmt == "json":
            return _format_json(rows)
        return _format_table(rows)

    # ------------- Internal -------------

    def _write(self, records: Sequence[ProxyStatus]) -> int:
        self.writer.write(self.render(records))
        self.log.debug("Rendered %d status rows (format=%s)", len(records), self.fmt)
        return len(records)


def _render(call, fmt: str, logger: Optional[logging.LoggerAdapter]) -> RenderResult:
    buf = io.StringIO()
    sw = StatusWriter(buf, fmt=fmt, logger=logger)
    try:
        rows = call(sw)
    except DecodeError as e:
        return RenderResult(error=e)
    return RenderResult(text=buf.getvalue(), rows=rows)


def render_all(
    payloads: Mapping[str, bytes],
    *,
    fmt: str = "table",
    logger: Optional[logging.LoggerAdapter] = None,
) -> RenderResult:
    return _render(lambda sw: sw.print_all(payloads), fmt, logger)


def render_single(
    payloads: Mapping[str, bytes],
    proxy_id: str,
    *,
    fmt: str = "table",
    logger: Optional[logging.LoggerAdapter] = None,
) -> RenderResult:
    return _render(lambda sw: sw.print_single(payloads, proxy_id), fmt, logger)
