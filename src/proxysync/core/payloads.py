"""
Local payload sources for the CLI.

Status payloads are fetched elsewhere and dropped on disk, one file per
control-plane instance. The instance id is the file stem
(e.g. ``istiod-1.json`` -> ``istiod-1``) or the ``ID`` part of an
``ID=PATH`` argument.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, Optional

__all__ = ["load_payload_dir", "parse_payload_args"]


def _read_bytes(path: Path) -> bytes:
    if not path.is_file():
        raise FileNotFoundError(f"Payload file not found: {path}")
    return path.read_bytes()


def load_payload_dir(
    directory: str,
    pattern: str = "*.json",
    logger: Optional[logging.LoggerAdapter] = None,
) -> Dict[str, bytes]:
    log = logger or logging.getLogger("ps.payloads")
    base = Path(directory)
    if not base.is_dir():
        raise FileNotFoundError(f"Payload directory not found: {directory}")

    out: Dict[str, bytes] = {}
    for p in sorted(base.glob(pattern)):
        if not p.is_file():
            continue
        out[p.stem] = _read_bytes(p)
        log.debug("Loaded payload instance=%s bytes=%d", p.stem, len(out[p.stem]))
    return out


def parse_payload_args(items: Iterable[str]) -> Dict[str, bytes]:
    """Parse repeated ``ID=PATH`` arguments; a later duplicate ID wins."""
    out: Dict[str, bytes] = {}
    for item in items:
        instance, sep, path = item.partition("=")
        instance, path = instance.strip(), path.strip()
        if not sep or not instance or not path:
            raise ValueError(f"Invalid payload argument '{item}' (expected ID=PATH)")
        out[instance] = _read_bytes(Path(path))
    return out
