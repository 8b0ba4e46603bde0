"""
Decode raw per-instance status payloads into ProxyStatus records.

Input is a mapping {instance_id: bytes}; each payload is a JSON array of
status objects. Decoding is all-or-nothing: one bad payload fails the call
with DecodeError naming the instance, and no records are returned.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional

from .status import ProxyStatus

__all__ = ["DecodeError", "decode", "decode_instance"]


@dataclass
class DecodeError(Exception):
    """A control-plane instance returned a payload that is not a status list."""
    instance: str
    message: str = ""

    def __str__(self) -> str:
        base = f"DecodeError(instance={self.instance})"
        if self.message:
            base += f": {self.message}"
        return base


def decode_instance(instance: str, payload: bytes) -> List[ProxyStatus]:
    """Decode one instance's payload. Raises DecodeError."""
    try:
        text = payload.decode("utf-8")
    except (UnicodeDecodeError, AttributeError) as e:
        raise DecodeError(instance=instance, message=f"payload is not UTF-8 bytes: {e}") from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(instance=instance, message=f"invalid JSON: {e}") from e
    except RecursionError as e:
        raise DecodeError(instance=instance, message="invalid JSON: nesting too deep") from e

    # JSON null unmarshals to an empty status list
    if data is None:
        return []
    if not isinstance(data, list):
        raise DecodeError(
            instance=instance,
            message=f"expected a JSON array of status objects, got {type(data).__name__}",
        )

    records: List[ProxyStatus] = []
    for idx, item in enumerate(data):
        try:
            records.append(ProxyStatus.from_mapping(item))
        except ValueError as e:
            raise DecodeError(instance=instance, message=f"record {idx}: {e}") from e
    return records


def decode(
    payloads: Mapping[str, bytes],
    logger: Optional[logging.LoggerAdapter] = None,
) -> List[ProxyStatus]:
    """
    Decode every instance payload and flatten the records.

    Instances are visited in sorted id order so results and error messages
    are reproducible. No dedup: a proxy reported by two instances yields
    two records.
    """
    log = logger or logging.getLogger("ps.decode")
    out: List[ProxyStatus] = []
    for instance in sorted(payloads):
        try:
            records = decode_instance(instance, payloads[instance])
        except DecodeError as e:
            log.warning("Status payload rejected: %s", e)
            raise
        log.debug("Decoded instance=%s records=%d", instance, len(records))
        out.extend(records)
    return out
