"""
Per-proxy sync status records and the verdicts derived from them.

A control-plane instance reports, for each proxy it manages, the last
configuration token it sent and the last token the proxy acknowledged for
each resource category. Tokens are opaque: the only check is equality.

Verdicts:
  - STALE  : nothing sent for the category
  - SENT   : sent, but the ack is missing or does not match
  - SYNCED : ack token equals the sent token
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Literal, Mapping, Tuple

Verdict = Literal["STALE", "SENT", "SYNCED"]

STALE: Verdict = "STALE"
SENT: Verdict = "SENT"
SYNCED: Verdict = "SYNCED"

CATEGORIES: Tuple[str, ...] = ("cluster", "listener", "endpoint", "route")

# attribute -> accepted wire keys (matched case-insensitively)
_FIELD_KEYS: Dict[str, Tuple[str, ...]] = {
    "proxy_id": ("proxy", "proxyid", "proxy_id"),
    "proxy_version": ("proxy_version", "proxyversion"),
    "istio_version": ("istio_version", "istioversion"),
}
for _cat in CATEGORIES:
    _FIELD_KEYS[f"{_cat}_sent"] = (f"{_cat}_sent", f"{_cat}sent")
    _FIELD_KEYS[f"{_cat}_acked"] = (f"{_cat}_acked", f"{_cat}acked")
del _cat


def verdict(sent: str, acked: str) -> Verdict:
    if not sent:
        return STALE
    if acked == sent:
        return SYNCED
    return SENT


@dataclass(frozen=True)
class ProxyStatus:
    """One proxy's sync state as reported by a single control-plane instance."""
    proxy_id: str = ""
    proxy_version: str = ""
    istio_version: str = ""
    cluster_sent: str = ""
    cluster_acked: str = ""
    listener_sent: str = ""
    listener_acked: str = ""
    endpoint_sent: str = ""
    endpoint_acked: str = ""
    route_sent: str = ""
    route_acked: str = ""

    @classmethod
    def from_mapping(cls, obj: Any) -> "ProxyStatus":
        """
        Build a record from one decoded JSON object.

        Unknown keys are ignored; missing or null fields become "".
        Raises ValueError for a non-mapping or a non-string field value.
        """
        if not isinstance(obj, Mapping):
            raise ValueError(f"expected an object, got {type(obj).__name__}")

        lowered = {str(k).lower(): v for k, v in obj.items()}
        values: Dict[str, str] = {}
        for attr, keys in _FIELD_KEYS.items():
            for key in keys:
                if key not in lowered:
                    continue
                raw = lowered[key]
                if raw is None:
                    continue
                if not isinstance(raw, str):
                    raise ValueError(
                        f"field '{key}' must be a string, got {type(raw).__name__}"
                    )
                values[attr] = raw
                break
        return cls(**values)

    def tokens(self, category: str) -> Tuple[str, str]:
        """Return (sent, acked) for a category."""
        if category not in CATEGORIES:
            raise KeyError(category)
        return getattr(self, f"{category}_sent"), getattr(self, f"{category}_acked")

    def verdicts(self) -> Dict[str, Verdict]:
        return {cat: verdict(*self.tokens(cat)) for cat in CATEGORIES}

    @property
    def version(self) -> str:
        return display_version(self)


def display_version(record: ProxyStatus) -> str:
    """Prefer proxy_version; older control planes only fill istio_version."""
    return record.proxy_version or record.istio_version or ""
