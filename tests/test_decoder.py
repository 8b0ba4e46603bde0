import json

import pytest

from proxysync.core.decoder import DecodeError, decode, decode_instance
from proxysync.core.status import ProxyStatus


def _payload(*records):
    return json.dumps(list(records)).encode("utf-8")


def test_decode_flattens_in_instance_order_without_dedup():
    payloads = {
        "pilotB": _payload({"proxy": "p0"}, {"proxy": "p2"}),
        "pilotA": _payload({"proxy": "p1"}, {"proxy": "p0", "cluster_sent": "x"}),
    }
    got = decode(payloads)
    assert [r.proxy_id for r in got] == ["p1", "p0", "p0", "p2"]
    assert got[1] == ProxyStatus(proxy_id="p0", cluster_sent="x")


def test_decode_empty_inputs():
    assert decode({}) == []
    assert decode({"pilot1": b"[]"}) == []
    assert decode({"pilot1": b"null"}) == []


@pytest.mark.parametrize(
    "raw",
    [
        b"gobbledygook",
        b"",
        b'{"proxy": "p1"}',
        b'["p1"]',
        b'[{"proxy": "p1", "route_sent": 3}]',
        b"\xff\xfe[]",
    ],
)
def test_decode_instance_rejects_malformed(raw):
    with pytest.raises(DecodeError) as exc:
        decode_instance("pilot9", raw)
    assert exc.value.instance == "pilot9"
    assert "pilot9" in str(exc.value)


def test_one_bad_instance_fails_the_whole_call():
    payloads = {
        "pilot1": _payload({"proxy": "p1", "cluster_sent": "n1"}),
        "pilot2": b"gobbledygook",
        "pilot3": _payload({"proxy": "p3"}),
    }
    with pytest.raises(DecodeError) as exc:
        decode(payloads)
    assert exc.value.instance == "pilot2"


def test_first_bad_instance_in_sorted_order_is_reported():
    payloads = {"zeta": b"{", "alpha": b"nope"}
    with pytest.raises(DecodeError) as exc:
        decode(payloads)
    assert exc.value.instance == "alpha"


def test_deeply_nested_payload_is_a_decode_error():
    payloads = {"pilot1": b"[" * 100000, "pilot0": b"[]"}
    with pytest.raises(DecodeError) as exc:
        decode(payloads)
    assert exc.value.instance == "pilot1"
    assert "nesting too deep" in str(exc.value)
