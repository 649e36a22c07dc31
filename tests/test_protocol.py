import json
import struct

import pytest

from trapper_client import protocol
from trapper_client.errors import EncodingFailed, InvalidHeader, InvalidResponse
from trapper_client.models import MetricBatch, MetricRecord

KEY = 'key_test["{$URL}","github","{$HOST}","space_use"]'

EXPECTED_JSON = (
    '{"request":"agent data","data":[{"host":"host_test",'
    '"key":"key_test[\\"{$URL}\\",\\"github\\",\\"{$HOST}\\",\\"space_use\\"]",'
    '"value":99.87,"clock":1566481943}]}'
)


def _batch(*records):
    return MetricBatch.of(records)


def test_encode_reference_record():
    batch = _batch(MetricRecord(host="host_test", key=KEY, value=99.87, clock=1566481943))

    frame = protocol.encode(batch)

    payload = EXPECTED_JSON.encode("utf-8")
    assert frame == b"ZBXD\x01" + struct.pack("<Q", len(payload)) + payload


def test_length_field_matches_payload():
    batch = _batch(
        MetricRecord("web01", "system.cpu.load[all,avg1]", 0.25, 1700000000),
        MetricRecord("web01", "agent.version", "6.0.1", 1700000001),
        MetricRecord("db01", "proc.num[postgres]", 42, -1),
        MetricRecord("café", "clé", "été", 0),
    )

    frame = protocol.encode(batch)

    assert frame[:5] == protocol.HEADER
    (length,) = struct.unpack("<Q", frame[5:13])
    assert length == len(frame) - 13
    body = json.loads(frame[13:].decode("utf-8"))
    assert [d["host"] for d in body["data"]] == ["web01", "web01", "db01", "café"]
    assert body["data"][2] == {"host": "db01", "key": "proc.num[postgres]", "value": 42, "clock": -1}


def test_encode_empty_batch():
    frame = protocol.encode(MetricBatch())
    assert frame[13:] == b'{"request":"agent data","data":[]}'
    assert protocol.declared_length(frame) == len(frame) - 13


@pytest.mark.parametrize("value", [object(), b"raw", float("nan"), float("inf"), {1, 2}])
def test_encode_unrepresentable_value(value):
    with pytest.raises(EncodingFailed):
        protocol.encode(_batch(MetricRecord("h", "k", value, 0)))


@pytest.mark.parametrize("data", [b"", b"ZBXD", b"ZBXD\x01", b"ZBXD\x01" + b"\x00" * 7])
def test_decode_short_input(data):
    with pytest.raises(InvalidHeader):
        protocol.decode(data)


@pytest.mark.parametrize("magic", [b"ZBXD\x02", b"zbxd\x01", b"HTTP/", b"\x00\x00\x00\x00\x00"])
def test_decode_wrong_magic(magic):
    with pytest.raises(InvalidHeader):
        protocol.decode(magic + struct.pack("<Q", 2) + b"{}")


def test_decode_returns_everything_after_header():
    body = b'{"response":"success","info":"processed: 1; failed: 0; total: 1; seconds spent: 0.000055"}'
    assert protocol.decode(protocol.frame(body)) == body

    # The declared length is not consulted.
    lying = b"ZBXD\x01" + struct.pack("<Q", 3) + b"abcdef"
    assert protocol.decode(lying) == b"abcdef"
    assert protocol.decode(b"ZBXD\x01" + struct.pack("<Q", 100)) == b""


def test_decode_bounded():
    data = b"ZBXD\x01" + struct.pack("<Q", 3) + b"abcdef"
    assert protocol.decode(data, bounded=True) == b"abc"

    with pytest.raises(InvalidHeader):
        protocol.decode(b"ZBXD\x01" + struct.pack("<Q", 10) + b"abc", bounded=True)


def test_parse_response():
    r = protocol.parse_response(b'{"response":"success","info":"processed: 2; failed: 1; total: 3; seconds spent: 0.000100"}')
    assert r.ok
    assert (r.processed, r.failed, r.total) == (2, 1, 3)

    r = protocol.parse_response(b'{"response":"failed"}')
    assert not r.ok
    assert r.info == ""
    assert r.processed is None


@pytest.mark.parametrize("payload", [b"", b"not json", b"[1, 2]", b'{"info":"x"}', b"\xff\xfe"])
def test_parse_response_invalid(payload):
    with pytest.raises(InvalidResponse):
        protocol.parse_response(payload)
