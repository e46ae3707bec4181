import pytest

import py_cloudevents
from py_cloudevents import (
    AttributeKind,
    AttributeValue,
    CloudEvent,
    CloudEventBatch,
    MalformedEnvelope,
    StructuredData,
    Timestamp,
    UnknownAttributeVariant,
    UnknownDataVariant,
    ValidationError,
    protobuf_codec_factory,
)
from py_cloudevents.adaptors.protobuf.schema import CloudEventMessage


# Minimal protobuf wire writer, used to build payloads independently of the codec.

def _varint(value: int) -> bytes:
    if value < 0:
        value += 1 << 64
    out = bytearray()
    while True:
        bits = value & 0x7F
        value >>= 7
        if value:
            out.append(bits | 0x80)
        else:
            out.append(bits)
            return bytes(out)


def _varint_field(number: int, value: int) -> bytes:
    return _varint(number << 3) + _varint(value)


def _len_field(number: int, payload: bytes) -> bytes:
    return _varint((number << 3) | 2) + _varint(len(payload)) + payload


def _required(id=b"123", source=b"/sensors/1", spec_version=b"1.0", type=b"temperature.updated") -> bytes:
    return _len_field(1, id) + _len_field(2, source) + _len_field(3, spec_version) + _len_field(4, type)


def _attribute(name: bytes, value: bytes) -> bytes:
    return _len_field(5, _len_field(1, name) + _len_field(2, value))


@pytest.fixture
def codec():
    return protobuf_codec_factory()


@pytest.fixture
def event():
    return CloudEvent.create(
        "123",
        "/sensors/1",
        "1.0",
        "temperature.updated",
        {"priority": AttributeValue.integer(3)},
        text_data="42C",
    )


def test_round_trip(codec, event):
    decoded = codec.decode(codec.encode(event))
    assert decoded == event
    assert decoded.get_attribute("priority").as_integer() == 3
    assert decoded.as_text() == "42C"


def test_encoding_matches_wire_layout(codec, event):
    """The encoded bytes follow the field numbers of the CloudEvents proto exactly."""
    expected = (
        _required()
        + _attribute(b"priority", _varint_field(2, 3))
        + _len_field(7, b"42C")
    )
    assert codec.encode(event) == expected


def test_decode_hand_built_bytes(codec):
    payload = (
        _len_field(6, b"\x00\xff")
        + _attribute(b"time", _len_field(7, _varint_field(1, 1714566615) + _varint_field(2, 7)))
        + _attribute(b"flag", _varint_field(1, 0))
        + _required()
    )
    decoded = codec.decode(payload)
    assert decoded.id == "123"
    assert decoded.as_binary() == b"\x00\xff"
    assert decoded.get_attribute("time").as_timestamp() == Timestamp(seconds=1714566615, nanos=7)
    assert decoded.get_attribute("flag").as_boolean() is False


def test_module_level_functions(event):
    assert py_cloudevents.decode(py_cloudevents.encode(event)) == event
    batch = CloudEventBatch.of(event)
    assert py_cloudevents.decode_batch(py_cloudevents.encode_batch(batch)) == batch


@pytest.mark.parametrize(
    "value",
    [
        AttributeValue.boolean(False),
        AttributeValue.boolean(True),
        AttributeValue.integer(0),
        AttributeValue.integer(-(2**31)),
        AttributeValue.integer(2**31 - 1),
        AttributeValue.string(""),
        AttributeValue.string("héllo"),
        AttributeValue.bytes_(b""),
        AttributeValue.bytes_(b"\x00\x01\xfe"),
        AttributeValue.uri("https://example.com/path?q=1"),
        AttributeValue.uri_ref("/relative#frag"),
        AttributeValue.timestamp(Timestamp(seconds=1714566615, nanos=123456789)),
        AttributeValue.timestamp(Timestamp(seconds=-62135596800)),
    ],
)
def test_attribute_type_fidelity(codec, value):
    event = CloudEvent.create("1", "/s", "1.0", "t", {"ext": value})
    decoded = codec.decode(codec.encode(event)).get_attribute("ext")
    assert decoded.kind is value.kind
    assert decoded == value


def test_false_and_zero_attributes_stay_distinct(codec):
    event = CloudEvent.create(
        "1", "/s", "1.0", "t",
        {"flag": AttributeValue.boolean(False), "count": AttributeValue.integer(0)},
    )
    decoded = codec.decode(codec.encode(event))
    assert decoded.get_attribute("flag").kind is AttributeKind.BOOLEAN
    assert decoded.get_attribute("count").kind is AttributeKind.INTEGER


@pytest.mark.parametrize(
    "kwargs",
    [
        {},
        {"binary_data": b""},
        {"binary_data": b"\x01\x02"},
        {"text_data": ""},
        {"text_data": "payload"},
        {"proto_data": StructuredData(type_url="type.googleapis.com/x.Y", value=b"\x08\x01")},
        {"proto_data": StructuredData(type_url="")},
    ],
)
def test_data_variant_round_trip(codec, kwargs):
    event = CloudEvent.create("1", "/s", "1.0", "t", **kwargs)
    decoded = codec.decode(codec.encode(event))
    assert decoded == event
    assert decoded.data_kind == event.data_kind


def test_deterministic_encoding_ignores_attribute_order(codec):
    a = CloudEvent.create(
        "1", "/s", "1.0", "t", {"a": AttributeValue.integer(1), "b": AttributeValue.string("x")}
    )
    b = CloudEvent.create(
        "1", "/s", "1.0", "t", {"b": AttributeValue.string("x"), "a": AttributeValue.integer(1)}
    )
    assert codec.encode(a) == codec.encode(b)


def test_to_proto_and_from_proto(codec, event):
    message = codec.to_proto(event)
    assert isinstance(message, CloudEventMessage)
    assert message.WhichOneof("data") == "text_data"
    assert codec.from_proto(message) == event


def test_to_proto_replaces_existing_message_contents(codec, event):
    message = CloudEventMessage(id="old", binary_data=b"\x01")
    message.attributes["stale"].ce_string = "x"
    message = codec.to_proto(event, message)
    assert "stale" not in message.attributes
    assert message.WhichOneof("data") == "text_data"
    assert codec.from_proto(message) == event


def test_encode_rejects_non_event(codec):
    with pytest.raises(TypeError):
        codec.encode({"id": "1"})


# Decode failures

def test_decode_empty_bytes_is_malformed(codec):
    with pytest.raises(MalformedEnvelope, match="id, source, spec_version, type"):
        codec.decode(b"")


@pytest.mark.parametrize("missing", ["id", "source", "spec_version", "type"])
def test_decode_missing_required_field(codec, missing):
    parts = {"id": b"1", "source": b"/s", "spec_version": b"1.0", "type": b"t"}
    parts[missing] = b""
    with pytest.raises(MalformedEnvelope, match=missing):
        codec.decode(_required(**parts))


def test_decode_garbage_is_malformed(codec):
    with pytest.raises(MalformedEnvelope):
        codec.decode(b"\xff\xff\xff")


def test_decode_rejects_non_bytes(codec):
    with pytest.raises(TypeError):
        codec.decode("not bytes")


def test_unknown_data_variant(codec):
    """A data tag outside 6, 7, 8 must fail instead of decoding as "no payload"."""
    with pytest.raises(UnknownDataVariant, match="9"):
        codec.decode(_required() + _len_field(9, b"abc"))


def test_unknown_attribute_variant(codec):
    with pytest.raises(UnknownAttributeVariant, match="'ext'"):
        codec.decode(_required() + _attribute(b"ext", _varint_field(8, 1)))


def test_known_field_with_wrong_wire_type_is_malformed(codec):
    with pytest.raises(MalformedEnvelope):
        codec.decode(_required() + _varint_field(7, 1))


def test_attribute_entry_with_extra_field_is_malformed(codec):
    entry = _len_field(1, b"ext") + _len_field(2, _len_field(3, b"x")) + _len_field(3, b"junk")
    with pytest.raises(MalformedEnvelope, match="unrecognised fields") as exc_info:
        codec.decode(_required() + _len_field(5, entry))
    assert type(exc_info.value) is MalformedEnvelope


def test_attribute_without_value_is_malformed(codec):
    with pytest.raises(MalformedEnvelope, match="no value"):
        codec.decode(_required() + _attribute(b"ext", b""))


def test_decode_rejects_reserved_attribute_name(codec):
    with pytest.raises(MalformedEnvelope, match="reserved"):
        codec.decode(_required() + _attribute(b"type", _len_field(3, b"x")))


def test_decode_rejects_out_of_range_timestamp(codec):
    with pytest.raises(MalformedEnvelope):
        codec.decode(_required() + _attribute(b"time", _len_field(7, _varint_field(2, 1_000_000_000))))


# Batches

def test_batch_round_trip_preserves_order(codec, event):
    other = CloudEvent.create("124", "/sensors/2", "1.0", "humidity.updated", binary_data=b"\x10")
    batch = CloudEventBatch.of(event, other, event)
    decoded = codec.decode_batch(codec.encode_batch(batch))
    assert [e.id for e in decoded] == ["123", "124", "123"]
    assert decoded == batch


def test_empty_batch(codec):
    data = codec.encode_batch(CloudEventBatch())
    assert data == b""
    assert len(codec.decode_batch(data)) == 0


def test_batch_wire_layout(codec, event):
    assert codec.encode_batch(CloudEventBatch.of(event)) == _len_field(1, codec.encode(event))


def test_batch_failure_reports_index(codec):
    valid = _required()
    invalid = _required(id=b"")
    with pytest.raises(MalformedEnvelope) as exc_info:
        codec.decode_batch(_len_field(1, valid) + _len_field(1, valid) + _len_field(1, invalid))
    assert exc_info.value.index == 2
    assert isinstance(exc_info.value.__cause__, MalformedEnvelope)
    assert exc_info.value.__cause__.index is None


def test_batch_failure_keeps_error_type(codec):
    with pytest.raises(UnknownDataVariant) as exc_info:
        codec.decode_batch(_len_field(1, _required() + _len_field(12, b"x")))
    assert exc_info.value.index == 0


# Configuration

def test_max_message_size_on_decode(event):
    small = protobuf_codec_factory(max_message_size=10)
    data = protobuf_codec_factory().encode(event)
    with pytest.raises(MalformedEnvelope, match="max_message_size"):
        small.decode(data)
    with pytest.raises(MalformedEnvelope, match="max_message_size"):
        small.decode_batch(data)


def test_max_message_size_on_encode(event):
    with pytest.raises(ValidationError, match="max_message_size"):
        protobuf_codec_factory(max_message_size=10).encode(event)


@pytest.mark.parametrize("size", [0, -1, 1.5, True])
def test_invalid_max_message_size(size):
    with pytest.raises(ValueError):
        protobuf_codec_factory(max_message_size=size)
