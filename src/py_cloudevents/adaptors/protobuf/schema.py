"""
This module declares the CloudEvents Protobuf format (`io.cloudevents.v1`) and
builds message classes for it with the protobuf runtime.

The schema mirrors `proto/io/cloudevents/v1/cloudevents.proto` field for field.
It is registered in a private descriptor pool so that it cannot clash with
another copy of the same file loaded by an application.
"""
from google.protobuf import any_pb2, timestamp_pb2
from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PACKAGE = "io.cloudevents.v1"
FILE_NAME = "io/cloudevents/v1/cloudevents.proto"

_Field = descriptor_pb2.FieldDescriptorProto

# Field numbers are part of the wire contract and must never change.
EVENT_FIELD_NUMBERS = {
    "id": 1,
    "source": 2,
    "spec_version": 3,
    "type": 4,
    "attributes": 5,
    "binary_data": 6,
    "text_data": 7,
    "proto_data": 8,
}
ATTRIBUTE_VALUE_FIELD_NUMBERS = {
    "ce_boolean": 1,
    "ce_integer": 2,
    "ce_string": 3,
    "ce_bytes": 4,
    "ce_uri": 5,
    "ce_uri_ref": 6,
    "ce_timestamp": 7,
}
BATCH_FIELD_NUMBERS = {"events": 1}


def _add_field(message, name, number, field_type, *, type_name=None, repeated=False, oneof_index=None):
    field = message.field.add(
        name=name,
        number=number,
        type=field_type,
        label=_Field.LABEL_REPEATED if repeated else _Field.LABEL_OPTIONAL,
    )
    if type_name:
        field.type_name = type_name
    if oneof_index is not None:
        field.oneof_index = oneof_index
    return field


def build_file_descriptor() -> descriptor_pb2.FileDescriptorProto:
    """Returns the `FileDescriptorProto` of the CloudEvents Protobuf format."""
    file = descriptor_pb2.FileDescriptorProto(
        name=FILE_NAME,
        package=PACKAGE,
        syntax="proto3",
        dependency=["google/protobuf/any.proto", "google/protobuf/timestamp.proto"],
    )

    event = file.message_type.add(name="CloudEvent")
    for name in ("id", "source", "spec_version", "type"):
        _add_field(event, name, EVENT_FIELD_NUMBERS[name], _Field.TYPE_STRING)
    _add_field(
        event, "attributes", EVENT_FIELD_NUMBERS["attributes"], _Field.TYPE_MESSAGE,
        type_name=f".{PACKAGE}.CloudEvent.AttributesEntry", repeated=True,
    )
    event.oneof_decl.add(name="data")
    _add_field(event, "binary_data", EVENT_FIELD_NUMBERS["binary_data"], _Field.TYPE_BYTES, oneof_index=0)
    _add_field(event, "text_data", EVENT_FIELD_NUMBERS["text_data"], _Field.TYPE_STRING, oneof_index=0)
    _add_field(
        event, "proto_data", EVENT_FIELD_NUMBERS["proto_data"], _Field.TYPE_MESSAGE,
        type_name=".google.protobuf.Any", oneof_index=0,
    )

    # map<string, CloudEventAttributeValue> is sugar for a repeated entry message.
    entry = event.nested_type.add(name="AttributesEntry")
    entry.options.map_entry = True
    _add_field(entry, "key", 1, _Field.TYPE_STRING)
    _add_field(
        entry, "value", 2, _Field.TYPE_MESSAGE,
        type_name=f".{PACKAGE}.CloudEvent.CloudEventAttributeValue",
    )

    value = event.nested_type.add(name="CloudEventAttributeValue")
    value.oneof_decl.add(name="attr")
    scalar_types = {
        "ce_boolean": _Field.TYPE_BOOL,
        "ce_integer": _Field.TYPE_INT32,
        "ce_string": _Field.TYPE_STRING,
        "ce_bytes": _Field.TYPE_BYTES,
        "ce_uri": _Field.TYPE_STRING,
        "ce_uri_ref": _Field.TYPE_STRING,
    }
    for name, field_type in scalar_types.items():
        _add_field(value, name, ATTRIBUTE_VALUE_FIELD_NUMBERS[name], field_type, oneof_index=0)
    _add_field(
        value, "ce_timestamp", ATTRIBUTE_VALUE_FIELD_NUMBERS["ce_timestamp"], _Field.TYPE_MESSAGE,
        type_name=".google.protobuf.Timestamp", oneof_index=0,
    )

    batch = file.message_type.add(name="CloudEventBatch")
    _add_field(
        batch, "events", BATCH_FIELD_NUMBERS["events"], _Field.TYPE_MESSAGE,
        type_name=f".{PACKAGE}.CloudEvent", repeated=True,
    )
    return file


def _build_pool() -> descriptor_pool.DescriptorPool:
    pool = descriptor_pool.DescriptorPool()
    for dependency in (any_pb2, timestamp_pb2):
        proto = descriptor_pb2.FileDescriptorProto()
        dependency.DESCRIPTOR.CopyToProto(proto)
        pool.AddSerializedFile(proto.SerializeToString())
    pool.AddSerializedFile(build_file_descriptor().SerializeToString())
    return pool


POOL = _build_pool()

CloudEventMessage = message_factory.GetMessageClass(
    POOL.FindMessageTypeByName(f"{PACKAGE}.CloudEvent")
)
CloudEventBatchMessage = message_factory.GetMessageClass(
    POOL.FindMessageTypeByName(f"{PACKAGE}.CloudEventBatch")
)
