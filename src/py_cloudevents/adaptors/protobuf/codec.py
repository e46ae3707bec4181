"""
This module provides the Protobuf implementation of the `EventCodec` protocol.

It converts between the Pydantic models and the `io.cloudevents.v1` messages
and owns all decode-time checks. Unknown fields are rejected rather than
preserved: an unrecognised tag means the producer uses a newer schema, and
silently dropping the field could turn a payload into "no payload".
"""
import logging
from typing import Optional, Type

from google.protobuf.descriptor import FieldDescriptor
from google.protobuf.message import DecodeError as ProtobufDecodeError
from google.protobuf.message import Message
from google.protobuf.unknown_fields import UnknownFieldSet

from ...errors import (
    DecodeError,
    MalformedEnvelope,
    UnknownAttributeVariant,
    UnknownDataVariant,
    ValidationError,
)
from ...models import (
    AttributeKind,
    AttributeValue,
    CloudEvent,
    CloudEventBatch,
    CloudEventData,
    DataKind,
    StructuredData,
    Timestamp,
)
from ...protocols import EventCodec
from .schema import CloudEventBatchMessage, CloudEventMessage

_ATTRIBUTE_FIELDS = {
    AttributeKind.BOOLEAN: "ce_boolean",
    AttributeKind.INTEGER: "ce_integer",
    AttributeKind.STRING: "ce_string",
    AttributeKind.BYTES: "ce_bytes",
    AttributeKind.URI: "ce_uri",
    AttributeKind.URI_REF: "ce_uri_ref",
    AttributeKind.TIMESTAMP: "ce_timestamp",
}
_ATTRIBUTE_KINDS = {field: kind for kind, field in _ATTRIBUTE_FIELDS.items()}

_VARINT = 0
_LENGTH_DELIMITED = 2

_DATA_FIELDS = {
    DataKind.BINARY: "binary_data",
    DataKind.TEXT: "text_data",
    DataKind.STRUCTURED: "proto_data",
}


def _wire_type(field: FieldDescriptor) -> int:
    if field.type in (FieldDescriptor.TYPE_BOOL, FieldDescriptor.TYPE_INT32):
        return _VARINT
    return _LENGTH_DELIMITED


def _reject_unknown_fields(message: Message, unknown_error: Type[DecodeError], context: str):
    """
    Raises if `message` carried fields the schema does not declare.

    A field number outside the schema raises `unknown_error`. A declared
    number with the wrong wire type is malformed input. A declared number
    with the right wire type only lands here when its content could not be
    parsed, which happens for a map entry carrying extra fields.
    """
    declared = message.DESCRIPTOR.fields_by_number
    for unknown in UnknownFieldSet(message):
        field = declared.get(unknown.field_number)
        if field is None:
            raise unknown_error(f"{context} carries unrecognised field {unknown.field_number}")
        if unknown.wire_type != _wire_type(field):
            raise MalformedEnvelope(
                f"{context} field {unknown.field_number} has unexpected wire type {unknown.wire_type}"
            )
        raise MalformedEnvelope(
            f"{context} field {unknown.field_number} ({field.name}) carries unrecognised fields"
        )


def _attribute_to_proto(value: AttributeValue, target: Message):
    field = _ATTRIBUTE_FIELDS[value.kind]
    if value.kind is AttributeKind.TIMESTAMP:
        timestamp = value.as_timestamp()
        target.ce_timestamp.SetInParent()
        target.ce_timestamp.seconds = timestamp.seconds
        target.ce_timestamp.nanos = timestamp.nanos
    else:
        setattr(target, field, value.value)


def _attribute_from_proto(name: str, message: Message) -> AttributeValue:
    _reject_unknown_fields(message, UnknownAttributeVariant, f"attribute '{name}'")
    field = message.WhichOneof("attr")
    if field is None:
        raise MalformedEnvelope(f"attribute '{name}' carries no value")
    kind = _ATTRIBUTE_KINDS[field]
    if kind is AttributeKind.TIMESTAMP:
        return AttributeValue(
            kind=kind,
            value=Timestamp(seconds=message.ce_timestamp.seconds, nanos=message.ce_timestamp.nanos),
        )
    return AttributeValue(kind=kind, value=getattr(message, field))


def _data_from_proto(message: Message) -> Optional[CloudEventData]:
    field = message.WhichOneof("data")
    if field is None:
        return None
    if field == "proto_data":
        return CloudEventData(
            kind=DataKind.STRUCTURED,
            value=StructuredData(type_url=message.proto_data.type_url, value=message.proto_data.value),
        )
    if field == "binary_data":
        return CloudEventData.binary(message.binary_data)
    return CloudEventData.text(message.text_data)


class ProtobufCodec(EventCodec):
    """
    Encodes and decodes events in the CloudEvents Protobuf format.

    Instances only hold configuration; use `protobuf_codec_factory` to build
    one with validated settings.
    """

    def __init__(self, max_message_size: int, deterministic: bool = True):
        self.max_message_size = max_message_size
        self.deterministic = deterministic

    def to_proto(self, event: CloudEvent, message: Optional[Message] = None) -> Message:
        """
        Fills `message` (a new `CloudEvent` message by default) from `event`.

        A supplied message is cleared first, so nothing it held before survives.
        """
        if not isinstance(event, CloudEvent):
            raise TypeError("Only CloudEvent objects can be encoded")
        if message is None:
            message = CloudEventMessage()
        else:
            message.Clear()
        message.id = event.id
        message.source = event.source
        message.spec_version = event.spec_version
        message.type = event.type
        for name, value in event.attributes.items():
            _attribute_to_proto(value, message.attributes[name])
        if event.data is not None:
            if event.data.kind is DataKind.STRUCTURED:
                structured = event.as_structured()
                message.proto_data.SetInParent()
                message.proto_data.type_url = structured.type_url
                message.proto_data.value = structured.value
            else:
                setattr(message, _DATA_FIELDS[event.data.kind], event.data.value)
        return message

    def from_proto(self, message: Message) -> CloudEvent:
        """Builds a validated `CloudEvent` from a decoded `CloudEvent` message."""
        _reject_unknown_fields(message, UnknownDataVariant, "CloudEvent")
        missing = [
            name for name in ("id", "source", "spec_version", "type") if not getattr(message, name)
        ]
        if missing:
            raise MalformedEnvelope(f"missing required attribute(s): {', '.join(missing)}")
        try:
            attributes = {
                name: _attribute_from_proto(name, value)
                for name, value in message.attributes.items()
            }
            return CloudEvent(
                id=message.id,
                source=message.source,
                spec_version=message.spec_version,
                type=message.type,
                attributes=attributes,
                data=_data_from_proto(message),
            )
        except ValidationError as e:
            raise MalformedEnvelope(str(e)) from e

    def _serialize(self, message: Message) -> bytes:
        data = message.SerializeToString(deterministic=self.deterministic)
        if len(data) > self.max_message_size:
            raise ValidationError(
                [f"encoded size {len(data)} exceeds max_message_size {self.max_message_size}"]
            )
        return data

    def _parse(self, message_class, data: bytes) -> Message:
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError("Only bytes-like objects can be decoded")
        if len(data) > self.max_message_size:
            raise MalformedEnvelope(
                f"payload of {len(data)} bytes exceeds max_message_size {self.max_message_size}"
            )
        message = message_class()
        try:
            message.ParseFromString(bytes(data))
        except ProtobufDecodeError as e:
            raise MalformedEnvelope(f"not a valid {message_class.DESCRIPTOR.name} message: {e}") from e
        return message

    def encode(self, event: CloudEvent) -> bytes:
        data = self._serialize(self.to_proto(event))
        logging.debug(f"Encoded CloudEvent {event.id} into {len(data)} bytes")
        return data

    def decode(self, data: bytes) -> CloudEvent:
        try:
            event = self.from_proto(self._parse(CloudEventMessage, data))
        except DecodeError as e:
            logging.warning(f"Rejected CloudEvent payload: {e}")
            raise
        logging.debug(f"Decoded CloudEvent {event.id} from {len(data)} bytes")
        return event

    def encode_batch(self, batch: CloudEventBatch) -> bytes:
        message = CloudEventBatchMessage()
        for event in batch:
            self.to_proto(event, message.events.add())
        data = self._serialize(message)
        logging.debug(f"Encoded batch of {len(batch)} CloudEvents into {len(data)} bytes")
        return data

    def decode_batch(self, data: bytes) -> CloudEventBatch:
        try:
            message = self._parse(CloudEventBatchMessage, data)
            _reject_unknown_fields(message, MalformedEnvelope, "CloudEventBatch")
        except DecodeError as e:
            logging.warning(f"Rejected CloudEventBatch payload: {e}")
            raise
        events = []
        for index, event_message in enumerate(message.events):
            try:
                events.append(self.from_proto(event_message))
            except DecodeError as e:
                logging.warning(f"Rejected CloudEventBatch payload at index {index}: {e}")
                raise e.at_index(index) from e
        logging.debug(f"Decoded batch of {len(events)} CloudEvents from {len(data)} bytes")
        return CloudEventBatch(entries=tuple(events))
