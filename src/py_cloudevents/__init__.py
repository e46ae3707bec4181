"""
This module exports the CloudEvents models, errors and the Protobuf codec.

`encode`, `decode`, `encode_batch` and `decode_batch` use a codec built with
the default settings of `protobuf_codec_factory`.
"""
from .models import (
    AttributeKind,
    AttributeValue,
    CloudEvent,
    CloudEventBatch,
    CloudEventData,
    DataKind,
    RESERVED_ATTRIBUTE_NAMES,
    StructuredData,
    Timestamp,
)
from .errors import (
    CloudEventError,
    DecodeError,
    MalformedEnvelope,
    NotFound,
    ReservedAttributeName,
    TypeMismatch,
    UnknownAttributeVariant,
    UnknownDataVariant,
    ValidationError,
    WrongDataKind,
)
from .protocols import EventCodec
from .adaptors.protobuf import ProtobufCodec, protobuf_codec_factory

_default_codec = protobuf_codec_factory()

encode = _default_codec.encode
decode = _default_codec.decode
encode_batch = _default_codec.encode_batch
decode_batch = _default_codec.decode_batch

__all__ = [
    "AttributeKind",
    "AttributeValue",
    "CloudEvent",
    "CloudEventBatch",
    "CloudEventData",
    "DataKind",
    "RESERVED_ATTRIBUTE_NAMES",
    "StructuredData",
    "Timestamp",
    "CloudEventError",
    "DecodeError",
    "MalformedEnvelope",
    "NotFound",
    "ReservedAttributeName",
    "TypeMismatch",
    "UnknownAttributeVariant",
    "UnknownDataVariant",
    "ValidationError",
    "WrongDataKind",
    "EventCodec",
    "ProtobufCodec",
    "protobuf_codec_factory",
    "encode",
    "decode",
    "encode_batch",
    "decode_batch",
]
