"""
This module defines the CloudEvents data model using Pydantic.

All models are frozen value objects: once constructed they are validated and
never change. Methods that "update" an event return a new instance.
Required context attributes are dedicated fields on `CloudEvent`; optional and
extension attributes live in a name-keyed mapping of `AttributeValue`.
"""
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, List, Mapping, Optional, Tuple, Union

from google.protobuf import timestamp_pb2
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)

from .errors import (
    NotFound,
    ReservedAttributeName,
    TypeMismatch,
    ValidationError,
    WrongDataKind,
)

# Names of the required context attributes. They can never be carried in the
# attribute map.
RESERVED_ATTRIBUTE_NAMES = frozenset({"id", "source", "specversion", "type"})
REQUIRED_FIELDS = ("id", "source", "spec_version", "type")

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1

# Range of google.protobuf.Timestamp: 0001-01-01T00:00:00Z to 9999-12-31T23:59:59Z
MIN_TIMESTAMP_SECONDS = -62135596800
MAX_TIMESTAMP_SECONDS = 253402300799
NANOS_PER_SECOND = 1_000_000_000


class Timestamp(BaseModel):
    """
    A UTC instant with nanosecond precision.

    `datetime` stops at microseconds, so the seconds/nanos pair is the
    canonical value and conversions to `datetime` are lossy by design of the
    standard library. Text and `datetime` conversions go through
    `google.protobuf.Timestamp`, the same representation used on the wire.
    """
    model_config = ConfigDict(frozen=True, strict=True, extra="forbid")

    seconds: int
    nanos: int = 0

    @model_validator(mode="after")
    def _check_range(self) -> "Timestamp":
        violations = []
        if not MIN_TIMESTAMP_SECONDS <= self.seconds <= MAX_TIMESTAMP_SECONDS:
            violations.append(f"timestamp seconds {self.seconds} outside 0001-01-01..9999-12-31")
        if not 0 <= self.nanos < NANOS_PER_SECOND:
            violations.append(f"timestamp nanos {self.nanos} outside 0..999999999")
        if violations:
            raise ValidationError(violations)
        return self

    @classmethod
    def from_proto(cls, message: timestamp_pb2.Timestamp) -> "Timestamp":
        return cls(seconds=message.seconds, nanos=message.nanos)

    def to_proto(self) -> timestamp_pb2.Timestamp:
        return timestamp_pb2.Timestamp(seconds=self.seconds, nanos=self.nanos)

    @classmethod
    def now(cls) -> "Timestamp":
        message = timestamp_pb2.Timestamp()
        message.GetCurrentTime()
        return cls.from_proto(message)

    @classmethod
    def from_datetime(cls, value: datetime) -> "Timestamp":
        if value.tzinfo is None or value.utcoffset() is None:
            raise ValidationError(["timestamp datetime must be timezone-aware"])
        message = timestamp_pb2.Timestamp()
        try:
            message.FromDatetime(value)
        except (ValueError, OverflowError) as e:
            raise ValidationError([f"'{value}' cannot be represented as a timestamp: {e}"]) from e
        return cls.from_proto(message)

    @classmethod
    def from_rfc3339(cls, text: str) -> "Timestamp":
        """Parses an RFC 3339 date-time, keeping up to nine fractional digits."""
        message = timestamp_pb2.Timestamp()
        try:
            message.FromJsonString(text)
        except ValueError as e:
            raise ValidationError([f"'{text}' is not an RFC 3339 timestamp: {e}"]) from e
        return cls.from_proto(message)

    def to_datetime(self) -> datetime:
        """Returns an aware UTC datetime; sub-microsecond digits are truncated."""
        return self.to_proto().ToDatetime(tzinfo=timezone.utc)

    def to_rfc3339(self) -> str:
        return self.to_proto().ToJsonString()

    def __str__(self) -> str:
        return self.to_rfc3339()


class AttributeKind(str, Enum):
    BOOLEAN = "boolean"
    INTEGER = "integer"
    STRING = "string"
    BYTES = "bytes"
    URI = "uri"
    URI_REF = "uri_ref"
    TIMESTAMP = "timestamp"


_ATTRIBUTE_TYPES = {
    AttributeKind.BOOLEAN: bool,
    AttributeKind.INTEGER: int,
    AttributeKind.STRING: str,
    AttributeKind.BYTES: bytes,
    AttributeKind.URI: str,
    AttributeKind.URI_REF: str,
    AttributeKind.TIMESTAMP: Timestamp,
}


class AttributeValue(BaseModel):
    """
    The value of one optional or extension context attribute.

    Exactly one of the seven CloudEvents attribute types is held, identified
    by `kind`. Use the named constructors (`AttributeValue.integer(3)`) and
    the typed accessors (`as_integer()`); accessors never coerce.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: AttributeKind
    value: Any

    @model_validator(mode="after")
    def _check_value(self) -> "AttributeValue":
        expected = _ATTRIBUTE_TYPES[self.kind]
        value = self.value
        if not isinstance(value, expected) or (
            self.kind is AttributeKind.INTEGER and isinstance(value, bool)
        ):
            raise ValidationError(
                [f"{self.kind.value} attribute requires {expected.__name__}, got {type(value).__name__}"]
            )
        if self.kind is AttributeKind.INTEGER and not INT32_MIN <= value <= INT32_MAX:
            raise ValidationError([f"integer attribute {value} does not fit in 32 bits"])
        return self

    @classmethod
    def boolean(cls, value: bool) -> "AttributeValue":
        return cls(kind=AttributeKind.BOOLEAN, value=value)

    @classmethod
    def integer(cls, value: int) -> "AttributeValue":
        return cls(kind=AttributeKind.INTEGER, value=value)

    @classmethod
    def string(cls, value: str) -> "AttributeValue":
        return cls(kind=AttributeKind.STRING, value=value)

    @classmethod
    def bytes_(cls, value: bytes) -> "AttributeValue":
        return cls(kind=AttributeKind.BYTES, value=value)

    @classmethod
    def uri(cls, value: str) -> "AttributeValue":
        return cls(kind=AttributeKind.URI, value=value)

    @classmethod
    def uri_ref(cls, value: str) -> "AttributeValue":
        return cls(kind=AttributeKind.URI_REF, value=value)

    @classmethod
    def timestamp(cls, value: Union[Timestamp, datetime]) -> "AttributeValue":
        if isinstance(value, datetime):
            value = Timestamp.from_datetime(value)
        return cls(kind=AttributeKind.TIMESTAMP, value=value)

    def is_kind(self, kind: AttributeKind) -> bool:
        return self.kind is kind

    def _get(self, kind: AttributeKind):
        if self.kind is not kind:
            raise TypeMismatch(kind, self.kind)
        return self.value

    def as_boolean(self) -> bool:
        return self._get(AttributeKind.BOOLEAN)

    def as_integer(self) -> int:
        return self._get(AttributeKind.INTEGER)

    def as_string(self) -> str:
        return self._get(AttributeKind.STRING)

    def as_bytes(self) -> bytes:
        return self._get(AttributeKind.BYTES)

    def as_uri(self) -> str:
        return self._get(AttributeKind.URI)

    def as_uri_ref(self) -> str:
        return self._get(AttributeKind.URI_REF)

    def as_timestamp(self) -> Timestamp:
        return self._get(AttributeKind.TIMESTAMP)


class DataKind(str, Enum):
    BINARY = "binary"
    TEXT = "text"
    STRUCTURED = "structured"


class StructuredData(BaseModel):
    """A typed message payload, carried on the wire as `google.protobuf.Any`."""
    model_config = ConfigDict(frozen=True, strict=True, extra="forbid")

    type_url: str
    value: bytes = b""


_DATA_TYPES = {
    DataKind.BINARY: bytes,
    DataKind.TEXT: str,
    DataKind.STRUCTURED: StructuredData,
}


class CloudEventData(BaseModel):
    """The event payload: exactly one of binary, text or structured data."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: DataKind
    value: Any

    @model_validator(mode="after")
    def _check_value(self) -> "CloudEventData":
        expected = _DATA_TYPES[self.kind]
        if not isinstance(self.value, expected):
            raise ValidationError(
                [f"{self.kind.value} data requires {expected.__name__}, got {type(self.value).__name__}"]
            )
        return self

    @classmethod
    def binary(cls, value: bytes) -> "CloudEventData":
        return cls(kind=DataKind.BINARY, value=value)

    @classmethod
    def text(cls, value: str) -> "CloudEventData":
        return cls(kind=DataKind.TEXT, value=value)

    @classmethod
    def structured(cls, type_url: str, value: bytes = b"") -> "CloudEventData":
        return cls(kind=DataKind.STRUCTURED, value=StructuredData(type_url=type_url, value=value))


def _violations(fields: Mapping[str, Any], attributes: Mapping[str, Any]) -> List[str]:
    violations = [
        f"required attribute '{name}' must be a non-empty string"
        for name in REQUIRED_FIELDS
        if not fields.get(name)
    ]
    for name in attributes:
        if not name:
            violations.append("attribute names must be non-empty")
        elif name in RESERVED_ATTRIBUTE_NAMES:
            violations.append(f"attribute name '{name}' is reserved for a required attribute")
    return violations


class CloudEvent(BaseModel):
    """
    A CloudEvents envelope.

    The four required context attributes are plain fields. Optional and
    extension attributes are held in `attributes` and read through
    `get_attribute`. The payload is a single `CloudEventData` or `None`.
    """
    model_config = ConfigDict(frozen=True, strict=True, extra="forbid")

    id: str
    source: str  # URI-reference
    spec_version: str
    type: str
    attributes: Mapping[str, AttributeValue] = Field(
        default_factory=dict, strict=False, validate_default=True
    )
    data: Optional[CloudEventData] = None

    @field_validator("attributes", mode="after")
    @classmethod
    def _freeze_attributes(cls, value: Mapping[str, AttributeValue]) -> Mapping[str, AttributeValue]:
        return MappingProxyType(dict(value))

    @field_serializer("attributes")
    def _dump_attributes(self, value: Mapping[str, AttributeValue]):
        return dict(value)

    @model_validator(mode="after")
    def _check_envelope(self) -> "CloudEvent":
        violations = _violations(self.__dict__, self.attributes)
        if violations:
            raise ValidationError(violations)
        return self

    @classmethod
    def create(
        cls,
        id: str,
        source: str,
        spec_version: str,
        type: str,
        attributes: Optional[Mapping[str, AttributeValue]] = None,
        *,
        binary_data: Optional[bytes] = None,
        text_data: Optional[str] = None,
        proto_data: Optional[StructuredData] = None,
    ) -> "CloudEvent":
        """
        Builds an event from loose payload arguments.

        At most one of `binary_data`, `text_data` and `proto_data` may be given.
        All violated rules are reported together in one `ValidationError`.
        """
        attributes = dict(attributes or {})
        payloads = [
            (kind, value)
            for kind, value in (
                (DataKind.BINARY, binary_data),
                (DataKind.TEXT, text_data),
                (DataKind.STRUCTURED, proto_data),
            )
            if value is not None
        ]
        if len(payloads) > 1:
            fields = {"id": id, "source": source, "spec_version": spec_version, "type": type}
            kinds = ", ".join(kind.value for kind, _ in payloads)
            raise ValidationError(
                _violations(fields, attributes)
                + [f"at most one data member may be set, got {kinds}"]
            )
        data = CloudEventData(kind=payloads[0][0], value=payloads[0][1]) if payloads else None
        return cls(
            id=id,
            source=source,
            spec_version=spec_version,
            type=type,
            attributes=attributes,
            data=data,
        )

    def _replace(self, **changes) -> "CloudEvent":
        fields = {
            "id": self.id,
            "source": self.source,
            "spec_version": self.spec_version,
            "type": self.type,
            "attributes": dict(self.attributes),
            "data": self.data,
        }
        fields.update(changes)
        return CloudEvent(**fields)

    def __hash__(self) -> int:
        return hash(
            (self.id, self.source, self.spec_version, self.type,
             frozenset(self.attributes.items()), self.data)
        )

    def get_attribute(self, name: str) -> AttributeValue:
        try:
            return self.attributes[name]
        except KeyError:
            raise NotFound(name) from None

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    def with_attribute(self, name: str, value: AttributeValue) -> "CloudEvent":
        if name in RESERVED_ATTRIBUTE_NAMES:
            raise ReservedAttributeName(name)
        attributes = dict(self.attributes)
        attributes[name] = value
        return self._replace(attributes=attributes)

    def without_attribute(self, name: str) -> "CloudEvent":
        attributes = {k: v for k, v in self.attributes.items() if k != name}
        return self._replace(attributes=attributes)

    def with_data(self, data: Optional[CloudEventData]) -> "CloudEvent":
        return self._replace(data=data)

    @property
    def data_kind(self) -> Optional[DataKind]:
        return self.data.kind if self.data is not None else None

    def has_data(self) -> bool:
        return self.data is not None

    def _payload(self, kind: DataKind):
        if self.data is None or self.data.kind is not kind:
            raise WrongDataKind(kind, self.data_kind)
        return self.data.value

    def as_binary(self) -> bytes:
        return self._payload(DataKind.BINARY)

    def as_text(self) -> str:
        return self._payload(DataKind.TEXT)

    def as_structured(self) -> StructuredData:
        return self._payload(DataKind.STRUCTURED)


class CloudEventBatch(BaseModel):
    """
    An ordered sequence of independent events.

    Contained events were validated when they were built and are not checked
    again here.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    entries: Tuple[CloudEvent, ...] = Field(
        default=(), validation_alias=AliasChoices("events", "entries")
    )

    @classmethod
    def of(cls, *events: CloudEvent) -> "CloudEventBatch":
        return cls(entries=events)

    def events(self) -> Tuple[CloudEvent, ...]:
        return self.entries

    def __iter__(self) -> Iterator[CloudEvent]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, index: int) -> CloudEvent:
        return self.entries[index]
