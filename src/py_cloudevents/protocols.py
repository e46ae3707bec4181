"""
This module defines the abstract protocol for wire codecs.

Callers depend on `EventCodec` rather than a concrete class, so a different
event format (e.g. the JSON format) can be added later without changing code
that only needs to turn events into bytes and back.
"""
from typing import Protocol

from .models import CloudEvent, CloudEventBatch


class EventCodec(Protocol):
    """
    Defines the contract that all event format codecs must implement.
    Implementations are stateless per call and safe to share between threads.
    """

    def encode(self, event: CloudEvent) -> bytes:
        ...

    def decode(self, data: bytes) -> CloudEvent:
        ...

    def encode_batch(self, batch: CloudEventBatch) -> bytes:
        ...

    def decode_batch(self, data: bytes) -> CloudEventBatch:
        ...
