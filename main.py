import logging

from py_cloudevents import (
    AttributeValue,
    CloudEvent,
    CloudEventBatch,
    Timestamp,
    protobuf_codec_factory,
)


def build_reading(reading_id: int, celsius: int) -> CloudEvent:
    return CloudEvent.create(
        str(reading_id),
        "/sensors/1",
        "1.0",
        "temperature.updated",
        {
            "priority": AttributeValue.integer(3),
            "time": AttributeValue.timestamp(Timestamp.now()),
            "dataschema": AttributeValue.uri("https://example.com/schemas/temperature"),
        },
        text_data=f"{celsius}C",
    )


def main():
    logging.basicConfig(level=logging.DEBUG)
    codec = protobuf_codec_factory()

    event = build_reading(123, 42)
    wire = codec.encode(event)
    print(f"Encoded event {event.id} into {len(wire)} bytes: {wire.hex()}")

    decoded = codec.decode(wire)
    print(f"Decoded payload: {decoded.as_text()}, priority {decoded.get_attribute('priority').as_integer()}")
    print(f"Event time: {decoded.get_attribute('time').as_timestamp()}")

    batch = CloudEventBatch.of(*(build_reading(i, 20 + i) for i in range(5)))
    batch_wire = codec.encode_batch(batch)
    restored = codec.decode_batch(batch_wire)
    print(f"Batch of {len(restored)} events round-tripped in {len(batch_wire)} bytes")
    print("Payloads:", [e.as_text() for e in restored])


if __name__ == "__main__":
    main()
