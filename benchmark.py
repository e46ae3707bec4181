import argparse
import time

from py_cloudevents import (
    AttributeValue,
    CloudEvent,
    CloudEventBatch,
    Timestamp,
    protobuf_codec_factory,
)


def benchmark(num_events: int):
    print(f"Benchmarking with {num_events} events...")
    codec = protobuf_codec_factory()

    events = [
        CloudEvent.create(
            str(i),
            "/bench",
            "1.0",
            "Bench",
            {
                "sequence": AttributeValue.integer(i),
                "time": AttributeValue.timestamp(Timestamp.now()),
            },
            binary_data=f"data{i}".encode(),
        )
        for i in range(num_events)
    ]

    # --- Single event encode/decode ---
    start_encode = time.perf_counter()
    encoded = [codec.encode(event) for event in events]
    encode_time = time.perf_counter() - start_encode

    start_decode = time.perf_counter()
    decoded = [codec.decode(data) for data in encoded]
    decode_time = time.perf_counter() - start_decode
    assert decoded == events

    # --- Batch encode/decode ---
    batch = CloudEventBatch(entries=events)
    start_batch = time.perf_counter()
    batch_data = codec.encode_batch(batch)
    restored = codec.decode_batch(batch_data)
    batch_time = time.perf_counter() - start_batch
    assert len(restored) == num_events

    encode_throughput = num_events / encode_time if encode_time > 0 else 0
    decode_throughput = num_events / decode_time if decode_time > 0 else 0
    batch_throughput = num_events / batch_time if batch_time > 0 else 0

    print(f"\n--- Results for {num_events} events ---")
    print(f"Encode: {encode_time:.4f}s ({encode_throughput:,.0f} events/s)")
    print(f"Decode: {decode_time:.4f}s ({decode_throughput:,.0f} events/s)")
    print(f"Batch round trip: {batch_time:.4f}s ({batch_throughput:,.0f} events/s, {len(batch_data):,} bytes)")


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--num-events", type=int, default=1000)
    args = parser.parse_args()
    benchmark(args.num_events)


if __name__ == "__main__":
    main()
