from .codec import ProtobufCodec

DEFAULT_MAX_MESSAGE_SIZE = 64 * 1024 * 1024  # 64 MiB


def protobuf_codec_factory(
    *,
    max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE,
    deterministic: bool = True,
) -> ProtobufCodec:
    """
    Creates a codec for the CloudEvents Protobuf format.

    `max_message_size` bounds both the bytes accepted by decode and the bytes
    produced by encode. With `deterministic` set, map entries are written in
    key order so equal events always encode to equal bytes.
    """
    if isinstance(max_message_size, bool) or not isinstance(max_message_size, int):
        raise ValueError("`max_message_size` must be an integer.")
    if max_message_size <= 0:
        raise ValueError("`max_message_size` must be a positive number of bytes.")
    return ProtobufCodec(max_message_size=max_message_size, deterministic=bool(deterministic))
