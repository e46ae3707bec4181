from .codec import ProtobufCodec
from .factory import DEFAULT_MAX_MESSAGE_SIZE, protobuf_codec_factory

__all__ = ["ProtobufCodec", "protobuf_codec_factory", "DEFAULT_MAX_MESSAGE_SIZE"]
