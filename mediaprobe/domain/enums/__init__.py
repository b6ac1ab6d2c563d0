from mediaprobe.domain.enums.hdr_format import HdrFormat
from mediaprobe.domain.enums.stream_type import StreamType
__all__ = [
    "HdrFormat",
    "StreamType",
]
