from mediaprobe.services.schemas.analysis import (
    ArtworkSchema,
    AudioSchema,
    EmbeddedMetadataSchema,
    FileAnalysisSchema,
    SubtitleSchema,
    VideoSchema,
)

__all__ = [
    "ArtworkSchema",
    "AudioSchema",
    "EmbeddedMetadataSchema",
    "FileAnalysisSchema",
    "SubtitleSchema",
    "VideoSchema",
]
