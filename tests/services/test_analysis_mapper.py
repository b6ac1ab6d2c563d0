from mediaprobe.domain.entities.analysis import (
    AudioAttributes,
    EmbeddedArtwork,
    FileAnalysisResult,
    VideoAttributes,
)
from mediaprobe.domain.enums import HdrFormat
from mediaprobe.services.mappers.analysis import (
    to_analysis_payload,
    to_analysis_payloads,
    to_analysis_schema,
)


def _result() -> FileAnalysisResult:
    return FileAnalysisResult(
        success=True,
        file_path="/media/movies/film.mkv",
        container="matroska,webm",
        duration=7_200_000,
        file_size=15_000_000_000,
        overall_bitrate=16000,
        video=VideoAttributes(
            index=0, codec="hevc", width=3840, height=2160,
            frame_rate=23.98, bit_depth=10, hdr_format=HdrFormat.HDR10,
        ),
        audio_tracks=(
            AudioAttributes(index=1, codec="truehd", channels=8, bitrate=4000,
                            has_object_audio=True, is_default=True),
        ),
        embedded_artwork=EmbeddedArtwork(mime_type="image/jpeg", stream_index=3),
    )


def test_payload_uses_camel_case_aliases():
    p = to_analysis_payload(_result())
    assert p["filePath"] == "/media/movies/film.mkv"
    assert p["overallBitrate"] == 16000
    assert p["video"]["frameRate"] == 23.98
    assert p["video"]["hdrFormat"] == "HDR10"
    assert p["audioTracks"][0]["hasObjectAudio"] is True
    assert p["embeddedArtwork"] == {"hasArtwork": True, "mimeType": "image/jpeg", "streamIndex": 3}


def test_unknown_fields_are_omitted_not_zeroed():
    p = to_analysis_payload(_result())
    assert "profile" not in p["video"]
    assert "colorSpace" not in p["video"]
    assert "sampleRate" not in p["audioTracks"][0]
    assert "embeddedMetadata" not in p
    assert p["subtitleTracks"] == []


def test_failure_payload():
    p = to_analysis_payload(FileAnalysisResult.failure("/m/x.mkv", "FFprobe timed out after 60s"))
    assert p == {
        "success": False,
        "error": "FFprobe timed out after 60s",
        "filePath": "/m/x.mkv",
        "audioTracks": [],
        "subtitleTracks": [],
    }


def test_schema_field_names_and_bulk():
    schema = to_analysis_schema(_result())
    assert schema.video.hdr_format == "HDR10"
    assert schema.audio_tracks[0].channels == 8

    snake = to_analysis_payload(_result(), by_alias=False)
    assert "file_path" in snake

    bulk = to_analysis_payloads({"/media/movies/film.mkv": _result()})
    assert list(bulk) == ["/media/movies/film.mkv"]
