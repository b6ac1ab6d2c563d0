# mediaprobe/services/mappers/analysis.py
from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Mapping

from mediaprobe.domain.entities.analysis import FileAnalysisResult
from mediaprobe.services.schemas.analysis import FileAnalysisSchema


def to_analysis_schema(result: FileAnalysisResult) -> FileAnalysisSchema:
    """Domain dataclass -> pydantic schema (field names, not aliases)."""
    data = asdict(result)
    video = data.get("video")
    if video and video.get("hdr_format") is not None:
        video["hdr_format"] = str(video["hdr_format"])
    return FileAnalysisSchema.model_validate(data)


def to_analysis_payload(result: FileAnalysisResult, *, by_alias: bool = True) -> Dict[str, Any]:
    """JSON-ready dict for downstream consumers; unknown fields are dropped, never zeroed."""
    return to_analysis_schema(result).model_dump(by_alias=by_alias, exclude_none=True)


def to_analysis_payloads(results: Mapping[str, FileAnalysisResult]) -> Dict[str, Dict[str, Any]]:
    return {path: to_analysis_payload(r) for path, r in results.items()}
