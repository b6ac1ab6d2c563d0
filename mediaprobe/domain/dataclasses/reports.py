# mediaprobe/domain/dataclasses/reports.py
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from mediaprobe.domain.entities.analysis import FileAnalysisResult


@dataclass
class AnalysisReport:
    """Summary of one analyze_files()/analyze_batch() run.
    error_details holds (file path, message) tuples.
    """
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    planned: int = 0
    probed_ok: int = 0
    errors: int = 0
    error_details: List[Tuple[str, str]] = field(default_factory=list)

    def start(self) -> None:
        if self.started_at is None:
            self.started_at = datetime.now()

    def stop(self) -> None:
        self.finished_at = datetime.now()

    def add_error(self, subject: str, message: str) -> None:
        self.errors += 1
        self.error_details.append((subject, message))

    def add_results(self, results: Iterable[FileAnalysisResult]) -> "AnalysisReport":
        for r in results:
            self.planned += 1
            if r.success:
                self.probed_ok += 1
            else:
                self.add_error(r.file_path, r.error or "unknown error")
        return self

    def merge(self, other: "AnalysisReport") -> "AnalysisReport":
        self.planned += other.planned
        self.probed_ok += other.probed_ok
        self.errors += other.errors
        self.error_details.extend(other.error_details)
        if self.started_at is None or (other.started_at and other.started_at < self.started_at):
            self.started_at = other.started_at
        if other.finished_at and (self.finished_at is None or other.finished_at > self.finished_at):
            self.finished_at = other.finished_at
        return self

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)
