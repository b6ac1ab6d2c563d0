# mediaprobe/domain/entities/task.py
from __future__ import annotations

import itertools
from dataclasses import dataclass, field

# Process-wide, never reset: ids stay unique across pool restarts.
_task_ids = itertools.count(1)


def next_task_id() -> str:
    return f"task-{next(_task_ids)}"


@dataclass(frozen=True)
class AnalysisTask:
    """One request to analyze one file. Consumed exactly once by one worker."""
    file_path: str
    task_id: str = field(default_factory=next_task_id)
