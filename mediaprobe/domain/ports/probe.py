from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, Protocol


class MediaProbePort(Protocol):
    def probe(self, path: str | Path) -> Dict[str, Any]: ...
    def cancel(self) -> None: ...
