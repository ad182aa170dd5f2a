# alignment/store/countdowns.py

import json
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional

from alignment.core.config import countdown_store_path
from alignment.core.errors import PersistenceFailure


def countdown_key(min_seconds: int, max_seconds: int) -> str:
    return f"countdown_end_{min_seconds}_{max_seconds}"


class CountdownStore:
    """
    Durable key -> end timestamp (epoch seconds) map in a small JSON file.

    Writes go through temp file + rename so a process killed mid-write
    leaves the previous content intact.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else countdown_store_path()

    def _read_all(self) -> Dict[str, float]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except (FileNotFoundError, UnicodeDecodeError):
            return {}
        try:
            data = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError:
            # corrupt file behaves like an empty store; next write repairs it
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> Optional[float]:
        value = self._read_all().get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            # anything but a number means no usable end time
            return None
        return float(value)

    def set(self, key: str, ends_at: float) -> None:
        data = self._read_all()
        data[key] = ends_at
        self._write_all(data)

    def _write_all(self, data: Dict[str, float]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        except OSError as e:
            raise PersistenceFailure(f"Could not write {self.path}: {e}") from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp, self.path)
        except OSError as e:
            try:
                os.unlink(tmp)
            except FileNotFoundError:
                pass
            raise PersistenceFailure(f"Could not write {self.path}: {e}") from e
