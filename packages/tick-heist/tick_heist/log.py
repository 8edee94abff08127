"""Player-facing message log with a bounded history."""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Any

LOG_KINDS = ("info", "success", "warn")


@dataclass
class LogEntry:
    id: str
    time: int
    text: str
    kind: str = "info"


class GameLog:
    def __init__(self, max_entries: int = 200) -> None:
        maxlen = max_entries if max_entries > 0 else None
        self._entries: deque[LogEntry] = deque(maxlen=maxlen)
        self._seq = 0

    def add(self, time: int, text: str, kind: str = "info") -> LogEntry | None:
        if not text:
            return None
        if kind not in LOG_KINDS:
            kind = "info"
        self._seq += 1
        entry = LogEntry(id=f"log_{self._seq}", time=time, text=text, kind=kind)
        self._entries.append(entry)
        return entry

    def query(self, kind: str | None = None, after: int | None = None) -> list[LogEntry]:
        result: list[LogEntry] = list(self._entries)
        if kind is not None:
            result = [e for e in result if e.kind == kind]
        if after is not None:
            result = [e for e in result if e.time > after]
        return result

    def last(self, kind: str | None = None) -> LogEntry | None:
        for e in reversed(self._entries):
            if kind is None or e.kind == kind:
                return e
        return None

    def texts(self) -> list[str]:
        return [e.text for e in self._entries]

    def snapshot(self) -> dict[str, Any]:
        return {
            "seq": self._seq,
            "entries": [
                {"id": e.id, "time": e.time, "text": e.text, "kind": e.kind}
                for e in self._entries
            ],
        }

    def restore(self, data: dict[str, Any]) -> None:
        self._entries.clear()
        for d in data.get("entries", []):
            self._entries.append(
                LogEntry(id=d["id"], time=d["time"], text=d["text"], kind=d.get("kind", "info"))
            )
        self._seq = data.get("seq", len(self._entries))

    def __len__(self) -> int:
        return len(self._entries)
