from pathlib import Path
import datetime
import json
import threading
from typing import Iterable


class QueryLog:
    """
    Append-only JSON-lines journal of catalog activity.

    Each line is one event: a document load ("load") or a lookup ("search").
    Writes are serialized so concurrent readers of a shared catalog can log.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def write(self, obj: dict):
        rec = {"ts": datetime.datetime.now().isoformat(timespec="seconds"), **obj}
        line = json.dumps(rec, ensure_ascii=False) + "\n"
        with self._lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line)

    def record_load(self, source: str, topics: int, concepts: int):
        self.write({"event": "load", "source": source, "topics": topics, "concepts": concepts})

    def record_search(self, keyword: str, mode: str, hits: Iterable[str], ms: int):
        self.write({"event": "search", "keyword": keyword, "mode": mode, "hits": list(hits), "ms": ms})

    def read(self) -> list:
        if not self.path.is_file():
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            return [json.loads(ln) for ln in f if ln.strip()]
