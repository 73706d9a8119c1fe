from __future__ import annotations

import logging
import os
import threading
import time
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

import yaml

from .catalog.index import CatalogIndex
from .catalog.schema import ConceptRef, Entry
from .errors import EmptyDocumentError, TopicNotFoundError
from .ingest.markdown import parse_text
from .utils.log import QueryLog

logger = logging.getLogger(__name__)

DEFAULT_DOCUMENT = Path(__file__).resolve().parent / "data" / "sql_cheatsheet.md"
DOC_ENV = "SQL_CHEATSHEET_DOC"

DEFAULT_CONFIG: Dict[str, Any] = {
    "app": {"document": str(DEFAULT_DOCUMENT), "query_log": None},
    "search": {"max_results": 0, "top_k": 10},
    "output": {"save_dir": "outputs"},
}


def _merge(base: dict, over: dict) -> dict:
    out = deepcopy(base)
    for k, v in (over or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = v
    return out


def load_config(path: str | Path | None = None) -> dict:
    """
    Read a YAML config and merge it over the defaults.

    A missing file is not an error; relative document/log paths are resolved
    against the directory holding the config file.
    """
    cfg = deepcopy(DEFAULT_CONFIG)
    if path is not None and Path(path).is_file():
        p = Path(path).resolve()
        with open(p, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        cfg = _merge(cfg, data)
        for key in ("document", "query_log"):
            val = cfg["app"].get(key)
            if val and not Path(val).is_absolute():
                cfg["app"][key] = str(p.parent / val)
        logger.debug("Loaded config from %s", p)
    elif path is not None:
        logger.debug("Config %s not found; using defaults", path)

    env_doc = os.getenv(DOC_ENV)
    if env_doc:
        cfg["app"]["document"] = env_doc
    return cfg


class CheatSheet:
    """Read-only query surface over a parsed cheat-sheet document."""

    def __init__(
        self,
        entries: List[Entry],
        source: str = "<text>",
        max_results: int = 0,
        query_log: Optional[QueryLog] = None,
    ):
        self.source = source
        self.max_results = int(max_results or 0)
        self._index = CatalogIndex(entries)
        self._log = query_log

    @classmethod
    def from_text(cls, text: str, source: str = "<text>", **kwargs) -> "CheatSheet":
        return cls(parse_text(text or ""), source=source, **kwargs)

    # ---- topic listing / lookup ----
    @property
    def topics(self) -> tuple[Entry, ...]:
        return self._index.entries

    @property
    def is_empty(self) -> bool:
        return len(self._index) == 0

    @property
    def concept_count(self) -> int:
        return self._index.concept_count

    def __len__(self) -> int:
        return len(self._index)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self._index.entries)

    def list_topics(self) -> List[str]:
        return self._index.titles()

    def get_topic(self, title: str) -> Optional[Entry]:
        return self._index.by_title(title)

    def get_topic_by_id(self, topic_id: int) -> Optional[Entry]:
        return self._index.by_id(topic_id)

    def require_topic(self, title: str) -> Entry:
        entry = self.get_topic(title)
        if entry is None:
            raise TopicNotFoundError(title)
        return entry

    # ---- search ----
    def search(self, keyword: str) -> List[ConceptRef]:
        t0 = time.perf_counter()
        hits = self._index.keyword(keyword)
        if self.max_results > 0:
            hits = hits[: self.max_results]
        self._audit(keyword, "keyword", hits, t0)
        return hits

    def rank(self, query: str, top_k: int = 10) -> List[ConceptRef]:
        t0 = time.perf_counter()
        hits = self._index.rank(query, top_k=top_k)
        self._audit(query, "ranked", hits, t0)
        return hits

    def _audit(self, keyword: str, mode: str, hits: List[ConceptRef], t0: float):
        ms = int((time.perf_counter() - t0) * 1000)
        labels = [f"{h.topic_title} > {h.name}" for h in hits]
        logger.debug(
            "search mode=%s keyword=%r hits=%d (%d ms)", mode, keyword, len(hits), ms,
            extra={"event": "search", "keyword": keyword, "mode": mode, "hits": len(hits), "ms": ms},
        )
        if self._log is not None:
            self._log.record_search(keyword, mode, labels, ms)


def load_catalog(
    source: Union[str, Path],
    allow_empty: bool = False,
    max_results: int = 0,
    query_log: Optional[QueryLog] = None,
) -> CheatSheet:
    """
    Build a catalog from a document path or from raw document text.

    A pathlib.Path is always read as a file. A single-line str naming an
    existing file is read as that file; any other str is the document text.

    Raises EmptyDocumentError when the document is missing, empty, or has no
    topic sections, unless allow_empty is set (then an empty catalog is
    returned and a warning logged).
    """
    label = "<text>"
    if isinstance(source, str) and _names_file(source):
        source = Path(source)
    if isinstance(source, Path):
        p = source
        label = str(p)
        if p.is_file():
            text = p.read_text(encoding="utf-8", errors="ignore")
        else:
            return _empty(label, "document not found", allow_empty, max_results, query_log)
    else:
        text = source or ""

    t0 = time.perf_counter()
    entries = parse_text(text)
    if not entries:
        reason = "document is empty" if not text.strip() else "no topic sections found"
        return _empty(label, reason, allow_empty, max_results, query_log)

    sheet = CheatSheet(entries, source=label, max_results=max_results, query_log=query_log)
    ms = int((time.perf_counter() - t0) * 1000)
    logger.info(
        "Loaded %d topic(s), %d concept(s) from %s in %d ms",
        len(sheet), sheet.concept_count, label, ms,
        extra={"event": "load", "source": label, "topics": len(sheet), "concepts": sheet.concept_count, "ms": ms},
    )
    if query_log is not None:
        query_log.record_load(label, len(sheet), sheet.concept_count)
    return sheet


def _names_file(s: str) -> bool:
    if not s or "\n" in s or len(s) > 4096:
        return False
    try:
        return Path(s).is_file()
    except (OSError, ValueError):
        return False


def _empty(label, reason, allow_empty, max_results, query_log) -> CheatSheet:
    if not allow_empty:
        raise EmptyDocumentError(label, reason)
    logger.warning("%s: %s; catalog is empty", label, reason)
    return CheatSheet([], source=label, max_results=max_results, query_log=query_log)


def catalog_from_config(cfg: dict, document: str | Path | None = None, allow_empty: bool = False) -> CheatSheet:
    doc = Path(document or cfg["app"]["document"])
    log_path = cfg["app"].get("query_log")
    return load_catalog(
        doc,
        allow_empty=allow_empty,
        max_results=int(cfg.get("search", {}).get("max_results", 0) or 0),
        query_log=QueryLog(Path(log_path)) if log_path else None,
    )


# ---- process-wide default catalog (load once, then read-only) ----
_default: Optional[CheatSheet] = None
_default_lock = threading.Lock()


def get_default_catalog(config_path: str | Path | None = None) -> CheatSheet:
    global _default
    if _default is not None:
        return _default
    with _default_lock:
        if _default is None:
            cfg = load_config(config_path or os.getenv("SQL_CHEATSHEET_CONFIG") or "config.yaml")
            _default = catalog_from_config(cfg)
    return _default


def reset_default_catalog() -> None:
    global _default
    with _default_lock:
        _default = None
