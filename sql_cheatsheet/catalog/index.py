from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from rank_bm25 import BM25Okapi

from ..ingest.clean import fold
from .schema import Concept, ConceptRef, Entry

logger = logging.getLogger(__name__)


def _tok(s: str) -> list[str]:
    return re.findall(r"[a-z0-9_]+", (s or "").lower())


def _ranking_text(c: Concept) -> str:
    return "\n".join([c.name, c.description, c.usage_hint or "", *c.examples])


class CatalogIndex:
    """
    Write-once lookup structures over parsed entries.

    Everything is computed in the constructor; the public methods only read,
    so one instance can be shared between threads.
    """

    def __init__(self, entries: Iterable[Entry]):
        self.entries: Tuple[Entry, ...] = tuple(entries)
        self._by_title: Dict[str, Entry] = {}
        self._by_id: Dict[int, Entry] = {}
        # Flat (topic order, concept order) list; positions below index into it
        self._refs: List[ConceptRef] = []
        self._haystacks: List[Tuple[str, str]] = []
        self._tokens: Dict[str, set[int]] = {}

        for e in self.entries:
            key = fold(e.title)
            if key in self._by_title:
                logger.warning("Duplicate topic title %r; keeping topic %d", e.title, self._by_title[key].topic_id)
            else:
                self._by_title[key] = e
            self._by_id[e.topic_id] = e
            for pos, c in enumerate(e.concepts):
                i = len(self._refs)
                self._refs.append(
                    ConceptRef(topic_id=e.topic_id, topic_title=e.title, position=pos, concept=c)
                )
                self._haystacks.append((fold(c.name), fold(c.description)))
                for t in set(_tok(c.name) + _tok(c.description)):
                    self._tokens.setdefault(t, set()).add(i)

        self._bm25: Optional[BM25Okapi] = None
        if self._refs:
            self._bm25 = BM25Okapi([_tok(_ranking_text(r.concept)) for r in self._refs])

        logger.debug(
            "Catalog index built: %d topic(s), %d concept(s), %d token(s)",
            len(self.entries), len(self._refs), len(self._tokens),
        )

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def concept_count(self) -> int:
        return len(self._refs)

    def titles(self) -> List[str]:
        return [e.title for e in self.entries]

    def by_title(self, title: str) -> Optional[Entry]:
        return self._by_title.get(fold(title))

    def by_id(self, topic_id: int) -> Optional[Entry]:
        return self._by_id.get(topic_id)

    def _token_matches(self, tokens: Sequence[str]) -> set[int]:
        if not tokens:
            return set()
        hits: Optional[set[int]] = None
        for t in tokens:
            ids = self._tokens.get(t, set())
            hits = set(ids) if hits is None else hits & ids
            if not hits:
                return set()
        return hits or set()

    def keyword(self, keyword: str) -> List[ConceptRef]:
        """Substring or all-token match over concept names and descriptions."""
        key = fold(keyword)
        if not key:
            return []
        matched = self._token_matches(_tok(key))
        for i, (name, desc) in enumerate(self._haystacks):
            if i not in matched and (key in name or key in desc):
                matched.add(i)
        # _refs is already in topic order then concept order
        return [self._refs[i] for i in sorted(matched)]

    def rank(self, query: str, top_k: int = 10) -> List[ConceptRef]:
        """BM25 over name, description, hint and examples."""
        if self._bm25 is None or top_k <= 0:
            return []
        q = _tok(query)
        if not q:
            return []
        scores = self._bm25.get_scores(q)
        pairs = [(i, float(s)) for i, s in enumerate(scores) if s > 0]
        pairs.sort(key=lambda x: (-x[1], x[0]))
        hits = []
        for i, s in pairs[:top_k]:
            hits.append(self._refs[i].model_copy(update={"score": s}))
        return hits
