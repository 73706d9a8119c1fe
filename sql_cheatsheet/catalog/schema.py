from __future__ import annotations

from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict


class Concept(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    examples: Tuple[str, ...] = ()  # literal SQL, document order
    usage_hint: Optional[str] = None


class Entry(BaseModel):
    model_config = ConfigDict(frozen=True)

    topic_id: int
    title: str
    concepts: Tuple[Concept, ...] = ()
    summary: str = ""               # prose before the first concept

    def concept_names(self) -> list[str]:
        return [c.name for c in self.concepts]


class ConceptRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    topic_id: int
    topic_title: str
    position: int                   # index inside Entry.concepts
    concept: Concept
    score: Optional[float] = None   # ranked search only

    @property
    def name(self) -> str:
        return self.concept.name
