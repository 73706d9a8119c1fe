from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..catalog.schema import Concept, Entry
from .clean import HRULE, collapse_blank_lines, normalize_text, strip_emphasis

logger = logging.getLogger(__name__)

HEADING = re.compile(r"^\s{0,3}(?P<hashes>#{1,6})\s+(?P<text>.*?)\s*#*\s*$")
# "3. Joins", "3) Joins", "3: Joins", "3 - Joins"
TOPIC_NUMBER = re.compile(r"^(?P<num>\d+)(?:[.):]|\s+[-–])\s*(?P<title>\S.*)$")
FENCE = re.compile(r"^(?P<indent>[ \t]*)(?P<fence>`{3,}|~{3,})(?P<info>.*)$")
BOLD_LEAD = re.compile(
    # name may hold single stars: **COUNT(*)**, **SELECT ***
    r"^\s*(?:[-*+]\s+|\d+[.)]\s+)?\*\*(?P<name>[^\s*](?:.{0,79}?))\*\*(?!\*)(?P<rest>.*)$"
)
HINT = re.compile(
    r"^(?P<label>(?:hint|tip|usage)\s*:\s*)?"
    r"(?P<body>(?:use(?: it| this)? when|when to use)\b.*|.*)$",
    re.I,
)
HINT_START = re.compile(r"^(?:use(?: it| this)? when|when to use|hint\s*:|tip\s*:|usage\s*:)", re.I)

# Bold labels that never start a concept
NOTE_LABELS = {"note"}
DROP_LABELS = {"example", "examples", "syntax", "output", "result"}
LABEL_PREFIXES = {"note", "hint", "tip", "usage"}


@dataclass
class _ConceptBuf:
    name: str
    lines: List[str] = field(default_factory=list)
    examples: List[str] = field(default_factory=list)
    hints: List[str] = field(default_factory=list)

    def build(self) -> Concept:
        hint = " ".join(self.hints).strip() or None
        return Concept(
            name=self.name,
            description=collapse_blank_lines("\n".join(self.lines)),
            examples=tuple(self.examples),
            usage_hint=hint,
        )


@dataclass
class _SectionBuf:
    topic_id: int
    title: str
    intro: List[str] = field(default_factory=list)
    concepts: List[_ConceptBuf] = field(default_factory=list)

    @property
    def current(self) -> Optional[_ConceptBuf]:
        return self.concepts[-1] if self.concepts else None

    def build(self) -> Entry:
        return Entry(
            topic_id=self.topic_id,
            title=self.title,
            concepts=tuple(c.build() for c in self.concepts),
            summary=collapse_blank_lines("\n".join(self.intro)),
        )


WRAPPED = re.compile(r"^(?P<mark>\*{1,3}|_{1,3})(?P<inner>.+?)(?P=mark)$")


def _clean_title(t: str) -> str:
    # Only unwrap matched emphasis; "SELECT *" keeps its star
    t = t.strip()
    m = WRAPPED.match(t)
    return (m.group("inner") if m else t).strip()


def _dedent(line: str, width: int) -> str:
    """Drop up to `width` leading blanks, the indent of the opening fence."""
    n = 0
    while n < width and n < len(line) and line[n] in " \t":
        n += 1
    return line[n:]


def _as_hint(line: str) -> Optional[str]:
    s = line.strip()
    s = re.sub(r"^[-*+]\s+", "", s)
    s = strip_emphasis(s)
    if not HINT_START.match(s):
        return None
    m = HINT.match(s)
    body = strip_emphasis(m.group("body")) if m else s
    return body or None


def _concept_heading(line: str) -> Optional[tuple[str, str]]:
    """Return (name, trailing text) when the line opens a bold-named concept."""
    m = BOLD_LEAD.match(line)
    if not m:
        return None
    name = m.group("name").strip().rstrip(":").strip()
    rest = m.group("rest").strip()
    rest = re.sub(r"^[:\-–]\s*", "", rest)
    if not name:
        return None
    return name, rest


def _labelled(name: str, rest: str) -> str:
    return f"{name}: {rest}" if name.casefold() in LABEL_PREFIXES else f"{name} {rest}"


def is_label(name: str, rest: str = "") -> bool:
    """True when a bold-led line named `name` is a label rather than a concept."""
    label = name.casefold()
    if label in DROP_LABELS or label in NOTE_LABELS:
        return True
    return _as_hint(_labelled(name, rest)) is not None


def bold_safe(name: str) -> bool:
    """True when `**name**` on its own line reads back as a concept called `name`."""
    return _concept_heading(f"**{name}**") == (name, "") and not is_label(name)


def parse_text(text: str) -> List[Entry]:
    """Split a cheat-sheet document into topic entries, in document order."""
    text = normalize_text(text)
    lines = text.splitlines()

    sections: List[_SectionBuf] = []
    section: Optional[_SectionBuf] = None
    section_level: Optional[int] = None
    last_id = 0

    fence: Optional[str] = None
    fence_indent = 0
    code: List[str] = []

    def flush_code():
        body = "\n".join(code).strip("\n")
        if section is None:
            return
        target = section.current
        if target is None:
            # Code before any concept: hold it under a concept named after the topic
            target = _ConceptBuf(name=section.title)
            section.concepts.append(target)
        if body:
            target.examples.append(body)

    def add_prose(ln: str):
        if section is None:
            return
        target = section.current
        hint = _as_hint(ln) if ln.strip() else None
        if hint is not None and target is not None:
            target.hints.append(hint)
        elif target is not None:
            target.lines.append(ln)
        else:
            section.intro.append(ln)

    for ln in lines:
        if fence is not None:
            m = FENCE.match(ln)
            closes = (
                m is not None
                and m.group("fence")[0] == fence[0]
                and len(m.group("fence")) >= len(fence)
                and not m.group("info").strip()
            )
            if closes:
                flush_code()
                fence, code = None, []
            else:
                code.append(_dedent(ln, fence_indent))
            continue

        m = FENCE.match(ln)
        if m:
            fence, code = m.group("fence"), []
            fence_indent = len(m.group("indent"))
            continue

        h = HEADING.match(ln)
        if h:
            level = len(h.group("hashes"))
            heading = h.group("text")
            num = TOPIC_NUMBER.match(heading)
            if num and (section_level is None or level <= section_level):
                section_level = level
                topic_id = int(num.group("num"))
                if topic_id <= last_id:
                    logger.warning(
                        "Topic %r numbered %d after %d; renumbering to %d",
                        num.group("title"), topic_id, last_id, last_id + 1,
                    )
                    topic_id = last_id + 1
                last_id = topic_id
                section = _SectionBuf(topic_id=topic_id, title=_clean_title(num.group("title")))
                sections.append(section)
                logger.debug("Section %d: %s", section.topic_id, section.title)
                continue
            if section_level is not None and level <= section_level:
                # Unnumbered heading at section level ends the topic
                section = None
                continue
            if section is not None:
                section.concepts.append(_ConceptBuf(name=_clean_title(heading)))
            continue

        if section is None:
            continue
        if HRULE.match(ln):
            continue

        c = _concept_heading(ln)
        if c:
            name, rest = c
            label = name.casefold()
            if label in DROP_LABELS:
                if rest:
                    add_prose(rest)
                continue
            if is_label(name, rest):
                add_prose(_labelled(name, rest).strip())
                continue
            section.concepts.append(_ConceptBuf(name=name, lines=[rest] if rest else []))
            continue

        add_prose(ln)

    if fence is not None:
        logger.debug("Unterminated code fence at end of document")
        flush_code()

    entries = [s.build() for s in sections]
    logger.debug("Parsed %d topic(s)", len(entries))
    return entries


def parse_path(path: Path) -> List[Entry]:
    text = Path(path).read_text(encoding="utf-8", errors="ignore")
    return parse_text(text)
