from __future__ import annotations

import datetime
import html
import json
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from ..catalog.schema import Concept, ConceptRef, Entry
from ..ingest.markdown import bold_safe

FORMATS = ("json", "md", "txt", "html")

_HTML_STYLE = (
    "<style>body{font-family:system-ui,Segoe UI,Arial,sans-serif;max-width:900px;margin:40px auto;"
    "padding:0 16px} h1{font-size:1.6rem} pre{background:#f6f8fa;padding:8px;border-radius:4px}"
    " .hint{color:#555;font-style:italic}</style>"
)


def _timestamp() -> str:
    return datetime.datetime.now().strftime("%Y%m%d_%H%M%S")


def _slug(s: str, max_len: int = 60) -> str:
    s = s.strip().lower()
    s = re.sub(r"[^a-z0-9\-\s_]+", "", s)
    s = re.sub(r"[\s_]+", "-", s)
    return s[:max_len].strip("-") or "result"


def infer_format(out_path: Optional[str], fmt: Optional[str]) -> str:
    if fmt:
        return fmt.lower()
    if out_path:
        ext = Path(out_path).suffix.lower().lstrip(".")
        if ext in {"json", "md", "txt", "html", "htm"}:
            return "html" if ext in {"html", "htm"} else ext
    return "json"


def ensure_outpath(out_path: Optional[str], fmt: str, save_dir: Optional[str], label: str) -> Path:
    if out_path:
        p = Path(out_path)
        p.parent.mkdir(parents=True, exist_ok=True)
        return p
    base_dir = Path(save_dir or "outputs")
    base_dir.mkdir(parents=True, exist_ok=True)
    return base_dir / f"{_timestamp()}_{_slug(label)}.{fmt}"


# ---- concepts / entries ----
def _hint_line(hint: str) -> str:
    if re.match(r"^(?:use(?: it| this)? when|when to use)\b", hint, re.I):
        return f"*{hint}*"
    return f"*Hint: {hint}*"


def concept_markdown(c: Concept) -> str:
    # Names that would read back as a label or hint go under a heading
    lines: List[str] = [f"**{c.name}**" if bold_safe(c.name) else f"### {c.name}"]
    if c.description:
        lines.append(c.description)
    for ex in c.examples:
        lines.append("")
        lines.append("```sql")
        lines.append(ex)
        lines.append("```")
    if c.usage_hint:
        lines.append("")
        lines.append(_hint_line(c.usage_hint))
    return "\n".join(lines)


def as_markdown(entry: Entry) -> str:
    """Markdown that parses back into an equal Entry."""
    lines: List[str] = [f"## {entry.topic_id}. {entry.title}", ""]
    if entry.summary:
        lines += [entry.summary, ""]
    for c in entry.concepts:
        lines += [concept_markdown(c), ""]
    return "\n".join(lines).strip() + "\n"


def as_text(entry: Entry) -> str:
    lines: List[str] = [f"{entry.topic_id}. {entry.title.upper()}"]
    if entry.summary:
        lines += ["", entry.summary]
    for c in entry.concepts:
        lines += ["", f"* {c.name}"]
        if c.description:
            lines += ["  " + ln for ln in c.description.splitlines()]
        for ex in c.examples:
            lines.append("")
            lines += ["    " + ln for ln in ex.splitlines()]
        if c.usage_hint:
            lines += ["", f"  -> {c.usage_hint}"]
    return "\n".join(lines).strip() + "\n"


def _concept_html(c: Concept, level: int = 2) -> List[str]:
    out = [f"<h{level}>{html.escape(c.name)}</h{level}>"]
    if c.description:
        out.append("<p>" + html.escape(c.description).replace("\n", "<br>") + "</p>")
    for ex in c.examples:
        out.append(f"<pre><code>{html.escape(ex)}</code></pre>")
    if c.usage_hint:
        out.append(f"<p class='hint'>{html.escape(c.usage_hint)}</p>")
    return out


def as_html(entry: Entry) -> str:
    lines: List[str] = ["<!doctype html><html><head><meta charset='utf-8'>", _HTML_STYLE, "</head><body>"]
    lines.append(f"<h1>{entry.topic_id}. {html.escape(entry.title)}</h1>")
    if entry.summary:
        lines.append(f"<p>{html.escape(entry.summary)}</p>")
    for c in entry.concepts:
        lines += _concept_html(c)
    lines.append("</body></html>")
    return "\n".join(lines)


# ---- search results ----
def _ref_label(r: ConceptRef) -> str:
    score = f" ({r.score:.3f})" if r.score is not None else ""
    return f"[{r.topic_id}. {r.topic_title}] {r.name}{score}"


def results_as_markdown(query: str, refs: Sequence[ConceptRef]) -> str:
    lines = [f"# Search: {query}", ""]
    if not refs:
        lines.append("_No matches._")
    for r in refs:
        lines += [f"## {_ref_label(r)}", ""]
        lines += [concept_markdown(r.concept), ""]
    return "\n".join(lines).strip() + "\n"


def results_as_text(query: str, refs: Sequence[ConceptRef]) -> str:
    lines = [f"SEARCH: {query}", ""]
    if not refs:
        lines.append("(no matches)")
    for r in refs:
        lines.append(_ref_label(r))
        if r.concept.description:
            lines.append("  " + r.concept.description.splitlines()[0])
    return "\n".join(lines).strip() + "\n"


def results_as_html(query: str, refs: Sequence[ConceptRef]) -> str:
    lines: List[str] = ["<!doctype html><html><head><meta charset='utf-8'>", _HTML_STYLE, "</head><body>"]
    lines.append(f"<h1>Search: {html.escape(query)}</h1>")
    if not refs:
        lines.append("<p>No matches.</p>")
    for r in refs:
        lines.append(f"<p><small>{r.topic_id}. {html.escape(r.topic_title)}</small></p>")
        lines += _concept_html(r.concept)
    lines.append("</body></html>")
    return "\n".join(lines)


Payload = Union[Entry, Sequence[ConceptRef]]


def to_jsonable(payload: Payload, query: Optional[str] = None) -> Dict[str, Any]:
    if isinstance(payload, Entry):
        return {"topic": payload.model_dump(mode="json")}
    return {"query": query, "results": [r.model_dump(mode="json") for r in payload]}


def render(payload: Payload, fmt: str, query: Optional[str] = None) -> str:
    if fmt == "json":
        return json.dumps(to_jsonable(payload, query), ensure_ascii=False, indent=2)
    if isinstance(payload, Entry):
        renderers = {"md": as_markdown, "txt": as_text, "html": as_html}
        fn = renderers.get(fmt)
        if fn is None:
            raise ValueError(f"Unsupported format: {fmt}")
        return fn(payload)
    renderers = {"md": results_as_markdown, "txt": results_as_text, "html": results_as_html}
    fn = renderers.get(fmt)
    if fn is None:
        raise ValueError(f"Unsupported format: {fmt}")
    return fn(query or "", payload)


def write_output(
    label: str,
    payload: Payload,
    out_path: Optional[str] = None,
    fmt: Optional[str] = None,
    save_dir: Optional[str] = None,
) -> Path:
    fmt2 = infer_format(out_path, fmt)
    if fmt2 not in FORMATS:
        raise ValueError(f"Unsupported format: {fmt2}")
    target = ensure_outpath(out_path, fmt2, save_dir, label)
    query = None if isinstance(payload, Entry) else label
    target.write_text(render(payload, fmt2, query=query), encoding="utf-8")
    return target
