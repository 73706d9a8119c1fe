import logging

from sql_cheatsheet.ingest.clean import normalize_text
from sql_cheatsheet.ingest.markdown import parse_path, parse_text


def test_sections_and_concepts(small_doc):
    entries = parse_text(small_doc)
    assert [(e.topic_id, e.title) for e in entries] == [(1, "Filtering"), (2, "Joins")]

    filtering = entries[0]
    assert filtering.summary == "Ways to narrow rows."
    assert filtering.concept_names() == ["WHERE", "BETWEEN"]

    where = filtering.concepts[0]
    assert where.description == "Filters rows before grouping."
    assert where.examples == ("SELECT * FROM t WHERE x > 1;",)
    assert where.usage_hint == "Use when only some rows matter."

    between = filtering.concepts[1]
    assert between.description == "Inclusive range test."
    assert between.usage_hint is None


def test_concept_without_example(small_doc):
    joins = parse_text(small_doc)[1]
    right = joins.concepts[1]
    assert right.name == "RIGHT JOIN"
    assert right.examples == ()
    assert right.description == "All rows from the right table."


def test_unnumbered_heading_closes_section(small_doc):
    names = [c.name for e in parse_text(small_doc) for c in e.concepts]
    assert "Ignored" not in names


def test_no_sections_is_empty_not_error():
    assert parse_text("") == []
    assert parse_text("# Just a title\n\nSome prose, **bold**, nothing numbered.") == []


def test_heading_inside_code_fence_is_code():
    doc = "## 1. Comments\n\n**MySQL comment**\n\n```\n# 2. not a topic\nSELECT 1;\n```\n"
    entries = parse_text(doc)
    assert len(entries) == 1
    assert entries[0].concepts[0].examples == ("# 2. not a topic\nSELECT 1;",)


def test_tilde_fence_and_indentation_preserved():
    doc = "## 1. CTE\n\n**WITH**\n\n~~~sql\nWITH x AS (\n    SELECT 1\n)\nSELECT * FROM x;\n~~~\n"
    ex = parse_text(doc)[0].concepts[0].examples[0]
    assert ex == "WITH x AS (\n    SELECT 1\n)\nSELECT * FROM x;"


def test_unterminated_fence_runs_to_end():
    doc = "## 1. Misc\n\n**SELECT**\n```sql\nSELECT 1;\nSELECT 2;"
    assert parse_text(doc)[0].concepts[0].examples == ("SELECT 1;\nSELECT 2;",)


def test_code_before_first_concept_gets_implicit_concept():
    doc = "## 4. Views\nA view is a stored query.\n```sql\nCREATE VIEW v AS SELECT 1;\n```\n**DROP VIEW**\nRemoves it."
    entry = parse_text(doc)[0]
    assert entry.summary == "A view is a stored query."
    assert entry.concept_names() == ["Views", "DROP VIEW"]
    assert entry.concepts[0].examples == ("CREATE VIEW v AS SELECT 1;",)


def test_deeper_heading_starts_concept():
    doc = "## 1. Joins\n### CROSS JOIN\nCartesian product.\n"
    entry = parse_text(doc)[0]
    assert entry.concept_names() == ["CROSS JOIN"]
    assert entry.concepts[0].description == "Cartesian product."


def test_labels_are_not_concepts():
    doc = (
        "## 1. Misc\n"
        "**UPSERT**\nInsert or update.\n"
        "**Note:** Syntax differs between engines.\n"
        "**Example:**\n```sql\nINSERT ... ON CONFLICT DO UPDATE;\n```\n"
        "**Tip:** Prefer a unique constraint.\n"
    )
    entry = parse_text(doc)[0]
    assert entry.concept_names() == ["UPSERT"]
    c = entry.concepts[0]
    assert c.description == "Insert or update.\nNote: Syntax differs between engines."
    assert c.examples == ("INSERT ... ON CONFLICT DO UPDATE;",)
    assert c.usage_hint == "Prefer a unique constraint."


def test_multiple_hints_joined():
    doc = "## 1. X\n**A**\ntext\n*Use when a.*\n*Hint: also b.*\n"
    assert parse_text(doc)[0].concepts[0].usage_hint == "Use when a. also b."


def test_numbering_variants_and_renumbering(caplog):
    caplog.set_level(logging.WARNING)
    doc = "## 1) One\n**A**\n## 3: Three\n**B**\n## 3 - Again\n**C**\n"
    entries = parse_text(doc)
    assert [(e.topic_id, e.title) for e in entries] == [(1, "One"), (3, "Three"), (4, "Again")]
    assert "renumbering" in caplog.text


def test_horizontal_rules_dropped():
    doc = "## 1. X\n**A**\ntext\n\n---\n"
    assert parse_text(doc)[0].concepts[0].description == "text"


def test_crlf_bom_and_nbsp():
    doc = "\ufeff## 1. X\r\n**A**\r\nnon\u00a0breaking  \r\n"
    entries = parse_text(doc)
    assert entries[0].title == "X"
    assert entries[0].concepts[0].description == "non breaking"
    assert normalize_text("") == ""


def test_parse_path(tmp_path, small_doc):
    p = tmp_path / "sheet.md"
    p.write_text(small_doc, encoding="utf-8")
    assert [e.title for e in parse_path(p)] == ["Filtering", "Joins"]


def test_topic_ids_strictly_increasing(bundled_text):
    ids = [e.topic_id for e in parse_text(bundled_text)]
    assert ids == sorted(set(ids))
    assert len(ids) == 11


def test_bold_names_may_contain_stars():
    doc = (
        "## 2. Aggregation\n\n"
        "**GROUP BY**\nGroups rows.\n\n"
        "- **COUNT(*)**: Counts rows, NULLs included.\n\n"
        "```sql\nSELECT COUNT(*) FROM t;\n```\n\n"
        "**SELECT ***\nEvery column.\n"
    )
    entry = parse_text(doc)[0]
    assert entry.concept_names() == ["GROUP BY", "COUNT(*)", "SELECT *"]
    count = entry.concepts[1]
    assert count.description == "Counts rows, NULLs included."
    assert count.examples == ("SELECT COUNT(*) FROM t;",)
    assert entry.concepts[0].examples == ()


def test_heading_keeps_trailing_star():
    doc = "## 1. Basics\n### SELECT *\nEvery column.\n### **DISTINCT**\nUnique rows.\n"
    assert parse_text(doc)[0].concept_names() == ["SELECT *", "DISTINCT"]


def test_indented_fence_under_list_item():
    doc = (
        "## 1. Misc\n\n"
        "- **A** - thing\n\n"
        "  ```sql\n"
        "  # not heading\n"
        "  SELECT 1;\n"
        "  ```\n"
    )
    entry = parse_text(doc)[0]
    assert entry.concept_names() == ["A"]
    assert entry.concepts[0].description == "thing"
    assert entry.concepts[0].examples == ("# not heading\nSELECT 1;",)
