import logging
import sys
from pathlib import Path

import pytest

# Repo root = one level above tests/
REPO_ROOT = Path(__file__).resolve().parents[1]

# Ensure repo root is on sys.path so `import cli` and `web.app` work (root files).
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from sql_cheatsheet.app import DEFAULT_DOCUMENT, CheatSheet, reset_default_catalog  # noqa: E402

SMALL_DOC = """\
# Mini Sheet

Intro text that belongs to no topic.

## 1. Filtering

Ways to narrow rows.

**WHERE**: Filters rows before grouping.

```sql
SELECT * FROM t WHERE x > 1;
```

*Use when only some rows matter.*

- **BETWEEN** - Inclusive range test.

```sql
SELECT * FROM t WHERE x BETWEEN 1 AND 5;
```

## 2. Joins

**INNER JOIN**
Matching rows only.

**RIGHT JOIN**
All rows from the right table.

## Appendix

**Ignored**
Not part of any topic.
"""


@pytest.fixture(autouse=True)
def _isolate(monkeypatch):
    monkeypatch.delenv("SQL_CHEATSHEET_DOC", raising=False)
    monkeypatch.delenv("SQL_CHEATSHEET_CONFIG", raising=False)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    reset_default_catalog()
    yield
    for h in list(root.handlers):
        if h not in handlers:
            root.removeHandler(h)
    root.setLevel(level)
    reset_default_catalog()


@pytest.fixture
def small_doc() -> str:
    return SMALL_DOC


@pytest.fixture(scope="session")
def bundled_text() -> str:
    return DEFAULT_DOCUMENT.read_text(encoding="utf-8")


@pytest.fixture(scope="session")
def sheet(bundled_text) -> CheatSheet:
    return CheatSheet.from_text(bundled_text, source=str(DEFAULT_DOCUMENT))
