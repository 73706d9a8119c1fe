import re

# Horizontal rules: ---, ***, ___ (optionally spaced)
HRULE = re.compile(r"^\s*([-*_])(\s*\1){2,}\s*$")


def normalize_text(s: str) -> str:
    if not s:
        return ""
    # Drop a leading BOM
    s = s.lstrip("\ufeff")
    # Normalize Windows line endings
    s = s.replace("\r\n", "\n").replace("\r", "\n")
    s = s.replace("\u00a0", " ")  # nbsp -> space
    # Trailing whitespace only; leading indentation is meaningful inside code blocks
    s = re.sub(r"[ \t]+$", "", s, flags=re.M)
    return s.strip("\n")


def collapse_blank_lines(s: str) -> str:
    s = re.sub(r"\n{3,}", "\n\n", s)
    return s.strip()


def strip_emphasis(s: str) -> str:
    s = s.strip()
    s = re.sub(r"^[*_]+", "", s)
    s = re.sub(r"[*_]+$", "", s)
    return s.strip()


def fold(s: str) -> str:
    """Case-fold and collapse whitespace for lookups."""
    return re.sub(r"\s+", " ", (s or "").strip()).casefold()
