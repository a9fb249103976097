import re
from typing import Optional
import bleach


def sanitize_input(value: Optional[str]) -> str:
    """Clean a free-text search term before it reaches a query.

    Markup is stripped with bleach, NUL bytes and SQL comment/statement
    separators are dropped, and surrounding whitespace is trimmed.
    """
    if value is None:
        return ""
    val = value.replace("\x00", "")
    val = bleach.clean(val, strip=True)
    val = re.sub(r"(--|;)", "", val)
    return val.strip()


def contains_pattern(value: Optional[str]) -> Optional[str]:
    """Build a ``LIKE`` substring pattern from a search term, or None when blank.

    Wildcards in the term match literally; use with ``escape="\\\\"``.
    """
    term = sanitize_input(value)
    if not term:
        return None
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
