import re
from datetime import date, datetime

_ISO_RE = re.compile(r"^\s*(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})")
_UK_RE = re.compile(r"^\s*(\d{1,2})[-/.](\d{1,2})[-/.](\d{4})")

_TEXT_FORMATS = (
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%b %d %Y",
    "%B %d %Y",
    "%a, %d %b %Y",
)


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date(value: object) -> date | None:
    """
    Parse a sheet cell into a calendar date.

    Year-first (ISO-like) is tried before day-first (UK) so that
    "2025-03-07" and "07/03/2025" agree. Anything else goes through a
    fixed list of textual formats. Returns None instead of raising.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    cleaned = value.strip()

    match = _ISO_RE.match(cleaned)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return _safe_date(year, month, day)

    match = _UK_RE.match(cleaned)
    if match:
        day, month, year = (int(part) for part in match.groups())
        return _safe_date(year, month, day)

    for fmt in _TEXT_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue

    try:
        return datetime.fromisoformat(cleaned).date()
    except ValueError:
        return None
